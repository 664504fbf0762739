"""
Uploads router.

POST /uploads                      — Store an audio file, returns a handle
POST /uploads/{handle}/transcribe  — Transcribe into a new or existing note
GET  /uploads?status=              — The caller's transcription attempts
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from phantom_pen.core.auth import get_current_user_id
from phantom_pen.core.errors import EmptyUploadError
from phantom_pen.db.base import get_db
from phantom_pen.models.voice_upload import UploadStatus, VoiceUpload
from phantom_pen.schemas.upload import (
    TranscribeRequest,
    TranscribeResponse,
    UploadCreatedResponse,
    VoiceUploadListResponse,
    VoiceUploadResponse,
)
from phantom_pen.services.ingestion import list_voice_uploads, transcribe_upload
from phantom_pen.services.scheduler import SynthesisScheduler, get_scheduler
from phantom_pen.services.storage import BlobStorage, get_blob_storage
from phantom_pen.services.transcription import (
    TitleGenerator,
    Transcriber,
    get_title_generator,
    get_transcriber,
)

router = APIRouter(prefix="/uploads", tags=["uploads"])


def _upload_to_response(upload: VoiceUpload) -> VoiceUploadResponse:
    status_value = upload.status.value if hasattr(upload.status, "value") else str(upload.status)
    return VoiceUploadResponse(
        id=upload.id,
        capture_id=upload.capture_id,
        status=status_value,
        error_message=upload.error_message,
        created_at=upload.created_at.isoformat() if upload.created_at else "",
    )


@router.post(
    "",
    response_model=UploadCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store an audio file for transcription",
    responses={422: {"description": "The uploaded file is empty."}},
)
def create_upload(
    file: UploadFile = File(...),
    storage: BlobStorage = Depends(get_blob_storage),
    user_id: str = Depends(get_current_user_id),
):
    data = file.file.read()
    if not data:
        raise EmptyUploadError(file.filename)
    handle = storage.put(data)
    return UploadCreatedResponse(handle=handle, size=len(data))


@router.post(
    "/{handle}/transcribe",
    response_model=TranscribeResponse,
    summary="Transcribe a stored upload into a note",
    responses={
        404: {"description": "Unknown handle or note."},
        502: {"description": "The speech-to-text service failed."},
    },
)
def transcribe(
    handle: str,
    payload: Optional[TranscribeRequest] = None,
    db: Session = Depends(get_db),
    scheduler: SynthesisScheduler = Depends(get_scheduler),
    storage: BlobStorage = Depends(get_blob_storage),
    transcriber: Transcriber = Depends(get_transcriber),
    titler: TitleGenerator = Depends(get_title_generator),
    user_id: str = Depends(get_current_user_id),
):
    """
    With `capture_id` the text is appended to that note; otherwise a new note
    is created with a generated title. The stored audio is deleted afterwards,
    whether transcription succeeded or not.
    """
    capture_id = payload.capture_id if payload is not None else None
    result = transcribe_upload(
        db, scheduler, storage, transcriber, titler,
        owner_id=user_id, handle=handle, capture_id=capture_id,
    )
    return TranscribeResponse(capture_id=result.capture_id, handle=result.handle, text=result.text)


@router.get(
    "",
    response_model=VoiceUploadListResponse,
    summary="List the caller's transcription attempts (newest first)",
)
def list_uploads(
    status_filter: Optional[UploadStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    uploads = list_voice_uploads(db, user_id, status_filter)
    return VoiceUploadListResponse(
        total=len(uploads),
        items=[_upload_to_response(u) for u in uploads],
    )
