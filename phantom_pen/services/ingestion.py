"""
Upload → transcription → capture pipeline.

Steps for one uploaded blob:
  1. read the blob and transcribe it
  2a. capture_id given → append the text to that capture (owner only)
  2b. otherwise → generate a title and create a new capture
  3. record a VoiceUpload row (completed / failed)
  4. always delete the blob, whatever happened above

Blob cleanup runs in `finally` and never raises past this module: a
leftover file is logged, the caller still sees the original outcome.

Public API
----------
transcribe_upload(db, scheduler, storage, transcriber, titler, owner_id, handle, capture_id)
                                            -> IngestionResult
list_voice_uploads(db, owner_id, status)    -> list[VoiceUpload]
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from phantom_pen.core.errors import UpstreamTranscriptionError
from phantom_pen.core.logging import get_logger
from phantom_pen.models.voice_upload import UploadStatus, VoiceUpload
from phantom_pen.services import captures as capture_service
from phantom_pen.services.scheduler import SynthesisScheduler
from phantom_pen.services.storage import BlobStorage
from phantom_pen.services.transcription import TitleGenerator, Transcriber

logger = get_logger(__name__)


@dataclass
class IngestionResult:
    capture_id: int
    handle: str
    text: str


def _record_upload(
    db: Session,
    owner_id: str,
    handle: str,
    status: UploadStatus,
    capture_id: Optional[int] = None,
    error_message: Optional[str] = None,
) -> VoiceUpload:
    upload = VoiceUpload(
        owner_id=owner_id,
        capture_id=capture_id,
        blob_handle=handle,
        status=status,
        error_message=error_message,
    )
    db.add(upload)
    db.commit()
    return upload


def _discard_blob(storage: BlobStorage, handle: str) -> None:
    try:
        storage.delete(handle)
    except Exception as exc:
        logger.warning("Could not delete blob %s after transcription: %s", handle, exc)


def transcribe_upload(
    db: Session,
    scheduler: SynthesisScheduler,
    storage: BlobStorage,
    transcriber: Transcriber,
    titler: TitleGenerator,
    owner_id: str,
    handle: str,
    capture_id: Optional[int] = None,
    filename: str = "audio.webm",
) -> IngestionResult:
    logger.info(
        "Transcription requested by %s for blob %s (capture %s)",
        owner_id, handle, capture_id if capture_id is not None else "new",
    )
    try:
        if capture_id is not None:
            # Fail on someone else's capture before paying for the upstream call.
            capture_service.get_capture(db, capture_id, owner_id)

        audio = storage.read(handle)
        try:
            text = transcriber.transcribe(audio, filename).text.strip()
            if not text:
                raise UpstreamTranscriptionError("No speech detected in audio.", handle=handle)
        except UpstreamTranscriptionError as exc:
            db.rollback()
            _record_upload(
                db, owner_id, handle, UploadStatus.failed,
                capture_id=capture_id, error_message=exc.message,
            )
            logger.error("Transcription of blob %s failed: %s", handle, exc.message)
            raise

        if capture_id is not None:
            capture = capture_service.append_transcription(
                db, scheduler, capture_id, owner_id, text
            )
        else:
            title = titler.generate(text)
            capture = capture_service.create_capture(
                db, scheduler, owner_id,
                capture_service.CreateCaptureCommand(
                    title=title,
                    transcript=text,
                    content=[{"type": "paragraph", "content": text}],
                ),
            )

        _record_upload(db, owner_id, handle, UploadStatus.completed, capture_id=capture.id)
        logger.info("Blob %s transcribed into capture %s", handle, capture.id)
        return IngestionResult(capture_id=capture.id, handle=handle, text=text)
    finally:
        _discard_blob(storage, handle)


def list_voice_uploads(
    db: Session,
    owner_id: str,
    status: Optional[UploadStatus] = None,
) -> list[VoiceUpload]:
    q = db.query(VoiceUpload).filter(VoiceUpload.owner_id == owner_id)
    if status is not None:
        q = q.filter(VoiceUpload.status == status)
    return q.order_by(VoiceUpload.created_at.desc(), VoiceUpload.id.desc()).all()
