"""
Captures router.

POST   /captures                          — Create a note from text
POST   /captures/blank                    — Create an empty note
GET    /captures?q=                       — List / search the caller's notes
GET    /captures/{id}                     — One note (owner)
GET    /captures/{id}/public              — One note (anyone, only if public)
PATCH  /captures/{id}/title               — Rename
PUT    /captures/{id}/transcript          — Replace text (reschedules synthesis)
PUT    /captures/{id}/visibility          — Set public / private
POST   /captures/{id}/toggle-visibility   — Flip public / private
DELETE /captures/{id}                     — Delete with cascade
GET    /captures/{id}/narrative           — Memoir entries derived from the note
GET    /captures/{id}/synthesis           — Current synthesis ticket
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from phantom_pen.core.auth import get_current_user_id
from phantom_pen.core.errors import CaptureNotFoundError
from phantom_pen.db.base import get_db
from phantom_pen.models.capture import Capture
from phantom_pen.routers.narratives import entries_to_list, schedule_to_response
from phantom_pen.schemas.capture import (
    BlankCaptureRequest,
    CaptureListResponse,
    CaptureResponse,
    CaptureSummary,
    CreateCaptureRequest,
    SetVisibilityRequest,
    UpdateTitleRequest,
    UpdateTranscriptRequest,
)
from phantom_pen.schemas.common import DeletedResponse
from phantom_pen.schemas.narrative import NarrativeListResponse, ScheduleResponse
from phantom_pen.services import captures as capture_service
from phantom_pen.services import narratives as narrative_service
from phantom_pen.services.scheduler import SynthesisScheduler, get_scheduler
from phantom_pen.services.text import preview

router = APIRouter(prefix="/captures", tags=["captures"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _iso(value) -> str:
    return value.isoformat() if value else ""


def _to_response(capture: Capture) -> CaptureResponse:
    return CaptureResponse(
        id=capture.id,
        owner_id=capture.owner_id,
        title=capture.title,
        transcript=capture.transcript,
        content=capture_service.load_content(capture.content),
        is_public=capture.is_public,
        created_at=_iso(capture.created_at),
        updated_at=_iso(capture.updated_at),
    )


def _to_summary(capture: Capture) -> CaptureSummary:
    return CaptureSummary(
        id=capture.id,
        title=capture.title,
        preview=preview(capture.transcript),
        is_public=capture.is_public,
        created_at=_iso(capture.created_at),
        updated_at=_iso(capture.updated_at),
    )


def _blocks(request_content) -> Optional[list[dict]]:
    if request_content is None:
        return None
    return [block.model_dump(exclude_none=True) for block in request_content]


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=CaptureResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a note from text",
)
def create_capture(
    payload: CreateCaptureRequest,
    db: Session = Depends(get_db),
    scheduler: SynthesisScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_current_user_id),
):
    """
    Stores the note and, when the transcript is not blank, schedules a memoir
    rewrite after the quiet period. A scheduling failure does not fail the request.
    """
    capture = capture_service.create_capture(
        db, scheduler, user_id,
        capture_service.CreateCaptureCommand(
            title=payload.title,
            transcript=payload.transcript,
            content=_blocks(payload.content),
        ),
    )
    return _to_response(capture)


@router.post(
    "/blank",
    response_model=CaptureResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an empty note",
)
def create_blank_capture(
    payload: Optional[BlankCaptureRequest] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    title = payload.title if payload is not None else "Untitled"
    return _to_response(capture_service.create_blank_capture(db, user_id, title))


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=CaptureListResponse,
    summary="List or search the caller's notes (most recently updated first)",
)
def list_captures(
    q: Optional[str] = Query(default=None, description="Free-text match on title or transcript."),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    captures = capture_service.search_captures(db, user_id, q, limit)
    return CaptureListResponse(total=len(captures), items=[_to_summary(c) for c in captures])


@router.get(
    "/{capture_id}",
    response_model=CaptureResponse,
    summary="Retrieve one of the caller's notes",
    responses={
        403: {"description": "The note belongs to someone else."},
        404: {"description": "Note not found."},
    },
)
def get_capture(
    capture_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _to_response(capture_service.get_capture(db, capture_id, user_id))


@router.get(
    "/{capture_id}/public",
    response_model=CaptureResponse,
    summary="Retrieve a public note (no auth)",
    responses={404: {"description": "Note not found or private."}},
)
def get_public_capture(capture_id: int, db: Session = Depends(get_db)):
    """Private and missing notes are indistinguishable here: both answer 404."""
    capture = capture_service.get_public_capture(db, capture_id)
    if capture is None:
        raise CaptureNotFoundError(capture_id)
    return _to_response(capture)


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@router.patch("/{capture_id}/title", response_model=CaptureResponse, summary="Rename a note")
def update_title(
    capture_id: int,
    payload: UpdateTitleRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    capture = capture_service.update_title(
        db, capture_service.UpdateTitleCommand(capture_id=capture_id, title=payload.title), user_id
    )
    return _to_response(capture)


@router.put(
    "/{capture_id}/transcript",
    response_model=CaptureResponse,
    summary="Replace a note's text and reschedule its memoir rewrite",
)
def update_transcript(
    capture_id: int,
    payload: UpdateTranscriptRequest,
    db: Session = Depends(get_db),
    scheduler: SynthesisScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_current_user_id),
):
    capture = capture_service.update_transcript(
        db, scheduler,
        capture_service.UpdateTranscriptCommand(
            capture_id=capture_id,
            transcript=payload.transcript,
            content=_blocks(payload.content),
        ),
        user_id,
    )
    return _to_response(capture)


@router.put(
    "/{capture_id}/visibility",
    response_model=CaptureResponse,
    summary="Make a note (and its memoir entries) public or private",
)
def set_visibility(
    capture_id: int,
    payload: SetVisibilityRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    capture = capture_service.set_visibility(
        db,
        capture_service.SetVisibilityCommand(capture_id=capture_id, is_public=payload.is_public),
        user_id,
    )
    return _to_response(capture)


@router.post(
    "/{capture_id}/toggle-visibility",
    response_model=CaptureResponse,
    summary="Flip a note between public and private",
)
def toggle_visibility(
    capture_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _to_response(capture_service.toggle_visibility(db, capture_id, user_id))


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@router.delete(
    "/{capture_id}",
    response_model=DeletedResponse,
    summary="Delete a note with its memoir entries and pending synthesis",
)
def delete_capture(
    capture_id: int,
    db: Session = Depends(get_db),
    scheduler: SynthesisScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_current_user_id),
):
    capture_service.delete_capture(db, scheduler, capture_id, user_id)
    return DeletedResponse(id=capture_id)


# ---------------------------------------------------------------------------
# Derived data
# ---------------------------------------------------------------------------

@router.get(
    "/{capture_id}/narrative",
    response_model=NarrativeListResponse,
    summary="Memoir entries synthesized from a note",
)
def list_capture_entries(
    capture_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return entries_to_list(narrative_service.list_capture_entries(db, capture_id, user_id))


@router.get(
    "/{capture_id}/synthesis",
    response_model=Optional[ScheduleResponse],
    summary="Current synthesis ticket for a note",
)
def get_synthesis_status(
    capture_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """`null` when nothing is pending; `failed` tickets keep their error message."""
    schedule = narrative_service.get_schedule_status(db, capture_id, user_id)
    return schedule_to_response(schedule) if schedule is not None else None
