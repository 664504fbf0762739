"""
Memoir router.

GET /narratives                        — The caller's narrative entries
GET /narratives/public/{external_id}   — A user's public memoir (no auth)
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from phantom_pen.core.auth import get_current_user_id
from phantom_pen.db.base import get_db
from phantom_pen.models.narrative_entry import NarrativeEntry
from phantom_pen.models.synthesis_schedule import SynthesisSchedule
from phantom_pen.schemas.narrative import (
    NarrativeEntryResponse,
    NarrativeListResponse,
    ScheduleResponse,
)
from phantom_pen.services import narratives as narrative_service

router = APIRouter(prefix="/narratives", tags=["narratives"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def entry_to_response(entry: NarrativeEntry) -> NarrativeEntryResponse:
    return NarrativeEntryResponse(
        id=entry.id,
        capture_id=entry.capture_id,
        date=entry.date,
        title=entry.title,
        content=entry.content,
        is_public=entry.is_public,
        generated_at=entry.generated_at.isoformat() if entry.generated_at else "",
    )


def entries_to_list(entries: list[NarrativeEntry]) -> NarrativeListResponse:
    return NarrativeListResponse(
        total=len(entries),
        items=[entry_to_response(e) for e in entries],
    )


def schedule_to_response(schedule: SynthesisSchedule) -> ScheduleResponse:
    status = schedule.status.value if hasattr(schedule.status, "value") else str(schedule.status)
    return ScheduleResponse(
        capture_id=schedule.capture_id,
        status=status,
        run_at=schedule.run_at.isoformat() if schedule.run_at else "",
        error_message=schedule.error_message,
    )


# ---------------------------------------------------------------------------
# GET /narratives
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=NarrativeListResponse,
    summary="List the caller's memoir entries (newest generation first)",
)
def list_my_entries(
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return entries_to_list(narrative_service.list_user_entries(db, user_id, limit))


# ---------------------------------------------------------------------------
# GET /narratives/public/{external_id}
# ---------------------------------------------------------------------------

@router.get(
    "/public/{external_id}",
    response_model=NarrativeListResponse,
    summary="Public memoir of a user",
    responses={
        403: {"description": "The user's memoir is private."},
        404: {"description": "Unknown user."},
    },
)
def list_public_entries(
    external_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """
    Only entries whose source capture is public are returned. No authentication
    is required; a private memoir answers `MEMOIRS_NOT_PUBLIC`.
    """
    return entries_to_list(narrative_service.list_public_entries(db, external_id, limit))
