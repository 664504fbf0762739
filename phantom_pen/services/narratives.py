"""
Read side of the memoir: narrative entries and synthesis tickets.

Public API
----------
list_user_entries(db, owner_id, limit)          -> list[NarrativeEntry]
list_capture_entries(db, capture_id, caller_id) -> list[NarrativeEntry]   (owner only)
list_public_entries(db, external_id, limit)     -> list[NarrativeEntry]   (raises when private)
get_schedule_status(db, capture_id, caller_id)  -> SynthesisSchedule | None
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from phantom_pen.core.errors import MemoirsNotPublicError
from phantom_pen.models.narrative_entry import NarrativeEntry
from phantom_pen.models.synthesis_schedule import SynthesisSchedule
from phantom_pen.services.captures import get_capture
from phantom_pen.services.users import get_user


def list_user_entries(db: Session, owner_id: str, limit: int = 100) -> list[NarrativeEntry]:
    return (
        db.query(NarrativeEntry)
        .filter(NarrativeEntry.owner_id == owner_id)
        .order_by(NarrativeEntry.generated_at.desc(), NarrativeEntry.id.asc())
        .limit(limit)
        .all()
    )


def list_capture_entries(db: Session, capture_id: int, caller_id: str) -> list[NarrativeEntry]:
    get_capture(db, capture_id, caller_id)
    return (
        db.query(NarrativeEntry)
        .filter(NarrativeEntry.capture_id == capture_id)
        .order_by(NarrativeEntry.id.asc())
        .all()
    )


def list_public_entries(db: Session, external_id: str, limit: int = 100) -> list[NarrativeEntry]:
    """Entries shown on a user's public memoir page."""
    user = get_user(db, external_id)
    if not user.is_memoir_public:
        raise MemoirsNotPublicError(external_id)
    return (
        db.query(NarrativeEntry)
        .filter(
            NarrativeEntry.owner_id == external_id,
            NarrativeEntry.is_public.is_(True),
        )
        .order_by(NarrativeEntry.generated_at.desc(), NarrativeEntry.id.asc())
        .limit(limit)
        .all()
    )


def get_schedule_status(
    db: Session, capture_id: int, caller_id: str
) -> Optional[SynthesisSchedule]:
    get_capture(db, capture_id, caller_id)
    return (
        db.query(SynthesisSchedule)
        .filter(SynthesisSchedule.capture_id == capture_id)
        .order_by(SynthesisSchedule.id.desc())
        .first()
    )
