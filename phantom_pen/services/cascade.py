"""
Cross-entity consistency hooks.

These run inside the caller's unit of work and never commit: the root
service function (captures.py / users.py) commits once, so the originating
write and its cascade land together or not at all.

propagate_visibility(db, capture)             capture.is_public → its narrative entries
cascade_capture_delete(db, capture, cancel)   schedules (+ jobs), entries, uploads, capture
cascade_user_delete(db, user, cancel)         every capture cascade, uploads, user
"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.orm import Session

from phantom_pen.core.logging import get_logger
from phantom_pen.models.capture import Capture
from phantom_pen.models.narrative_entry import NarrativeEntry
from phantom_pen.models.synthesis_schedule import SynthesisSchedule
from phantom_pen.models.user import User
from phantom_pen.models.voice_upload import VoiceUpload

logger = get_logger(__name__)

# Given a job handle, try to cancel the delayed job behind it.
CancelJob = Callable[[str], bool]


def propagate_visibility(db: Session, capture: Capture) -> int:
    """Mirror the capture's visibility onto every derived entry. Returns rows touched."""
    updated = (
        db.query(NarrativeEntry)
        .filter(NarrativeEntry.capture_id == capture.id)
        .update({NarrativeEntry.is_public: capture.is_public}, synchronize_session="fetch")
    )
    if updated:
        logger.info(
            "Capture %s visibility → %s mirrored on %d entr%s",
            capture.id, "public" if capture.is_public else "private",
            updated, "y" if updated == 1 else "ies",
        )
    return updated


def drop_schedules(db: Session, capture_id: int, cancel_job: Optional[CancelJob]) -> int:
    """Cancel the delayed job behind every schedule row of a capture, then delete the rows."""
    schedules = db.query(SynthesisSchedule).filter(SynthesisSchedule.capture_id == capture_id).all()
    for schedule in schedules:
        if schedule.job_handle and cancel_job is not None:
            try:
                cancel_job(schedule.job_handle)
            except Exception as exc:
                # The row is the source of truth; a job that still fires finds nothing to do.
                logger.warning("Failed to cancel job %s: %s", schedule.job_handle, exc)
        db.delete(schedule)
    return len(schedules)


def cascade_capture_delete(
    db: Session,
    capture: Capture,
    cancel_job: Optional[CancelJob] = None,
) -> None:
    schedules = drop_schedules(db, capture.id, cancel_job)
    entries = (
        db.query(NarrativeEntry)
        .filter(NarrativeEntry.capture_id == capture.id)
        .delete(synchronize_session="fetch")
    )
    (
        db.query(VoiceUpload)
        .filter(VoiceUpload.capture_id == capture.id)
        .update({VoiceUpload.capture_id: None}, synchronize_session="fetch")
    )
    db.flush()
    db.delete(capture)
    db.flush()
    logger.info(
        "Capture %s deleted with %d entr%s and %d schedule(s)",
        capture.id, entries, "y" if entries == 1 else "ies", schedules,
    )


def cascade_user_delete(
    db: Session,
    user: User,
    cancel_job: Optional[CancelJob] = None,
) -> int:
    """Delete everything the user owns, then the user. Returns captures deleted."""
    captures = db.query(Capture).filter(Capture.owner_id == user.external_id).all()
    for capture in captures:
        cascade_capture_delete(db, capture, cancel_job)
    (
        db.query(VoiceUpload)
        .filter(VoiceUpload.owner_id == user.external_id)
        .delete(synchronize_session="fetch")
    )
    db.delete(user)
    db.flush()
    logger.info("User %s deleted with %d capture(s)", user.external_id, len(captures))
    return len(captures)
