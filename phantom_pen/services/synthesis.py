"""
Synthesis worker: rewrite a capture's transcript into memoir entries.

Rules:
- Always reads the capture as it is *now*, never a snapshot from schedule time.
- Replacement is one transaction, new rows inserted before old rows deleted:
  a failure anywhere leaves the previous entries untouched.
- If the capture's content_revision moved while the generator was running,
  the result is discarded (a newer schedule owns that content).
- Failures are recorded on the schedule row, not raised, because nobody
  is waiting on a background job.

Public API
----------
synthesize_capture(db, generator, capture_id, owner_id)  -> int | None   (raises)
run_synthesis(session_factory, generator, capture_id, owner_id, lock, handle)
                                                          -> SynthesisOutcome
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from phantom_pen.core.config import settings
from phantom_pen.core.errors import (
    PhantomPenException,
    ProfileNotFoundError,
    SourceNotFoundError,
)
from phantom_pen.core.logging import get_logger
from phantom_pen.models.capture import Capture
from phantom_pen.models.narrative_entry import NarrativeEntry
from phantom_pen.models.synthesis_schedule import ScheduleStatus, SynthesisSchedule
from phantom_pen.models.user import User
from phantom_pen.schemas.narrative import NarrativeDraft
from phantom_pen.schemas.user import StyleProfile
from phantom_pen.services.narrative import NarrativeGenerator

logger = get_logger(__name__)


class OutcomeStatus:
    COMPLETED  = "completed"
    SUPERSEDED = "superseded"
    FAILED     = "failed"


@dataclass
class SynthesisOutcome:
    capture_id: int
    status: str
    entries_written: int = 0
    error: Optional[str] = None
    error_code: Optional[str] = None


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_source(db: Session, capture_id: int) -> Capture:
    capture = db.get(Capture, capture_id)
    if capture is None:
        raise SourceNotFoundError(capture_id, "capture does not exist")
    if not (capture.transcript or "").strip():
        raise SourceNotFoundError(capture_id, "transcript is empty")
    return capture


def load_style_profile(db: Session, owner_id: str) -> StyleProfile:
    user = db.query(User).filter(User.external_id == owner_id).first()
    if user is None:
        raise ProfileNotFoundError(owner_id)
    return StyleProfile.model_validate(user)


# ---------------------------------------------------------------------------
# Schedule bookkeeping
# ---------------------------------------------------------------------------

def claim_schedule(
    db: Session,
    capture_id: int,
    lock: threading.Lock,
    handle: Optional[str] = None,
) -> Optional[int]:
    """
    active → processing for the schedule that fired. Returns its id, or None
    when no matching active row exists (cancelled or superseded job).
    """
    with lock:
        q = db.query(SynthesisSchedule).filter(
            SynthesisSchedule.capture_id == capture_id,
            SynthesisSchedule.status == ScheduleStatus.active,
        )
        if handle is not None:
            q = q.filter(SynthesisSchedule.job_handle == handle)
        schedule = q.order_by(SynthesisSchedule.id.desc()).first()
        if schedule is None:
            return None
        schedule.status = ScheduleStatus.processing
        db.commit()
        return schedule.id


def finish_schedule(db: Session, schedule_id: Optional[int]) -> None:
    if schedule_id is None:
        return
    schedule = db.get(SynthesisSchedule, schedule_id)
    if schedule is not None:
        db.delete(schedule)
        db.commit()


def fail_schedule(db: Session, schedule_id: Optional[int], message: str) -> None:
    if schedule_id is None:
        return
    schedule = db.get(SynthesisSchedule, schedule_id)
    if schedule is None:
        # Replaced by a newer edit while we were running; nothing to mark.
        return
    schedule.status = ScheduleStatus.failed
    schedule.error_message = message[:2000]
    db.commit()


# ---------------------------------------------------------------------------
# Replacement
# ---------------------------------------------------------------------------

def replace_entries(
    db: Session,
    capture_id: int,
    drafts: list[NarrativeDraft],
    expected_revision: int,
) -> Optional[int]:
    """
    Insert `drafts` and delete the previous entries, without committing.
    Returns None (writing nothing) when the capture changed since it was read.
    """
    capture = (
        db.query(Capture)
        .filter(Capture.id == capture_id)
        .with_for_update()
        .first()
    )
    if capture is None:
        raise SourceNotFoundError(capture_id, "capture was deleted during synthesis")
    if capture.content_revision != expected_revision:
        return None

    old_ids = [
        row.id
        for row in db.query(NarrativeEntry.id).filter(NarrativeEntry.capture_id == capture_id).all()
    ]
    generated_at = _now()
    for draft in drafts:
        db.add(NarrativeEntry(
            owner_id=capture.owner_id,
            capture_id=capture_id,
            date=draft.date,
            title=draft.title,
            content=draft.content,
            is_public=capture.is_public,
            generated_at=generated_at,
        ))
    db.flush()

    if old_ids:
        (
            db.query(NarrativeEntry)
            .filter(NarrativeEntry.id.in_(old_ids))
            .delete(synchronize_session=False)
        )
    return len(drafts)


def synthesize_capture(
    db: Session,
    generator: NarrativeGenerator,
    capture_id: int,
    owner_id: str,
    max_transcript_chars: Optional[int] = None,
) -> Optional[int]:
    """
    Run one synthesis for a capture. Returns the number of entries written,
    or None when the result was discarded as superseded. Raises on failure.
    """
    limit = max_transcript_chars or settings.NARRATIVE_MAX_TRANSCRIPT_CHARS

    capture = load_source(db, capture_id)
    revision = capture.content_revision
    transcript = capture.transcript.strip()[:limit]
    style = load_style_profile(db, owner_id)
    # Don't hold a transaction open across the slow upstream call.
    db.commit()

    drafts = generator.generate(transcript, style)

    try:
        written = replace_entries(db, capture_id, drafts, revision)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return written


# ---------------------------------------------------------------------------
# Job body
# ---------------------------------------------------------------------------

def run_synthesis(
    session_factory: Callable[[], Session],
    generator: NarrativeGenerator,
    capture_id: int,
    owner_id: str,
    lock: threading.Lock,
    handle: Optional[str] = None,
) -> SynthesisOutcome:
    db = session_factory()
    schedule_id: Optional[int] = None
    try:
        schedule_id = claim_schedule(db, capture_id, lock, handle)
        if schedule_id is None:
            logger.info(
                "No active schedule for capture %s (job %s); running as plain overwrite",
                capture_id, handle,
            )
        logger.info("Synthesizing capture %s", capture_id)

        written = synthesize_capture(db, generator, capture_id, owner_id)
        finish_schedule(db, schedule_id)

        if written is None:
            logger.info("Capture %s changed during synthesis; result discarded", capture_id)
            return SynthesisOutcome(capture_id=capture_id, status=OutcomeStatus.SUPERSEDED)

        logger.info("Capture %s synthesized into %d entr%s",
                    capture_id, written, "y" if written == 1 else "ies")
        return SynthesisOutcome(
            capture_id=capture_id,
            status=OutcomeStatus.COMPLETED,
            entries_written=written,
        )
    except Exception as exc:
        db.rollback()
        if isinstance(exc, PhantomPenException):
            message, code = exc.message, exc.code
        else:
            message, code = str(exc) or exc.__class__.__name__, "INTERNAL_ERROR"
        logger.error("Synthesis failed for capture %s: [%s] %s", capture_id, code, message)
        try:
            fail_schedule(db, schedule_id, message)
        except Exception:
            db.rollback()
            logger.exception("Could not record failure on schedule %s", schedule_id)
        return SynthesisOutcome(
            capture_id=capture_id,
            status=OutcomeStatus.FAILED,
            error=message,
            error_code=code,
        )
    finally:
        db.close()
