"""
Debounced synthesis scheduler.

Every content edit on a capture calls `schedule(db, capture)`, which
cancels whatever was pending for that capture and starts a fresh quiet
period. A burst of edits therefore collapses into one synthesis run that
sees the final text.

States per capture (rows of synthesis_schedules):

  NoSchedule ──edit──▶ Active(run_at) ──fire──▶ Processing ──ok──▶ NoSchedule
       ▲                   │   ▲                     └──error──▶ Failed
       └───────────────────┘   └───────────edit (from any state)───────┘

Rules:
- The cancel → submit → insert sequence runs under a per-capture lock and
  a row lock on the capture, and is committed once: two `active` rows for
  the same capture never coexist.
- Scheduling is best effort. `schedule` never raises; the edit that
  triggered it has already been committed by the caller.
"""
from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session

from phantom_pen.core.config import settings
from phantom_pen.core.errors import SchedulingError
from phantom_pen.core.logging import get_logger
from phantom_pen.models.capture import Capture
from phantom_pen.models.synthesis_schedule import ScheduleStatus, SynthesisSchedule
from phantom_pen.services.cascade import drop_schedules
from phantom_pen.services.jobs import JobRunner, ThreadedJobRunner, new_handle
from phantom_pen.services.narrative import NarrativeGenerator, get_narrative_generator
from phantom_pen.services.synthesis import SynthesisOutcome, run_synthesis

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class SynthesisScheduler:
    def __init__(
        self,
        runner: JobRunner,
        session_factory: Callable[[], Session],
        generator: NarrativeGenerator,
        delay_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.runner = runner
        self.session_factory = session_factory
        self.generator = generator
        self.delay_seconds = (
            settings.SYNTHESIS_DELAY_SECONDS if delay_seconds is None else delay_seconds
        )
        self.clock = clock
        # Entries vanish once no edit or job holds a reference to the lock.
        self._locks: weakref.WeakValueDictionary[int, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Per-capture mutual exclusion
    # ------------------------------------------------------------------

    def _lock_for(self, capture_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(capture_id)
            if lock is None:
                lock = self._locks[capture_id] = threading.Lock()
            return lock

    @contextmanager
    def capture_lock(self, capture_id: int) -> Iterator[None]:
        with self._lock_for(capture_id):
            yield

    def forget(self, capture_id: int) -> None:
        """Drop the lock of a deleted capture."""
        with self._locks_guard:
            self._locks.pop(capture_id, None)

    # ------------------------------------------------------------------
    # Schedule side
    # ------------------------------------------------------------------

    def cancel_job(self, handle: str) -> bool:
        cancelled = self.runner.cancel(handle)
        if cancelled:
            logger.info("Cancelled pending synthesis job %s", handle)
        return cancelled

    def schedule(self, db: Session, capture: Capture) -> Optional[SynthesisSchedule]:
        """Restart the quiet period for `capture`. Returns the new active row, or None on failure."""
        capture_id = capture.id
        try:
            return self._reschedule(db, capture_id)
        except Exception as exc:
            db.rollback()
            logger.error("Could not schedule synthesis for capture %s: %s", capture_id, exc)
            return None

    def _reschedule(self, db: Session, capture_id: int) -> SynthesisSchedule:
        with self.capture_lock(capture_id):
            capture = (
                db.query(Capture)
                .filter(Capture.id == capture_id)
                .with_for_update()
                .first()
            )
            if capture is None:
                raise SchedulingError(capture_id, "capture no longer exists")

            dropped = drop_schedules(db, capture_id, self.cancel_job)

            handle = new_handle()
            try:
                self.runner.submit(
                    self.delay_seconds, self.run,
                    capture_id, capture.owner_id, handle,
                    handle=handle,
                )
            except Exception as exc:
                # The old jobs are already cancelled; keep the table in step with that.
                db.commit()
                raise SchedulingError(capture_id, str(exc)) from exc

            schedule = SynthesisSchedule(
                owner_id=capture.owner_id,
                capture_id=capture_id,
                run_at=self.clock() + timedelta(seconds=self.delay_seconds),
                status=ScheduleStatus.active,
                job_handle=handle,
                source_revision=capture.content_revision,
            )
            db.add(schedule)
            try:
                db.commit()
            except Exception:
                db.rollback()
                self.runner.cancel(handle)
                raise

        logger.info(
            "Synthesis for capture %s scheduled in %.1fs (job %s, replaced %d)",
            capture_id, self.delay_seconds, handle, dropped,
        )
        return schedule

    # ------------------------------------------------------------------
    # Job side
    # ------------------------------------------------------------------

    def run(self, capture_id: int, owner_id: str, handle: Optional[str] = None) -> SynthesisOutcome:
        logger.info("Synthesis job %s fired for capture %s", handle, capture_id)
        return run_synthesis(
            self.session_factory,
            self.generator,
            capture_id,
            owner_id,
            self._lock_for(capture_id),
            handle,
        )

    def shutdown(self) -> None:
        self.runner.shutdown()


_scheduler: Optional[SynthesisScheduler] = None


def get_scheduler() -> SynthesisScheduler:
    """FastAPI dependency; overridden in tests."""
    global _scheduler
    if _scheduler is None:
        from phantom_pen.db.base import SessionLocal

        _scheduler = SynthesisScheduler(
            runner=ThreadedJobRunner(),
            session_factory=SessionLocal,
            generator=get_narrative_generator(),
        )
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown()
        _scheduler = None
