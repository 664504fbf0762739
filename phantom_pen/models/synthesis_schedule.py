"""
SynthesisSchedule — the ticket for one pending memoir rewrite.

Lifecycle (see services/scheduler.py and services/synthesis.py):

  active ──fire──▶ processing ──ok──▶ (row deleted)
                        └──error──▶ failed (kept for diagnosis)

Any content edit deletes every row for the capture (whatever its status)
and inserts a fresh `active` one, so at most one active row exists per capture.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from phantom_pen.db.base import Base


class ScheduleStatus(str, enum.Enum):
    active = "active"
    processing = "processing"
    failed = "failed"


class SynthesisSchedule(Base):
    __tablename__ = "synthesis_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    capture_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("captures.id"), nullable=False, index=True
    )
    run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(ScheduleStatus, name="schedule_status_enum"),
        nullable=False,
        default=ScheduleStatus.active,
        index=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
