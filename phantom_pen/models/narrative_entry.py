"""
NarrativeEntry — one dated memoir fragment synthesized from a Capture.

Rules:
- Written only by the synthesis worker; a Capture's set is replaced as a
  whole on each successful run, never patched entry by entry.
- is_public mirrors the source Capture (services/cascade.py).
- date is the in-story label ("DD MMM YYYY"), not the generation time.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from phantom_pen.db.base import Base


class NarrativeEntry(Base):
    __tablename__ = "narrative_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    capture_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("captures.id"), nullable=False, index=True
    )
    date: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
