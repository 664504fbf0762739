"""
Capture — a user's voice note.

Rules:
- owner_id never changes after insert.
- updated_at is set explicitly on every title / transcript / content /
  visibility mutation (see services/captures.py `_touch`).
- content_revision only moves on content-affecting mutations; the synthesis
  worker uses it to detect that its input went stale mid-flight.
- content is a JSON-encoded list of editor blocks stored as Text.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from phantom_pen.db.base import Base


BLANK_TRANSCRIPT = "Click to start writing..."


class Capture(Base):
    __tablename__ = "captures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    transcript: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON array of editor blocks: {type, content, props?}",
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    content_revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
