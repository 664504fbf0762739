from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, Enum, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from phantom_pen.db.base import Base


class UploadStatus(str, enum.Enum):
    completed = "completed"
    failed = "failed"


class VoiceUpload(Base):
    """One transcription attempt for an uploaded audio blob."""

    __tablename__ = "voice_uploads"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    capture_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    blob_handle: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(UploadStatus, name="upload_status_enum"), nullable=False, index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
