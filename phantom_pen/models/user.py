"""
User — the identity-provider subject plus the memoir style profile.

The style profile is not a separate table: it is created at onboarding,
edited from settings and lives and dies with the user row.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
import enum

from phantom_pen.db.base import Base


class VoiceStyle(str, enum.Enum):
    scene_focused = "scene-focused"
    reflection_focused = "reflection-focused"


class WritingStyle(str, enum.Enum):
    clean_simple = "clean-simple"
    musical_descriptive = "musical-descriptive"


class CandorLevel(str, enum.Enum):
    fully_candid = "fully-candid"
    softened_details = "softened-details"


class HumorStyle(str, enum.Enum):
    natural_humor = "natural-humor"
    background_humor = "background-humor"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    external_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    first_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    profile_picture: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_memoir_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True
    )

    # Style profile (all optional until onboarding is done)
    opener: Mapped[str | None] = mapped_column(Text, nullable=True)
    feeling_intent: Mapped[str | None] = mapped_column(Text, nullable=True)
    voice_style: Mapped[str | None] = mapped_column(String(32), nullable=True)
    writing_style: Mapped[str | None] = mapped_column(String(32), nullable=True)
    candor_level: Mapped[str | None] = mapped_column(String(32), nullable=True)
    humor_style: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
