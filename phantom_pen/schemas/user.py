"""
User / style-profile schemas.

PUT  /users/me          → UpsertUserRequest   → UserResponse
PUT  /users/me/profile  → StyleProfileUpdate  → UserResponse
"""
from __future__ import annotations

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field

from phantom_pen.models.user import CandorLevel, HumorStyle, VoiceStyle, WritingStyle


class StyleProfile(BaseModel):
    """Preferences steering memoir generation. Every field is optional."""
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    voice_style: Optional[VoiceStyle] = None
    writing_style: Optional[WritingStyle] = None
    candor_level: Optional[CandorLevel] = None
    humor_style: Optional[HumorStyle] = None
    feeling_intent: Optional[str] = None
    opener: Optional[str] = None


class StyleProfileUpdate(BaseModel):
    """Onboarding answers. All choices are required at once."""
    model_config = ConfigDict(use_enum_values=True)

    opener: Annotated[str, Field(max_length=2_000)]
    feeling_intent: Annotated[str, Field(max_length=2_000)]
    voice_style: VoiceStyle
    writing_style: WritingStyle
    candor_level: CandorLevel
    humor_style: HumorStyle


class UpsertUserRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=320)
    first_name: Optional[str] = Field(default=None, max_length=128)
    last_name: Optional[str] = Field(default=None, max_length=128)
    profile_picture: Optional[str] = Field(default=None, max_length=1024)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_picture: Optional[str] = None
    onboarding_completed: bool
    is_memoir_public: bool
    style: StyleProfile
