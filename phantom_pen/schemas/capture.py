"""
Capture request / response schemas.

POST  /captures                     → CreateCaptureRequest     → CaptureResponse
POST  /captures/blank               → BlankCaptureRequest      → CaptureResponse
GET   /captures                     → CaptureListResponse
PATCH /captures/{id}/title          → UpdateTitleRequest       → CaptureResponse
PUT   /captures/{id}/transcript     → UpdateTranscriptRequest  → CaptureResponse
PUT   /captures/{id}/visibility     → SetVisibilityRequest     → CaptureResponse
"""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, field_validator


TITLE_MAX_LENGTH = 256
TRANSCRIPT_MAX_LENGTH = 200_000


class ContentBlock(BaseModel):
    """One editor block (heading, paragraph, …)."""
    type: str = Field(default="paragraph", examples=["paragraph", "heading"])
    content: str = ""
    props: Optional[dict[str, Any]] = None


def _strip_title(v: str) -> str:
    stripped = v.strip() if isinstance(v, str) else v
    if not stripped:
        raise ValueError("title must not be empty after stripping whitespace")
    return stripped


class CreateCaptureRequest(BaseModel):
    """Create a note from text the client already has (typed or transcribed)."""
    title: Annotated[str, Field(min_length=1, max_length=TITLE_MAX_LENGTH)]
    transcript: Annotated[str, Field(max_length=TRANSCRIPT_MAX_LENGTH)] = ""
    content: Optional[list[ContentBlock]] = Field(
        default=None,
        description="Editor blocks. Derived from the transcript when omitted.",
    )

    strip_title = field_validator("title", mode="before")(_strip_title)


class BlankCaptureRequest(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=TITLE_MAX_LENGTH)] = "Untitled"

    strip_title = field_validator("title", mode="before")(_strip_title)


class UpdateTitleRequest(BaseModel):
    title: Annotated[str, Field(min_length=1, max_length=TITLE_MAX_LENGTH)]

    strip_title = field_validator("title", mode="before")(_strip_title)


class UpdateTranscriptRequest(BaseModel):
    transcript: Annotated[str, Field(max_length=TRANSCRIPT_MAX_LENGTH)]
    content: Optional[list[ContentBlock]] = None


class SetVisibilityRequest(BaseModel):
    is_public: bool


class CaptureResponse(BaseModel):
    """Full capture as seen by its owner (or by anyone, when public)."""
    id: int
    owner_id: str
    title: str
    transcript: str
    content: list[ContentBlock] = Field(default_factory=list)
    is_public: bool
    created_at: str
    updated_at: str


class CaptureSummary(BaseModel):
    """List item: plain-text preview instead of the full transcript."""
    id: int
    title: str
    preview: str
    is_public: bool
    created_at: str
    updated_at: str


class CaptureListResponse(BaseModel):
    total: int
    items: list[CaptureSummary]
