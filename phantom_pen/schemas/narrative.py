"""
Narrative (memoir) schemas.

NarrativeDraft is the validated shape of one item returned by the LLM;
the other models are API responses.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DATE_FORMAT = "%d %b %Y"
_ACCEPTED_DATE_FORMATS = (DATE_FORMAT, "%d %B %Y")


def today_label() -> str:
    return datetime.now(tz=timezone.utc).strftime(DATE_FORMAT)


def normalize_date_label(value: str | None) -> str:
    """
    Return `value` as "DD MMM YYYY". Blank → today (UTC).
    Full month names are accepted and shortened; anything else is rejected.
    """
    text = (value or "").strip()
    if not text:
        return today_label()
    for fmt in _ACCEPTED_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime(DATE_FORMAT)
        except ValueError:
            continue
    raise ValueError(f"date {text!r} is not in 'DD MMM YYYY' format")


ENTRY_TITLE_MAX_LENGTH = 256


class NarrativeDraft(BaseModel):
    """One memoir entry as produced by the narrative generator."""
    date: Optional[str] = Field(default=None, validate_default=True)
    title: str
    content: str

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Optional[str]) -> str:
        return normalize_date_label(v)

    @field_validator("title", "content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("must not be empty")
        return stripped

    @field_validator("title")
    @classmethod
    def clip_title(cls, v: str) -> str:
        # narrative_entries.title is VARCHAR(256)
        return v[:ENTRY_TITLE_MAX_LENGTH].rstrip()


class NarrativeEntryResponse(BaseModel):
    id: int
    capture_id: int
    date: str
    title: str
    content: str
    is_public: bool
    generated_at: str


class NarrativeListResponse(BaseModel):
    total: int
    items: list[NarrativeEntryResponse]


class ScheduleResponse(BaseModel):
    """Current synthesis ticket for a capture (absent when idle)."""
    capture_id: int
    status: str = Field(description='"active", "processing" or "failed".')
    run_at: str
    error_message: Optional[str] = None
