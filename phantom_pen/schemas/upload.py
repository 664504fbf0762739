"""
Upload / transcription schemas.

POST /uploads                       → UploadCreatedResponse
POST /uploads/{handle}/transcribe   → TranscribeRequest → TranscribeResponse
GET  /uploads                       → VoiceUploadListResponse
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class UploadCreatedResponse(BaseModel):
    handle: str = Field(description="Opaque blob handle to pass to /transcribe.")
    size: int


class TranscribeRequest(BaseModel):
    capture_id: Optional[int] = Field(
        default=None,
        description="Append to this capture instead of creating a new one.",
    )


class TranscribeResponse(BaseModel):
    capture_id: int
    handle: str
    text: str


class VoiceUploadResponse(BaseModel):
    id: int
    capture_id: Optional[int] = None
    status: str
    error_message: Optional[str] = None
    created_at: str


class VoiceUploadListResponse(BaseModel):
    total: int
    items: list[VoiceUploadResponse]
