"""
Speech-to-text and title generation against the upstream API.

Transcriber.transcribe(audio, filename) -> TranscriptionResult   (raises UpstreamTranscriptionError)
TitleGenerator.generate(text)          -> str                   (never raises; falls back to "Untitled")
"""
from __future__ import annotations

import io
import json
import re
from dataclasses import dataclass
from typing import Optional, Protocol

from openai import OpenAI, OpenAIError

from phantom_pen.clients.openai_client import get_openai_client
from phantom_pen.core.config import settings
from phantom_pen.core.errors import UpstreamTranscriptionError
from phantom_pen.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TITLE = "Untitled"
TITLE_MAX_CHARS = 30
TITLE_SOURCE_CHARS = 500

_TITLE_CLEAN_RE = re.compile(r"[^\w\s\-']", re.UNICODE)


@dataclass
class TranscriptionResult:
    text: str


class Transcriber(Protocol):
    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> TranscriptionResult: ...


class TitleGenerator(Protocol):
    def generate(self, text: str) -> str: ...


def clean_title(raw: Optional[str]) -> str:
    """Strip special characters and cap the length. Empty → DEFAULT_TITLE."""
    title = _TITLE_CLEAN_RE.sub("", raw or "")
    title = " ".join(title.split())[:TITLE_MAX_CHARS].strip()
    return title or DEFAULT_TITLE


def build_title_prompt(text: str) -> str:
    return (
        "You are a title generator. Generate a short, descriptive title "
        f"(max {TITLE_MAX_CHARS} characters) for the transcription below. "
        "Do not include any special characters.\n"
        'Return ONLY a JSON object like: { "title": "Productive Day" }\n\n'
        f"Transcription:\n{text[:TITLE_SOURCE_CHARS]}"
    )


class OpenAITranscriber:
    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.STT_MODEL

    def transcribe(self, audio: bytes, filename: str = "audio.webm") -> TranscriptionResult:
        if not audio:
            raise UpstreamTranscriptionError("Audio upload is empty.")
        buf = io.BytesIO(audio)
        buf.name = filename
        logger.info("Transcribing %d bytes with %s", len(audio), self.model)
        try:
            client = self._client or get_openai_client()
            response = client.audio.transcriptions.create(model=self.model, file=buf)
        except OpenAIError as exc:
            logger.error("Transcription call failed: %s", exc)
            raise UpstreamTranscriptionError() from exc

        text = (getattr(response, "text", "") or "").strip()
        logger.info("Transcription completed: %d characters", len(text))
        return TranscriptionResult(text=text)


class OpenAITitleGenerator:
    def __init__(self, client: Optional[OpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.TITLE_MODEL

    def generate(self, text: str) -> str:
        if not text.strip():
            return DEFAULT_TITLE
        try:
            client = self._client or get_openai_client()
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": build_title_prompt(text)}],
                temperature=0,
                max_tokens=50,
                response_format={"type": "json_object"},
            )
            raw = response.choices[0].message.content or "{}"
            return clean_title(json.loads(raw).get("title"))
        except (OpenAIError, ValueError, AttributeError, IndexError) as exc:
            logger.warning("Title generation failed, using default: %s", exc)
            return DEFAULT_TITLE


_transcriber: Optional[Transcriber] = None
_title_generator: Optional[TitleGenerator] = None


def get_transcriber() -> Transcriber:
    global _transcriber
    if _transcriber is None:
        _transcriber = OpenAITranscriber()
    return _transcriber


def get_title_generator() -> TitleGenerator:
    global _title_generator
    if _title_generator is None:
        _title_generator = OpenAITitleGenerator()
    return _title_generator
