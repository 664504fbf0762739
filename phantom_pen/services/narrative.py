"""
Narrative generator: transcript + style profile → dated memoir entries.

Public API
----------
NarrativeGenerator                         (protocol)
OpenAINarrativeGenerator.generate(t, s)    -> list[NarrativeDraft]
build_style_guide(style)                   -> str
build_prompt(transcript, style)            -> str
parse_narrative_response(raw, max_words)   -> list[NarrativeDraft]

The upstream model is slow, costs money and occasionally returns garbage,
so its output is parsed defensively: anything that is not a non-empty list
of {date, title, content} raises UpstreamGenerationError.
"""
from __future__ import annotations

import json
from typing import Any, Optional, Protocol

from openai import OpenAI, OpenAIError
from pydantic import TypeAdapter, ValidationError

from phantom_pen.clients.openai_client import get_openai_client
from phantom_pen.core.config import settings
from phantom_pen.core.errors import UpstreamGenerationError
from phantom_pen.core.logging import get_logger
from phantom_pen.schemas.narrative import NarrativeDraft
from phantom_pen.schemas.user import StyleProfile

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a skilled personalized memoir writer who follows the style guide "
    "provided by the user. You always answer with JSON only."
)

_DRAFTS = TypeAdapter(list[NarrativeDraft])


class NarrativeGenerator(Protocol):
    def generate(self, transcript: str, style: StyleProfile) -> list[NarrativeDraft]: ...


# ---------------------------------------------------------------------------
# Prompt building (pure)
# ---------------------------------------------------------------------------

def build_style_guide(style: StyleProfile) -> str:
    parts = []

    if style.writing_style == "musical-descriptive":
        parts.append("Write in a vivid, flowing style with rich descriptions")
    else:
        parts.append("Write in a clear, direct style with simple language")

    if style.voice_style == "scene-focused":
        parts.append("Drop the reader directly into the scene")
    else:
        parts.append("Include reflection on meaning and significance")

    if style.candor_level == "fully-candid":
        parts.append("Be completely honest and open")
    else:
        parts.append("Soften harsh details while maintaining truth")

    if style.humor_style == "natural-humor":
        parts.append("Include natural humor where appropriate")
    else:
        parts.append("Keep humor subtle and in the background")

    return ". ".join(parts) + "."


def build_prompt(transcript: str, style: StyleProfile, max_words: int = 200) -> str:
    feeling = style.feeling_intent or "Create an engaging, meaningful story"
    motivation = style.opener or "Share personal experiences and insights"
    return f"""Transform this voice note into memoir entries.

{build_style_guide(style)}

User's intended feeling: {feeling}
User's memoir motivation: {motivation}

Voice note content:
"{transcript}"

Respond with a JSON object of this exact shape:
{{
  "entries": [
    {{
      "date": "19 May 1956",
      "title": "Your compelling title here",
      "content": "Your memoir content here, written in the specified style"
    }}
  ]
}}

Requirements:
- Split the note into several entries only if it clearly covers different days
- Max {max_words} words of content per entry
- Date in "DD MMM YYYY" format; use today's date if the note gives no date
- Keep every fact from the voice note"""


# ---------------------------------------------------------------------------
# Response parsing (pure)
# ---------------------------------------------------------------------------

def _clip_words(text: str, max_words: int) -> str:
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words])


def parse_narrative_response(raw: Optional[str], max_words: int = 200) -> list[NarrativeDraft]:
    """
    Validate an LLM reply. Accepts a bare JSON array or an object wrapping
    the array under "entries" (json_object mode forces an object).
    """
    if not raw or not raw.strip():
        raise UpstreamGenerationError("No response from narrative generator.")

    try:
        payload: Any = json.loads(raw)
    except ValueError as exc:
        raise UpstreamGenerationError("Narrative response is not valid JSON.", raw=raw) from exc

    if isinstance(payload, dict):
        payload = payload.get("entries")

    try:
        drafts = _DRAFTS.validate_python(payload)
    except ValidationError as exc:
        raise UpstreamGenerationError(
            f"Invalid narrative response format: {exc.error_count()} error(s).", raw=raw
        ) from exc

    if not drafts:
        raise UpstreamGenerationError("Narrative response should be a non-empty array.", raw=raw)

    for draft in drafts:
        draft.content = _clip_words(draft.content, max_words)
    return drafts


# ---------------------------------------------------------------------------
# Upstream implementation
# ---------------------------------------------------------------------------

class OpenAINarrativeGenerator:
    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        max_words: Optional[int] = None,
    ):
        self._client = client
        self.model = model or settings.CHAT_MODEL
        self.temperature = settings.NARRATIVE_TEMPERATURE if temperature is None else temperature
        self.timeout = timeout or settings.NARRATIVE_TIMEOUT_SECONDS
        self.max_words = max_words or settings.NARRATIVE_MAX_WORDS

    def generate(self, transcript: str, style: StyleProfile) -> list[NarrativeDraft]:
        prompt = build_prompt(transcript, style, self.max_words)
        try:
            client = self._client or get_openai_client()
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except OpenAIError as exc:
            logger.error("Narrative generation call failed: %s", exc)
            raise UpstreamGenerationError(f"Narrative generation failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        logger.debug("Narrative generator raw reply: %s", content)
        return parse_narrative_response(content, self.max_words)


_generator: Optional[NarrativeGenerator] = None


def get_narrative_generator() -> NarrativeGenerator:
    global _generator
    if _generator is None:
        _generator = OpenAINarrativeGenerator()
    return _generator
