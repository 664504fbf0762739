"""
Single integration point for the OpenAI-compatible upstream API.

Speech-to-text, title generation and memoir generation all go through the
client built here. OPENAI_BASE_URL may point at Groq or any other host that
speaks the same protocol.
"""
from __future__ import annotations

from typing import Optional

from openai import OpenAI, OpenAIError

from phantom_pen.core.config import settings
from phantom_pen.core.logging import get_logger

logger = get_logger(__name__)

_client: Optional[OpenAI] = None


def _strip_outer_quotes(s: str) -> str:
    """Users sometimes put OPENAI_BASE_URL="https://..." including quotes."""
    s2 = (s or "").strip()
    if len(s2) >= 2 and s2[0] == s2[-1] and s2[0] in ("'", '"'):
        return s2[1:-1].strip()
    return s2


def normalize_base_url(raw: Optional[str]) -> Optional[str]:
    """
    Return the base URL without trailing slashes or an accidental endpoint
    suffix (".../v1/audio/transcriptions" → ".../v1"). None keeps the SDK default.
    """
    if not raw:
        return None
    base = _strip_outer_quotes(raw)
    if not base:
        return None
    if not (base.startswith("http://") or base.startswith("https://")):
        raise OpenAIError(f"OPENAI_BASE_URL is invalid (missing scheme): {base!r}")
    base = base.rstrip("/")
    if "/v1/" in base:
        base = base.split("/v1/")[0] + "/v1"
    return base


def get_openai_client() -> OpenAI:
    """Build the shared client lazily so importing the app never needs a key."""
    global _client
    if _client is None:
        base_url = normalize_base_url(settings.OPENAI_BASE_URL)
        _client = OpenAI(
            api_key=settings.OPENAI_API_KEY or None,
            base_url=base_url,
            timeout=settings.NARRATIVE_TIMEOUT_SECONDS,
            max_retries=settings.OPENAI_MAX_RETRIES,
        )
        logger.info("OpenAI-compatible client ready (base_url=%s)", base_url or "default")
    return _client
