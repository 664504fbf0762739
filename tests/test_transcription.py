"""
Speech-to-text and title generation against stub OpenAI clients.
"""
import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, OpenAIError

from phantom_pen.clients import openai_client
from phantom_pen.clients.openai_client import normalize_base_url
from phantom_pen.core.config import settings
from phantom_pen.core.errors import UpstreamTranscriptionError
from phantom_pen.models.voice_upload import UploadStatus
from phantom_pen.services.ingestion import list_voice_uploads, transcribe_upload
from phantom_pen.services.transcription import (
    DEFAULT_TITLE,
    OpenAITitleGenerator,
    OpenAITranscriber,
    build_title_prompt,
    clean_title,
)


def _connection_error():
    request = httpx.Request("POST", "https://example.invalid/v1/audio/transcriptions")
    return APIConnectionError(request=request)


class _Transcriptions:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


class _Completions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error

    def create(self, **kwargs):
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestCleanTitle:
    @pytest.mark.parametrize("raw, expected", [
        ("Productive Day!", "Productive Day"),
        ("  lots   of   space  ", "lots of space"),
        ("A" * 50, "A" * 30),
        ("", DEFAULT_TITLE),
        (None, DEFAULT_TITLE),
        ("!!!", DEFAULT_TITLE),
    ])
    def test_clean(self, raw, expected):
        assert clean_title(raw) == expected

    def test_prompt_truncates_source(self):
        prompt = build_title_prompt("x" * 2000)
        assert "x" * 500 in prompt
        assert "x" * 501 not in prompt


class TestTranscriber:
    def test_returns_stripped_text(self):
        transcriptions = _Transcriptions(text="  Hello there.  ")
        client = SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions))
        result = OpenAITranscriber(client=client, model="whisper").transcribe(b"abc", "a.webm")
        assert result.text == "Hello there."
        assert transcriptions.kwargs["model"] == "whisper"
        assert transcriptions.kwargs["file"].name == "a.webm"

    def test_upstream_error_is_mapped(self):
        transcriptions = _Transcriptions(error=_connection_error())
        client = SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions))
        with pytest.raises(UpstreamTranscriptionError):
            OpenAITranscriber(client=client).transcribe(b"abc")

    def test_empty_audio(self):
        with pytest.raises(UpstreamTranscriptionError):
            OpenAITranscriber(client=SimpleNamespace()).transcribe(b"")


class TestTitleGenerator:
    def _gen(self, content=None, error=None):
        client = SimpleNamespace(chat=SimpleNamespace(completions=_Completions(content, error)))
        return OpenAITitleGenerator(client=client)

    def test_title_from_json(self):
        assert self._gen(json.dumps({"title": "Lake #Trip"})).generate("We went.") == "Lake Trip"

    @pytest.mark.parametrize("content", ["not json", json.dumps({}), None])
    def test_bad_reply_falls_back(self, content):
        assert self._gen(content).generate("We went.") == DEFAULT_TITLE

    def test_upstream_error_falls_back(self):
        assert self._gen(error=_connection_error()).generate("We went.") == DEFAULT_TITLE

    def test_blank_text(self):
        assert self._gen().generate("   ") == DEFAULT_TITLE


class TestNormalizeBaseUrl:
    @pytest.mark.parametrize("raw, expected", [
        (None, None),
        ("", None),
        ("https://api.groq.com/openai/v1/", "https://api.groq.com/openai/v1"),
        ('"https://api.groq.com/openai/v1"', "https://api.groq.com/openai/v1"),
        ("https://api.groq.com/openai/v1/audio/transcriptions", "https://api.groq.com/openai/v1"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_base_url(raw) == expected

    def test_missing_scheme(self):
        with pytest.raises(OpenAIError):
            normalize_base_url("api.groq.com/openai/v1")


class TestMisconfiguredClient:
    @pytest.fixture()
    def bad_base_url(self, monkeypatch):
        monkeypatch.setattr(openai_client, "_client", None)
        monkeypatch.setattr(settings, "OPENAI_BASE_URL", "api.groq.com/openai/v1")

    def test_transcriber_reports_upstream_failure(self, bad_base_url):
        with pytest.raises(UpstreamTranscriptionError):
            OpenAITranscriber().transcribe(b"abc")

    def test_title_generator_falls_back(self, bad_base_url):
        assert OpenAITitleGenerator().generate("We went.") == DEFAULT_TITLE

    def test_ingestion_records_failed_upload(
        self, bad_base_url, db, scheduler, storage, titler, owner_id
    ):
        handle = storage.put(b"audio")
        with pytest.raises(UpstreamTranscriptionError):
            transcribe_upload(
                db, scheduler, storage, OpenAITranscriber(), titler,
                owner_id=owner_id, handle=handle,
            )
        failed = list_voice_uploads(db, owner_id, UploadStatus.failed)
        assert len(failed) == 1
        assert not storage.exists(handle)
