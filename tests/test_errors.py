"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from phantom_pen.core.errors import (
    BlobNotFoundError,
    CaptureNotFoundError,
    EmptyUploadError,
    MemoirsNotPublicError,
    NotAuthenticatedError,
    ProfileNotFoundError,
    SchedulingError,
    SourceNotFoundError,
    UnauthorizedError,
    UpstreamGenerationError,
    UpstreamTranscriptionError,
    UserNotFoundError,
)


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    @pytest.mark.parametrize("err, status, code", [
        (NotAuthenticatedError(), 401, "NOT_AUTHENTICATED"),
        (UnauthorizedError("capture", 5), 403, "UNAUTHORIZED"),
        (CaptureNotFoundError(5), 404, "CAPTURE_NOT_FOUND"),
        (UserNotFoundError("u1"), 404, "USER_NOT_FOUND"),
        (ProfileNotFoundError("u1"), 404, "PROFILE_NOT_FOUND"),
        (SourceNotFoundError(5, "transcript is empty"), 422, "SOURCE_NOT_FOUND"),
        (BlobNotFoundError("abc"), 404, "BLOB_NOT_FOUND"),
        (EmptyUploadError("a.webm"), 422, "EMPTY_UPLOAD"),
        (MemoirsNotPublicError("u1"), 403, "MEMOIRS_NOT_PUBLIC"),
        (UpstreamTranscriptionError(), 502, "UPSTREAM_TRANSCRIPTION_FAILURE"),
        (UpstreamGenerationError("bad"), 502, "UPSTREAM_GENERATION_FAILURE"),
        (SchedulingError(5, "runner down"), 503, "SCHEDULING_FAILURE"),
    ])
    def test_status_and_code(self, err, status, code):
        assert err.http_status == status
        assert err.code == code
        assert err.to_dict()["code"] == code

    def test_unauthorized_details(self):
        d = UnauthorizedError("capture", 7).to_dict()
        assert d["details"] == {"resource": "capture", "id": 7}

    def test_source_not_found_message(self):
        err = SourceNotFoundError(3, "transcript is empty")
        assert "3" in err.message
        assert err.details["reason"] == "transcript is empty"

    def test_generation_error_truncates_raw(self):
        err = UpstreamGenerationError("bad", raw="x" * 2000)
        assert len(err.details["raw"]) == 500

    def test_to_dict_without_details(self):
        d = NotAuthenticatedError().to_dict()
        assert "code" in d
        assert "message" in d
        # details should not be in dict when empty
        assert "details" not in d

    def test_transcription_error_with_handle(self):
        err = UpstreamTranscriptionError(handle="h1")
        assert err.details == {"handle": "h1"}


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestAuthErrors:
    def test_missing_header(self, client):
        r = client.get("/captures")
        assert r.status_code == 401
        assert r.json()["code"] == "NOT_AUTHENTICATED"

    def test_blank_header(self, client):
        r = client.get("/captures", headers={"X-User-Id": "   "})
        assert r.status_code == 401


class TestValidationErrors:
    def test_blank_title_returns_validation_error(self, client, auth):
        r = client.post("/captures", json={"title": "   ", "transcript": "x"}, headers=auth)
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert isinstance(body["details"]["errors"], list)
        assert body["details"]["errors"][0]["field"] == "title"

    def test_missing_body(self, client, auth):
        r = client.put("/captures/1/visibility", json={}, headers=auth)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_bad_enum_in_profile(self, client, auth):
        client.put("/users/me", json={}, headers=auth)
        r = client.put("/users/me/profile", json={
            "opener": "x", "feeling_intent": "y",
            "voice_style": "loud", "writing_style": "clean-simple",
            "candor_level": "fully-candid", "humor_style": "natural-humor",
        }, headers=auth)
        assert r.status_code == 422


class TestNotFoundErrors:
    def test_capture_not_found(self, client, auth):
        r = client.get("/captures/999999999", headers=auth)
        assert r.status_code == 404
        body = r.json()
        assert body["code"] == "CAPTURE_NOT_FOUND"
        assert body["details"]["id"] == 999999999

    def test_user_not_found(self, client, auth):
        r = client.get("/users/me", headers=auth)
        assert r.status_code == 404
        assert r.json()["code"] == "USER_NOT_FOUND"

    def test_unknown_upload_handle(self, client, auth):
        r = client.post(f"/uploads/{'e' * 32}/transcribe", headers=auth)
        assert r.status_code == 404
        assert r.json()["code"] == "BLOB_NOT_FOUND"
