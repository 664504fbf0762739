"""
Custom exception hierarchy for Phantom Pen.

Rule: every HTTP error has a machine-readable `code` string so clients
can branch on it without parsing English messages.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------

class PhantomPenException(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotAuthenticatedError(PhantomPenException):
    http_status = status.HTTP_401_UNAUTHORIZED
    code = "NOT_AUTHENTICATED"

    def __init__(self):
        super().__init__(message="Not authenticated.")


class UnauthorizedError(PhantomPenException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "UNAUTHORIZED"

    def __init__(self, resource: str, resource_id: int | str):
        super().__init__(
            message=f"Not allowed to access {resource} {resource_id}.",
            details={"resource": resource, "id": resource_id},
        )


class CaptureNotFoundError(PhantomPenException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "CAPTURE_NOT_FOUND"

    def __init__(self, capture_id: int):
        super().__init__(
            message=f"Capture {capture_id} not found.",
            details={"id": capture_id},
        )


class UserNotFoundError(PhantomPenException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"

    def __init__(self, external_id: str):
        super().__init__(
            message=f"User {external_id} not found.",
            details={"user_id": external_id},
        )


class ProfileNotFoundError(PhantomPenException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "PROFILE_NOT_FOUND"

    def __init__(self, owner_id: str):
        super().__init__(
            message=f"No style profile for user {owner_id}.",
            details={"user_id": owner_id},
        )


class SourceNotFoundError(PhantomPenException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "SOURCE_NOT_FOUND"

    def __init__(self, capture_id: int, reason: str):
        super().__init__(
            message=f"Capture {capture_id} cannot be synthesized: {reason}.",
            details={"id": capture_id, "reason": reason},
        )


class BlobNotFoundError(PhantomPenException):
    http_status = status.HTTP_404_NOT_FOUND
    code = "BLOB_NOT_FOUND"

    def __init__(self, handle: str):
        super().__init__(
            message=f"Upload {handle} not found.",
            details={"handle": handle},
        )


class EmptyUploadError(PhantomPenException):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "EMPTY_UPLOAD"

    def __init__(self, filename: str | None = None):
        super().__init__(
            message="Audio upload is empty.",
            details={"filename": filename} if filename else {},
        )


class MemoirsNotPublicError(PhantomPenException):
    http_status = status.HTTP_403_FORBIDDEN
    code = "MEMOIRS_NOT_PUBLIC"

    def __init__(self, external_id: str):
        super().__init__(
            message="User's memoirs are not public.",
            details={"user_id": external_id},
        )


class UpstreamTranscriptionError(PhantomPenException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_TRANSCRIPTION_FAILURE"

    def __init__(self, message: str = "Failed to transcribe audio.", handle: str | None = None):
        super().__init__(
            message=message,
            details={"handle": handle} if handle else {},
        )


class UpstreamGenerationError(PhantomPenException):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "UPSTREAM_GENERATION_FAILURE"

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(
            message=message,
            details={"raw": raw[:500]} if raw else {},
        )


class SchedulingError(PhantomPenException):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SCHEDULING_FAILURE"

    def __init__(self, capture_id: int, reason: str):
        super().__init__(
            message=f"Failed to schedule memoir generation for capture {capture_id}: {reason}",
            details={"id": capture_id},
        )


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def phantom_pen_exception_handler(request: Request, exc: PhantomPenException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return structured 422 with machine-readable field errors."""
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )
