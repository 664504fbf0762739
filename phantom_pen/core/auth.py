"""
Identity boundary.

Sign-in happens upstream (the identity proxy in front of the API). The proxy
forwards the authenticated subject in a header; everything below this module
only ever sees that subject string as the owner id.
"""
from __future__ import annotations

from fastapi import Request

from phantom_pen.core.config import settings
from phantom_pen.core.errors import NotAuthenticatedError


def get_current_user_id(request: Request) -> str:
    subject = (request.headers.get(settings.AUTH_HEADER) or "").strip()
    if not subject:
        raise NotAuthenticatedError()
    return subject
