"""
Browser session identity carried in an HTTP-only cookie.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass

from fastapi import Request, Response

from rorie.core.config import Settings, get_settings

# 16 random bytes, hex-encoded
_TOKEN_BYTES = 16
_TOKEN_RE = re.compile(r"^[0-9a-f]{32}$")


@dataclass(frozen=True)
class SessionCookie:
    """Resolved session token and whether it still has to be sent to the browser."""

    session_id: str
    is_new: bool = False


def generate_session_id() -> str:
    """Generate a new opaque session token."""
    return secrets.token_hex(_TOKEN_BYTES)


def is_valid_session_id(value: str | None) -> bool:
    return bool(value) and _TOKEN_RE.match(value) is not None


def resolve_session(request: Request, settings: Settings | None = None) -> SessionCookie:
    """Return the caller's session token, minting one when the cookie is absent or invalid."""
    settings = settings or get_settings()
    existing = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if is_valid_session_id(existing):
        return SessionCookie(session_id=existing)
    return SessionCookie(session_id=generate_session_id(), is_new=True)


def apply_session_cookie(
    response: Response,
    session: SessionCookie,
    settings: Settings | None = None,
) -> Response:
    """Attach the session cookie to an outgoing response if it was just created."""
    if not session.is_new:
        return response
    settings = settings or get_settings()
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.session_id,
        max_age=settings.session_cookie_max_age,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
        samesite="lax",
    )
    return response
