"""
Shared authentication utilities for the web adapter.

Why:
    Keep the teacher-session cookie policy in one place so the login, logout
    and middleware paths cannot drift apart.

Design:
    The helpers are thin wrappers around Starlette's cookie API. The cookie
    value itself comes from `identity_access.session_codec`.
"""

from __future__ import annotations

from fastapi import Response

from backend.identity_access.session_codec import SESSION_TTL_SECONDS, TEACHER_SESSION_COOKIE


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - secure: True
      - samesite: "lax"  # Allow top-level navigations to send the cookie
    """
    # Lax keeps the cookie on top-level navigations (e.g. following a link
    # into /laporan) while suppressing it on cross-site subrequests.
    return {"secure": True, "samesite": "lax"}


def set_session_cookie(response: Response, value: str, *, environment: str = "dev") -> None:
    """Attach the teacher session cookie (host-only, fixed 8h lifetime)."""
    opts = cookie_opts(environment)
    response.set_cookie(
        key=TEACHER_SESSION_COOKIE,
        value=value,
        max_age=SESSION_TTL_SECONDS,
        path="/",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
    )


def clear_session_cookie(response: Response, *, environment: str = "dev") -> None:
    opts = cookie_opts(environment)
    response.delete_cookie(
        key=TEACHER_SESSION_COOKIE,
        path="/",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
    )


def private_no_store() -> dict:
    return {"Cache-Control": "private, no-store"}
