"""
Teacher authentication routes (router-only module).

Why:
    Keep the login/logout/session endpoints in a dedicated router. Credentials
    are checked by the external identity service through `IdentityBridge`;
    this module only maps bridge results to HTTP and manages the cookie.

Notes:
    - The session for the current request is materialized once by the access
      gate middleware (`request.state.teacher_session`).
    - Bridge calls use blocking `requests`; they run in the threadpool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from backend.identity_access.bridge import IdentityBridge, LoginErr
from backend.identity_access.config import IdentityConfig
from backend.identity_access.session_codec import encode_session
from backend.web.auth_utils import clear_session_cookie, private_no_store, set_session_cookie
from backend.web.config import current_environment

auth_router = APIRouter(tags=["Auth"])  # explicit paths, no prefix
logger = logging.getLogger("laporan.web.auth")


def load_identity_config() -> IdentityConfig:
    """Read identity endpoints from the environment (tests monkeypatch this)."""
    return IdentityConfig.from_env()


def _current_session(request: Request):
    return getattr(request.state, "teacher_session", None)


@auth_router.post("/api/auth/login")
async def auth_login(request: Request):
    """
    Log a teacher in via the identity service and set the session cookie.

    Behavior:
        - 200 `{message, teacher:{username,email}}` + `teacher_session` cookie
        - 400 missing identifier/password
        - 403 valid account that is not a teacher (no cookie)
        - 502 identity service unreachable or answered with an invalid payload
        - upstream status for rejected credentials
    Permissions:
        Public.
    """
    cfg = load_identity_config()
    if not cfg.configured:
        return JSONResponse({"error": "IDENTITY_API_URL belum dikonfigurasi"}, status_code=500, headers=private_no_store())
    try:
        body = await request.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}

    bridge = IdentityBridge(cfg)
    result = await run_in_threadpool(bridge.login, body.get("identifier"), body.get("password"))
    if isinstance(result, LoginErr):
        return JSONResponse({"error": result.message}, status_code=result.status, headers=private_no_store())

    value, session = encode_session(result.identity)
    response = JSONResponse({"message": "Login berhasil", "teacher": session.summary()}, headers=private_no_store())
    set_session_cookie(response, value, environment=current_environment())
    logger.info("Teacher session established user_id=%s", session.user_id)
    return response


@auth_router.post("/api/auth/logout")
async def auth_logout(request: Request):
    """
    End the teacher session. Always 200; the cookie is cleared even when the
    remote logout notification fails.
    """
    session = _current_session(request)
    if session is not None:
        bridge = IdentityBridge(load_identity_config())
        await run_in_threadpool(bridge.logout, session)
    response = JSONResponse({"message": "Logout berhasil"}, headers=private_no_store())
    clear_session_cookie(response, environment=current_environment())
    return response


@auth_router.get("/api/auth/session")
async def auth_session(request: Request):
    """Report whether the caller holds a valid teacher session."""
    session = _current_session(request)
    if session is None:
        return JSONResponse({"authenticated": False}, status_code=401, headers=private_no_store())
    return JSONResponse({"authenticated": True, "teacher": session.summary()}, headers=private_no_store())
