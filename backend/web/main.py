"Laporan Ramadan"
from __future__ import annotations

from pathlib import Path
import logging
import os
import sys

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from backend.identity_access.session_codec import TEACHER_SESSION_COOKIE, decode_session
from backend.web import config as _cfg
from backend.web.access_gate import DENIED_MESSAGE, decide
from backend.web.auth_utils import private_no_store


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via RAMADAN_ENABLE_DOTENV (default true outside
      pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("RAMADAN_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

# --- App & Settings Setup -------------------------------------------------------

class AppSettings:
    def __init__(self) -> None:
        self._env_override: str | None = None

    @property
    def environment(self) -> str:
        if self._env_override is not None:
            return self._env_override
        return _cfg.current_environment()

    def override_environment(self, env: str | None) -> None:
        """Override environment for tests (e.g., "prod"), or reset with None."""
        self._env_override = env


logger = logging.getLogger("laporan.web")
SETTINGS = AppSettings()

app = FastAPI(title="Laporan Ramadan", description="Laporan amaliyah Ramadan siswa", version="0.1.0")

# --- Static Files & Routers -----------------------------------------------------

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

from backend.web.routes.auth import auth_router  # noqa: E402
from backend.web.routes.identity import identity_router  # noqa: E402
from backend.web.routes.pages import pages_router  # noqa: E402
from backend.web.routes.sheets import sheets_router  # noqa: E402

app.include_router(auth_router)
app.include_router(identity_router)
app.include_router(sheets_router)
app.include_router(pages_router)

# --- Access Gate Middleware -----------------------------------------------------

@app.middleware("http")
async def access_gate(request: Request, call_next):
    session = decode_session(request.cookies.get(TEACHER_SESSION_COOKIE))
    # Handlers read the decoded session from here instead of re-parsing the cookie.
    request.state.teacher_session = session
    decision = decide(request.url.path, request.method, session)
    if decision.action == "redirect":
        return RedirectResponse(url=decision.location, status_code=decision.status, headers=private_no_store())
    if decision.action == "deny":
        return JSONResponse({"error": DENIED_MESSAGE}, status_code=decision.status, headers=private_no_store())
    return await call_next(request)

# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    if SETTINGS.environment in ("prod", "production"):
        csp = (
            "default-src 'self'; script-src 'self'; style-src 'self'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self'; frame-ancestors 'self';"
        )
    else:
        csp = (
            "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; font-src 'self' data:; connect-src 'self';"
        )
    response.headers.setdefault("Content-Security-Policy", csp)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response

# --- Health ----------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "ok"}
