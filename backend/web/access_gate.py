"""
Access gate for teacher-only surfaces.

Why:
    One place decides, per request and before any handler runs, whether the
    caller may proceed. The decision is a pure function of (path, method,
    session) so it can be tested without an app.

Rules (in order):
    1. `/laporan/*` pages except the login page need a session → 303 to login.
    2. Teacher-only APIs need a session → 401 JSON (APIs never redirect).
    3. The login page with a session → 303 to the teacher landing page.
    4. Everything else passes through.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from backend.identity_access.session_codec import TeacherSession

TEACHER_AREA = "/laporan"
LOGIN_PAGE = "/laporan/login"
LANDING_PAGE = "/laporan"
DENIED_MESSAGE = "Akses ditolak. Halaman ini khusus guru."


@dataclass(frozen=True)
class GateDecision:
    action: str  # "allow" | "redirect" | "deny"
    location: Optional[str] = None
    status: int = 200

    @property
    def allowed(self) -> bool:
        return self.action == "allow"


ALLOW = GateDecision(action="allow")


def _is_teacher_page(path: str) -> bool:
    return path == TEACHER_AREA or path.startswith(TEACHER_AREA + "/")


def is_teacher_only_api(path: str, method: str) -> bool:
    if path == "/api/sheet" and method.upper() == "GET":
        return True
    return path in ("/api/sheet/summary", "/api/sheet/rombel")


def decide(path: str, method: str, session: Optional[TeacherSession]) -> GateDecision:
    if _is_teacher_page(path) and path != LOGIN_PAGE and session is None:
        return GateDecision(action="redirect", location=LOGIN_PAGE, status=303)
    if is_teacher_only_api(path, method) and session is None:
        return GateDecision(action="deny", status=401)
    if path == LOGIN_PAGE and session is not None:
        return GateDecision(action="redirect", location=LANDING_PAGE, status=303)
    return ALLOW
