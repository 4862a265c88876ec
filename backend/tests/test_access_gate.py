"""
Access gate decisions (pure function, no app).

Rules:
- teacher pages without session → 303 to /laporan/login
- teacher-only APIs without session → 401 (never a redirect)
- login page with session → 303 to /laporan
- everything else passes
"""
from __future__ import annotations

import pytest

from backend.identity_access.session_codec import TeacherSession
from backend.web.access_gate import GateDecision, decide, is_teacher_only_api

SESSION = TeacherSession(token="t", user_id="1", username="guru", email="g@x", type=1, expires_at=10**13)


@pytest.mark.parametrize("path", ["/laporan", "/laporan/", "/laporan/rekap", "/laporan/siswa/12345"])
def test_teacher_pages_redirect_to_login_without_session(path):
    assert decide(path, "GET", None) == GateDecision(action="redirect", location="/laporan/login", status=303)


def test_login_page_is_public_without_session():
    assert decide("/laporan/login", "GET", None).allowed


def test_login_page_redirects_signed_in_teacher_to_landing():
    assert decide("/laporan/login", "GET", SESSION) == GateDecision(action="redirect", location="/laporan", status=303)


@pytest.mark.parametrize(
    "path, method",
    [
        ("/api/sheet", "GET"),
        ("/api/sheet/summary", "GET"),
        ("/api/sheet/rombel", "GET"),
        ("/api/sheet/summary", "POST"),
    ],
)
def test_teacher_only_apis_deny_without_session(path, method):
    decision = decide(path, method, None)
    assert decision.action == "deny"
    assert decision.status == 401
    assert decision.location is None


@pytest.mark.parametrize(
    "path, method",
    [
        ("/api/sheet", "POST"),
        ("/api/identity/student", "GET"),
        ("/api/auth/login", "POST"),
        ("/health", "GET"),
        ("/", "GET"),
        ("/laporanku", "GET"),
    ],
)
def test_public_surfaces_pass_without_session(path, method):
    assert decide(path, method, None).allowed


def test_teacher_session_opens_teacher_surfaces():
    assert decide("/laporan", "GET", SESSION).allowed
    assert decide("/api/sheet", "GET", SESSION).allowed
    assert decide("/api/sheet/summary", "GET", SESSION).allowed


def test_sheet_submission_is_not_teacher_only():
    assert not is_teacher_only_api("/api/sheet", "POST")
    assert is_teacher_only_api("/api/sheet", "get")
