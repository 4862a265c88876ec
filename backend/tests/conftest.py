"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and give every test a clean,
deterministic app state: an in-memory report repository with a fixed
"today", the env-selected student directory and no leftover identity or
environment variables.
"""
import sys
from pathlib import Path

import pytest

# Ensure `backend.*` and the test helpers are importable across tests
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

from utils.sheets import FIXED_TODAY  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Clear env-driven toggles so a test opting into prod/identity settings
    cannot leak them into the next one."""
    for var in (
        "RAMADAN_ENV",
        "IDENTITY_API_URL",
        "IDENTITY_CSRF_URL",
        "IDENTITY_LOGIN_URL",
        "IDENTITY_LOGOUT_URL",
        "STUDENT_DIRECTORY",
        "AUTO_CREATE_SCHEMA",
        "REPORT_TIMEZONE",
        "REPORT_DATABASE_URL",
        "DATABASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def report_service():
    """In-memory report service pinned to FIXED_TODAY, installed in the sheets routes.

    Tests that need the service (e.g. to seed data) request this fixture by name.
    """
    from backend.reporting.repo_memory import MemoryReportRepo
    from backend.reporting.service import ReportService
    from backend.web.routes import sheets

    service = ReportService(MemoryReportRepo(), today=lambda: FIXED_TODAY)
    sheets.set_service(service)
    yield service
    sheets.set_service(None)


@pytest.fixture(autouse=True)
def _reset_student_directory():
    from backend.web.routes import identity

    identity.set_directory(None)
    yield
    identity.set_directory(None)


@pytest.fixture
def teacher_cookie():
    """Return a valid `teacher_session` cookie value for a teacher account."""
    from backend.identity_access.session_codec import TeacherIdentity, encode_session

    value, _ = encode_session(
        TeacherIdentity(token="tok-123", user_id="u-1", username="bu.guru", email="guru@sekolah.sch.id", type=1)
    )
    return value

