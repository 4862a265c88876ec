"""
Student identity lookup route (router-only module).

Public: students pre-fill name and rombel on the report form by entering
their nis. The directory adapter is injectable for tests (`set_directory`).
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from backend.identity_access.config import IdentityConfig
from backend.identity_access.directory import (
    DirectoryError,
    FakeStudentDirectory,
    HttpStudentDirectory,
    StudentDirectory,
)
from backend.web.auth_utils import private_no_store

identity_router = APIRouter(tags=["Identity"])
logger = logging.getLogger("laporan.web.identity")

_DIRECTORY: Optional[StudentDirectory] = None


def set_directory(directory: Optional[StudentDirectory]) -> None:
    """Override the directory (tests); `None` restores env-based selection."""
    global _DIRECTORY
    _DIRECTORY = directory


def get_directory() -> StudentDirectory:
    if _DIRECTORY is not None:
        return _DIRECTORY
    if (os.getenv("STUDENT_DIRECTORY") or "http").strip().lower() == "fake":
        return FakeStudentDirectory()
    return HttpStudentDirectory(IdentityConfig.from_env().api_url)


@identity_router.get("/api/identity/student")
async def lookup_student(nis: str = ""):
    """
    Return `{nis, fullname, rombel}` for a student number.

    Errors keep the directory's status: 400 missing nis, 404 unknown student,
    502 identity service failure, 500 missing configuration.
    """
    nis = nis.strip()
    if not nis:
        return JSONResponse({"error": "Parameter nis wajib diisi"}, status_code=400, headers=private_no_store())
    directory = get_directory()
    try:
        student = await run_in_threadpool(directory.lookup, nis)
    except DirectoryError as exc:
        if exc.status >= 500:
            logger.warning("Student lookup failed status=%s", exc.status)
        return JSONResponse({"error": exc.message}, status_code=exc.status, headers=private_no_store())
    return JSONResponse(student.to_dict(), headers=private_no_store())
