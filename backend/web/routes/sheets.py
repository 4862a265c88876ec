"""
Report sheet API routes (submission, listing, rombel labels, summary).

Why:
    Thin HTTP adapter over `ReportService`. Shape checks live in a pydantic
    model, business rules (date gating, status/reason) in `reporting/`.
    Domain exceptions carry their status and are mapped at this boundary.

Notes:
    - Security: `POST /api/sheet` is public (students submit without an
      account). Listing, rombel and summary require a teacher session, which
      the access gate middleware enforces before these handlers run.
    - Persistence: Prefers the Postgres-backed repo when psycopg and a DSN are
      available; falls back to the in-memory repo for local offline work.
      Tests call `set_service` to inject a repo and a fixed clock.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PayloadShapeError
from starlette.concurrency import run_in_threadpool

from backend.reporting.domain import SheetFilters
from backend.reporting.errors import InternalError, ReportError
from backend.reporting.repo_db import DBReportRepo
from backend.reporting.repo_memory import MemoryReportRepo
from backend.reporting.service import ReportService
from backend.web.auth_utils import private_no_store

sheets_router = APIRouter(tags=["Sheets"])  # explicit paths below
logger = logging.getLogger("laporan.web.sheets")

MSG_INVALID_PAYLOAD = "Payload tidak valid"
MSG_BAD_SHAPE = "Data laporan tidak lengkap atau tidak sesuai format"


def _schema_autocreate_enabled() -> bool:
    return (os.getenv("AUTO_CREATE_SCHEMA") or "").strip().lower() in {"1", "true", "yes"}


def _build_default_repo():
    """Prefer DBReportRepo; fall back to in-memory if unavailable."""
    try:
        repo = DBReportRepo()
    except Exception as exc:  # pragma: no cover - exercised when psycopg or DSN missing
        logger.warning("Report repo unavailable (%s); using in-memory fallback", exc)
        return MemoryReportRepo()
    if _schema_autocreate_enabled():
        repo.ensure_schema()
    return repo


"""Lazy service accessor to avoid import-time DB checks in tests."""
_SERVICE: Optional[ReportService] = None


def _get_service() -> ReportService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = ReportService(_build_default_repo())
    return _SERVICE


def set_service(service: Optional[ReportService]) -> None:
    """Allow tests to swap the report service (repo + clock)."""
    global _SERVICE
    _SERVICE = service


# --- Request models --------------------------------------------------------------

class SheetPayload(BaseModel):
    """Wire shape of one submission; values are checked again by the domain."""

    model_config = ConfigDict(strict=True)

    nis: str
    fullname: str
    rombel: str
    tanggal: str
    sholat_fardhu: List[str]
    status_puasa: str
    # PENUH discards whatever is sent here, so the type is only checked later.
    alasan_tidak_puasa: Any = None
    ibadah_sunnah: List[str]
    tadarus: str
    kebiasaan: List[str]


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status, headers=private_no_store())


def _report_error(exc: ReportError) -> JSONResponse:
    return JSONResponse(exc.to_body(), status_code=exc.status, headers=private_no_store())


def _filters(
    *,
    nis: str | None = None,
    rombel: str | None = None,
    tanggal: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
) -> SheetFilters:
    return SheetFilters(
        nis=(nis or "").strip(),
        rombel=(rombel or "").strip(),
        tanggal=(tanggal or "").strip(),
        date_from=(date_from or "").strip(),
        date_to=(date_to or "").strip(),
    )


# --- Endpoints -------------------------------------------------------------------

@sheets_router.post("/api/sheet")
async def submit_sheet(request: Request):
    """
    Create or update the caller's sheet for one date.

    Behavior:
        - 200 `{message}` on insert; `{message, updated: true}` on same-day edit
        - 400 malformed body, invalid fields, or a future date (`future: true`)
        - 409 existing sheet for a past date (`readonly: true, existingDate`)
    Permissions:
        Public.
    """
    try:
        data = await request.json()
    except ValueError:
        return _error(400, MSG_INVALID_PAYLOAD)
    if not isinstance(data, dict):
        return _error(400, MSG_INVALID_PAYLOAD)
    try:
        payload = SheetPayload.model_validate(data)
    except PayloadShapeError:
        return _error(400, MSG_BAD_SHAPE)

    service = _get_service()
    try:
        result = await run_in_threadpool(service.submit_sheet, payload.model_dump())
    except ReportError as exc:
        return _report_error(exc)
    except Exception:
        logger.exception("Saving sheet failed")
        return _report_error(InternalError("Gagal menyimpan laporan"))

    if result.created:
        return JSONResponse({"message": "Laporan berhasil disimpan"}, headers=private_no_store())
    return JSONResponse({"message": "Laporan berhasil diperbarui", "updated": True}, headers=private_no_store())


@sheets_router.get("/api/sheet")
async def list_sheets(
    nis: str | None = None,
    tanggal: str | None = None,
    rombel: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    flat: str | None = None,
    limit: str | None = None,
    offset: str | None = None,
):
    """
    List sheets for teachers.

    `nis` without `flat=1` switches to single-student mode
    (`{student:{..., sheets}}`, 404 for an unknown nis). Otherwise returns a
    flat page `{sheets, pagination:{limit, offset, hasMore, nextOffset}}`,
    newest date first.
    """
    filters = _filters(nis=nis, rombel=rombel, tanggal=tanggal, date_from=date_from, date_to=date_to)
    service = _get_service()
    try:
        if filters.nis and flat != "1":
            student = await run_in_threadpool(service.get_student_sheets, filters.nis, filters)
            return JSONResponse({"student": student}, headers=private_no_store())
        page = await run_in_threadpool(service.list_sheets, filters, limit=limit, offset=offset)
    except ReportError as exc:
        return _report_error(exc)
    except Exception:
        logger.exception("Listing sheets failed")
        return _report_error(InternalError("Gagal mengambil data laporan"))
    return JSONResponse(page.to_dict(), headers=private_no_store())


@sheets_router.get("/api/sheet/rombel")
async def list_rombel():
    """Distinct rombel labels of known students, sorted."""
    service = _get_service()
    try:
        labels = await run_in_threadpool(service.list_rombel)
    except Exception:
        logger.exception("Listing rombel failed")
        return _report_error(InternalError("Gagal mengambil data rombel"))
    return JSONResponse({"rombel": labels}, headers=private_no_store())


@sheets_router.get("/api/sheet/summary")
async def summary(
    tanggal: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    rombel: str | None = None,
):
    """Per-rombel aggregates; rombels without matching sheets report zeros."""
    filters = _filters(rombel=rombel, tanggal=tanggal, date_from=date_from, date_to=date_to)
    service = _get_service()
    try:
        rows = await run_in_threadpool(service.summarize, filters)
    except Exception:
        logger.exception("Building summary failed")
        return _report_error(InternalError("Gagal mengambil ringkasan laporan"))
    return JSONResponse({"summary": rows}, headers=private_no_store())
