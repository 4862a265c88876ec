"""
Server-rendered pages for teachers.

The access gate has already run: `/laporan` is only reached with a teacher
session and `/laporan/login` only without one.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from starlette.concurrency import run_in_threadpool

from backend.reporting.domain import SheetFilters
from backend.web.auth_utils import private_no_store
from backend.web.components import Layout, LoginForm, SummaryTable
from backend.web.routes.sheets import _get_service

pages_router = APIRouter(tags=["Pages"], include_in_schema=False)
logger = logging.getLogger("laporan.web.pages")


@pages_router.get("/laporan/login", response_class=HTMLResponse)
async def login_page():
    layout = Layout(title="Masuk", content=LoginForm().render(), show_header=False)
    return HTMLResponse(layout.render(), headers=private_no_store())


@pages_router.get("/laporan", response_class=HTMLResponse)
async def teacher_landing(request: Request):
    """Teacher landing page with today's per-rombel summary."""
    session = getattr(request.state, "teacher_session", None)
    service = _get_service()
    tanggal = service.today()
    try:
        rows = await run_in_threadpool(service.summarize, SheetFilters(tanggal=tanggal))
        content = SummaryTable(rows, tanggal).render()
    except Exception:
        logger.exception("Landing summary failed")
        content = '<p class="form-error" role="alert">Ringkasan tidak dapat dimuat.</p>'
    teacher = session.summary() if session is not None else None
    layout = Layout(title="Ringkasan", content=content, teacher=teacher)
    return HTMLResponse(layout.render(), headers=private_no_store())
