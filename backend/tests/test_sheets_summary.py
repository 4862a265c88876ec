"""
Per-rombel summary (memory repository and HTTP surface).

Metrics are averaged over matching sheets and rounded to one decimal;
rombels whose students have no matching sheet report zeros.
"""
from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from backend.reporting.domain import SheetFilters
from backend.web import main
from utils.sheets import FIXED_TODAY, YESTERDAY, sheet_payload


def _row(rows, rombel):
    return next(r for r in rows if r["rombel"] == rombel)


def _seed(service):
    # XII TKJ 1: two students, both report today
    service.submit_sheet(sheet_payload(nis="1", rombel="XII TKJ 1", sholat_fardhu=["Subuh", "Dzuhur", "Ashar", "Maghrib", "Isya"]))
    service.submit_sheet(
        sheet_payload(
            nis="2",
            rombel="XII TKJ 1",
            sholat_fardhu=["Subuh", "Maghrib"],
            status_puasa="TIDAK PUASA",
            alasan_tidak_puasa="sakit",
            tadarus="",
        )
    )
    # XI RPL 2: one student, reported yesterday only
    service.submit_sheet(sheet_payload(nis="3", rombel="XI RPL 2", tanggal=YESTERDAY))


def test_summary_metrics_for_one_day(report_service):
    _seed(report_service)

    rows = report_service.summarize(SheetFilters(tanggal=FIXED_TODAY))

    tkj = _row(rows, "XII TKJ 1")
    assert tkj == {
        "rombel": "XII TKJ 1",
        "total_siswa": 2,
        "total_laporan": 2,
        "avg_puasa_penuh": 50.0,
        "avg_sholat": 70.0,
        "avg_tadarus": 50.0,
    }


def test_rombel_without_matching_sheets_reports_zero(report_service):
    _seed(report_service)

    rows = report_service.summarize(SheetFilters(tanggal=FIXED_TODAY))

    rpl = _row(rows, "XI RPL 2")
    assert rpl["total_siswa"] == 1
    assert rpl["total_laporan"] == 0
    assert (rpl["avg_puasa_penuh"], rpl["avg_sholat"], rpl["avg_tadarus"]) == (0, 0, 0)


def test_summary_range_and_rombel_filter(report_service):
    _seed(report_service)

    rows = report_service.summarize(SheetFilters(rombel="XI RPL 2", date_from=YESTERDAY, date_to=FIXED_TODAY))

    assert [r["rombel"] for r in rows] == ["XI RPL 2"]
    assert rows[0]["total_laporan"] == 1
    assert rows[0]["avg_puasa_penuh"] == 100.0


def test_summary_rounds_to_one_decimal(report_service):
    for nis, prayers in (("1", ["Subuh"]), ("2", ["Subuh"]), ("3", ["Subuh", "Dzuhur"])):
        report_service.submit_sheet(sheet_payload(nis=nis, rombel="X AKL 1", sholat_fardhu=prayers))

    row = report_service.summarize(SheetFilters())[0]

    # (20 + 20 + 40) / 3 = 26.666...
    assert row["avg_sholat"] == 26.7


@pytest.mark.anyio
async def test_summary_endpoint(report_service, teacher_cookie):
    _seed(report_service)

    async with httpx.AsyncClient(
        transport=ASGITransport(app=main.app), base_url="http://test", cookies={"teacher_session": teacher_cookie}
    ) as client:
        r = await client.get("/api/sheet/summary", params={"tanggal": FIXED_TODAY})
        r_empty_rombel = await client.get("/api/sheet/summary", params={"rombel": "TIDAK ADA"})

    assert r.status_code == 200
    assert r.headers.get("Cache-Control") == "private, no-store"
    rows = r.json()["summary"]
    assert [row["rombel"] for row in rows] == ["XI RPL 2", "XII TKJ 1"]
    assert _row(rows, "XI RPL 2")["avg_sholat"] == 0
    assert r_empty_rombel.json() == {"summary": []}
