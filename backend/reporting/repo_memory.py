"""
In-memory report repository for dev and tests.

Mirrors the Postgres repository contract (`ReportRepoProtocol`) including the
unique keys on `students.nis` and `sheets(student_id, tanggal)`. One lock
guards every read and write; route handlers call in from the threadpool.
"""
from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .domain import (
    MAX_SHOLAT_FARDHU,
    STATUS_PENUH,
    SheetFields,
    SheetFilters,
    SheetRecord,
    StudentRecord,
)
from .errors import SheetExistsError


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches_dates(tanggal: str, filters: SheetFilters) -> bool:
    exact, date_from, date_to = filters.date_bounds()
    if exact:
        return tanggal == exact
    if date_from and tanggal < date_from:
        return False
    if date_to and tanggal > date_to:
        return False
    return True


def _round1(value: float) -> float:
    return round(value, 1)


class MemoryReportRepo:
    def __init__(self) -> None:
        self.students: Dict[int, StudentRecord] = {}
        self.student_ids_by_nis: Dict[str, int] = {}
        self.sheets: Dict[int, SheetRecord] = {}
        self.sheet_ids_by_key: Dict[Tuple[int, str], int] = {}
        self._next_student_id = 1
        self._next_sheet_id = 1
        self._lock = threading.Lock()

    # --- Students ---------------------------------------------------------------
    def upsert_student(self, *, nis: str, fullname: str, rombel: str) -> int:
        now = _now()
        with self._lock:
            sid = self.student_ids_by_nis.get(nis)
            if sid is not None:
                student = self.students[sid]
                student.fullname = fullname
                student.rombel = rombel
                student.updated_at = now
                return sid
            sid = self._next_student_id
            self._next_student_id += 1
            self.students[sid] = StudentRecord(id=sid, nis=nis, fullname=fullname, rombel=rombel, created_at=now, updated_at=now)
            self.student_ids_by_nis[nis] = sid
            return sid

    def get_student_by_nis(self, nis: str) -> Optional[StudentRecord]:
        with self._lock:
            sid = self.student_ids_by_nis.get(nis)
            return replace(self.students[sid]) if sid is not None else None

    # --- Sheets -----------------------------------------------------------------
    def get_sheet(self, student_id: int, tanggal: str) -> Optional[SheetRecord]:
        with self._lock:
            sheet_id = self.sheet_ids_by_key.get((student_id, tanggal))
            if sheet_id is None:
                return None
            return replace(self.sheets[sheet_id])

    def insert_sheet(self, student_id: int, tanggal: str, fields: SheetFields) -> SheetRecord:
        key = (student_id, tanggal)
        now = _now()
        with self._lock:
            if key in self.sheet_ids_by_key:
                raise SheetExistsError(student_id, tanggal)
            sheet_id = self._next_sheet_id
            self._next_sheet_id += 1
            record = SheetRecord(
                id=sheet_id,
                student_id=student_id,
                tanggal=tanggal,
                sholat_fardhu=list(fields.sholat_fardhu),
                status_puasa=fields.status_puasa,
                alasan_tidak_puasa=fields.alasan_tidak_puasa,
                ibadah_sunnah=list(fields.ibadah_sunnah),
                tadarus=fields.tadarus,
                kebiasaan=list(fields.kebiasaan),
                created_at=now,
                updated_at=now,
            )
            self.sheets[sheet_id] = record
            self.sheet_ids_by_key[key] = sheet_id
            return replace(record)

    def update_sheet(self, sheet_id: int, fields: SheetFields) -> SheetRecord:
        now = _now()
        with self._lock:
            record = self.sheets.get(sheet_id)
            if record is None:
                raise LookupError("sheet_not_found")
            record.sholat_fardhu = list(fields.sholat_fardhu)
            record.status_puasa = fields.status_puasa
            record.alasan_tidak_puasa = fields.alasan_tidak_puasa
            record.ibadah_sunnah = list(fields.ibadah_sunnah)
            record.tadarus = fields.tadarus
            record.kebiasaan = list(fields.kebiasaan)
            record.updated_at = now
            return replace(record)

    def _sorted(self, sheets: List[SheetRecord]) -> List[SheetRecord]:
        # tanggal desc, then newest first
        return sorted(sheets, key=lambda s: (s.tanggal, s.created_at, s.id), reverse=True)

    def list_sheets(self, filters: SheetFilters, *, limit: int, offset: int) -> List[dict]:
        rows = []
        with self._lock:
            for sheet in self._sorted(list(self.sheets.values())):
                student = self.students[sheet.student_id]
                if filters.nis and student.nis != filters.nis:
                    continue
                if filters.rombel and student.rombel != filters.rombel:
                    continue
                if not _matches_dates(sheet.tanggal, filters):
                    continue
                rows.append({**sheet.to_dict(), "nis": student.nis, "fullname": student.fullname, "rombel": student.rombel})
        return rows[offset: offset + limit]

    def list_student_sheets(self, student_id: int, filters: SheetFilters) -> List[dict]:
        with self._lock:
            own = [s for s in self.sheets.values() if s.student_id == student_id and _matches_dates(s.tanggal, filters)]
            return [s.to_dict() for s in self._sorted(own)]

    def list_rombel(self) -> List[str]:
        with self._lock:
            return sorted({s.rombel for s in self.students.values()})

    # --- Aggregation ------------------------------------------------------------
    def summarize(self, filters: SheetFilters) -> List[dict]:
        by_rombel: Dict[str, Dict[str, list]] = {}
        with self._lock:
            for student in self.students.values():
                if filters.rombel and student.rombel != filters.rombel:
                    continue
                bucket = by_rombel.setdefault(student.rombel, {"students": [], "sheets": []})
                bucket["students"].append(student.id)
            for sheet in self.sheets.values():
                student = self.students[sheet.student_id]
                bucket = by_rombel.get(student.rombel)
                if bucket is None or not _matches_dates(sheet.tanggal, filters):
                    continue
                bucket["sheets"].append(replace(sheet))

        summary = []
        for rombel in sorted(by_rombel):
            sheets = by_rombel[rombel]["sheets"]
            count = len(sheets)
            if count:
                puasa = sum(100.0 if s.status_puasa == STATUS_PENUH else 0.0 for s in sheets) / count
                sholat = sum(min(len(s.sholat_fardhu), MAX_SHOLAT_FARDHU) * 100.0 / MAX_SHOLAT_FARDHU for s in sheets) / count
                tadarus = sum(100.0 if (s.tadarus or "") != "" else 0.0 for s in sheets) / count
            else:
                puasa = sholat = tadarus = 0.0
            summary.append(
                {
                    "rombel": rombel,
                    "total_siswa": len(set(by_rombel[rombel]["students"])),
                    "total_laporan": count,
                    "avg_puasa_penuh": _round1(puasa),
                    "avg_sholat": _round1(sholat),
                    "avg_tadarus": _round1(tadarus),
                }
            )
        return summary
