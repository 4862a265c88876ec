"""Report sheet service layer (Clean Architecture boundary).

Why:
    Encapsulates the report lifecycle (find-or-create student, date-gated
    upsert, listing, aggregation) so the web adapter stays thin and the rules
    can be unit-tested against the in-memory repository.

Lifecycle of a sheet (one per student per calendar date):
    - a date after today is rejected outright;
    - a missing sheet is inserted, also for past dates (late first entry);
    - an existing sheet for today is replaced in full;
    - an existing sheet for a past date is locked.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol
import logging

from .domain import (
    SheetFields,
    SheetFilters,
    SheetRecord,
    SheetSubmission,
    StudentRecord,
    clamp_pagination,
    today_iso,
    validate_submission,
)
from .errors import FutureDateError, LockedError, NotFoundError, SheetExistsError

logger = logging.getLogger("laporan.reporting")


class ReportRepoProtocol(Protocol):
    def upsert_student(self, *, nis: str, fullname: str, rombel: str) -> int:
        ...

    def get_student_by_nis(self, nis: str) -> Optional[StudentRecord]:
        ...

    def get_sheet(self, student_id: int, tanggal: str) -> Optional[SheetRecord]:
        ...

    def insert_sheet(self, student_id: int, tanggal: str, fields: SheetFields) -> SheetRecord:
        ...

    def update_sheet(self, sheet_id: int, fields: SheetFields) -> SheetRecord:
        ...

    def list_sheets(self, filters: SheetFilters, *, limit: int, offset: int) -> List[dict]:
        ...

    def list_student_sheets(self, student_id: int, filters: SheetFilters) -> List[dict]:
        ...

    def list_rombel(self) -> List[str]:
        ...

    def summarize(self, filters: SheetFilters) -> List[dict]:
        ...


@dataclass(frozen=True)
class UpsertResult:
    sheet: SheetRecord
    created: bool

    @property
    def updated(self) -> bool:
        return not self.created


@dataclass(frozen=True)
class SheetPage:
    sheets: List[dict]
    limit: int
    offset: int
    has_more: bool

    @property
    def next_offset(self) -> int:
        return self.offset + len(self.sheets)

    def to_dict(self) -> dict:
        return {
            "sheets": self.sheets,
            "pagination": {
                "limit": self.limit,
                "offset": self.offset,
                "hasMore": self.has_more,
                "nextOffset": self.next_offset,
            },
        }


class ReportService:
    def __init__(self, repo: ReportRepoProtocol, *, today: Optional[Callable[[], str]] = None) -> None:
        self._repo = repo
        self._today = today or today_iso

    @property
    def repo(self) -> ReportRepoProtocol:
        return self._repo

    def today(self) -> str:
        return self._today()

    # --- Writes -----------------------------------------------------------------
    def find_or_create_student(self, nis: str, fullname: str, rombel: str) -> int:
        """Return the student id for `nis`, overwriting name/rombel (last write wins)."""
        return self._repo.upsert_student(nis=nis, fullname=fullname, rombel=rombel)

    def upsert_sheet(
        self, student_id: int, tanggal: str, fields: SheetFields, *, today: Optional[str] = None
    ) -> UpsertResult:
        """Create or replace the sheet for (student, tanggal) under the date rules.

        Raises:
            FutureDateError: tanggal is after today (nothing is written).
            LockedError: a sheet exists and tanggal is before today.

        `today` lets a caller that already checked the date reuse the same day.
        """
        today = today or self.today()
        if tanggal > today:
            raise FutureDateError()
        existing = self._repo.get_sheet(student_id, tanggal)
        if existing is not None:
            return self._replace_existing(existing, tanggal, today, fields)
        try:
            return UpsertResult(sheet=self._repo.insert_sheet(student_id, tanggal, fields), created=True)
        except SheetExistsError:
            # Lost an insert race; the winner's row is subject to the same rules.
            logger.info("Concurrent sheet insert detected student_id=%s tanggal=%s", student_id, tanggal)
            existing = self._repo.get_sheet(student_id, tanggal)
            if existing is None:
                raise
            return self._replace_existing(existing, tanggal, today, fields)

    def _replace_existing(self, existing: SheetRecord, tanggal: str, today: str, fields: SheetFields) -> UpsertResult:
        if tanggal != today:
            raise LockedError(tanggal)
        return UpsertResult(sheet=self._repo.update_sheet(existing.id, fields), created=False)

    def submit_sheet(self, raw: dict) -> UpsertResult:
        """Validate a raw submission and persist it.

        Validation and the future-date check run before any write, so a
        rejected submission neither creates the student nor the sheet.
        """
        submission: SheetSubmission = validate_submission(**raw)
        today = self.today()
        # checked here too so a future date never creates the student row
        if submission.tanggal > today:
            raise FutureDateError()
        student_id = self.find_or_create_student(submission.nis, submission.fullname, submission.rombel)
        return self.upsert_sheet(student_id, submission.tanggal, submission.fields, today=today)

    # --- Reads ------------------------------------------------------------------
    def list_sheets(self, filters: SheetFilters, *, limit: Any = None, offset: Any = None) -> SheetPage:
        """Return one page; fetches `limit + 1` rows to compute `has_more`."""
        lim, off = clamp_pagination(limit, offset)
        rows = self._repo.list_sheets(filters, limit=lim + 1, offset=off)
        has_more = len(rows) > lim
        return SheetPage(sheets=rows[:lim], limit=lim, offset=off, has_more=has_more)

    def get_student_sheets(self, nis: str, filters: SheetFilters) -> dict:
        student = self._repo.get_student_by_nis(nis)
        if student is None:
            raise NotFoundError("Siswa tidak ditemukan")
        sheets = self._repo.list_student_sheets(student.id, filters)
        return {**student.to_dict(), "sheets": sheets}

    def list_rombel(self) -> List[str]:
        return self._repo.list_rombel()

    def summarize(self, filters: SheetFilters) -> List[dict]:
        return self._repo.summarize(filters)
