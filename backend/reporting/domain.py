"""
Report sheet domain: value types, validation and the reference clock.

Dates are ISO `YYYY-MM-DD` strings throughout. Lock and future checks compare
them lexicographically, which matches calendar order for this format, so no
time-zone conversion happens after `today_iso()` picked the reference day.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional
from zoneinfo import ZoneInfo
import os
import re

from .errors import ValidationError

STATUS_PENUH = "PENUH"
STATUS_PUASA = (STATUS_PENUH, "SETENGAH HARI", "TIDAK PUASA")
MAX_SHOLAT_FARDHU = 5
DEFAULT_TIMEZONE = "Asia/Jakarta"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def report_timezone() -> str:
    return (os.getenv("REPORT_TIMEZONE") or DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE


def today_iso(tz: Optional[str] = None) -> str:
    """Current calendar date in the school's time zone (not UTC, not the client)."""
    return datetime.now(ZoneInfo(tz or report_timezone())).date().isoformat()


def is_iso_date(value: Any) -> bool:
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class SheetFields:
    """The replaceable content of one daily sheet."""

    sholat_fardhu: List[str]
    status_puasa: str
    alasan_tidak_puasa: Optional[str]
    ibadah_sunnah: List[str]
    tadarus: str
    kebiasaan: List[str]


@dataclass(frozen=True)
class SheetSubmission:
    nis: str
    fullname: str
    rombel: str
    tanggal: str
    fields: SheetFields


@dataclass(frozen=True)
class SheetFilters:
    nis: str = ""
    rombel: str = ""
    tanggal: str = ""
    date_from: str = ""
    date_to: str = ""

    def date_bounds(self) -> tuple[str, str, str]:
        """Return (exact, from, to); an exact date disables the range."""
        if self.tanggal:
            return self.tanggal, "", ""
        return "", self.date_from, self.date_to


@dataclass
class StudentRecord:
    id: int
    nis: str
    fullname: str
    rombel: str
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "nis": self.nis, "fullname": self.fullname, "rombel": self.rombel}


@dataclass
class SheetRecord:
    id: int
    student_id: int
    tanggal: str
    sholat_fardhu: List[str] = field(default_factory=list)
    status_puasa: str = STATUS_PENUH
    alasan_tidak_puasa: Optional[str] = None
    ibadah_sunnah: List[str] = field(default_factory=list)
    tadarus: str = ""
    kebiasaan: List[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tanggal": self.tanggal,
            "sholat_fardhu": list(self.sholat_fardhu),
            "status_puasa": self.status_puasa,
            "alasan_tidak_puasa": self.alasan_tidak_puasa,
            "ibadah_sunnah": list(self.ibadah_sunnah),
            "tadarus": self.tadarus,
            "kebiasaan": list(self.kebiasaan),
            "created_at": self.created_at,
        }


def _string_list(value: Any, name: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"{name} harus berupa daftar teks")
    return list(value)


def validate_sheet_fields(
    *,
    sholat_fardhu: Any,
    status_puasa: Any,
    alasan_tidak_puasa: Any,
    ibadah_sunnah: Any,
    tadarus: Any,
    kebiasaan: Any,
) -> SheetFields:
    """Normalize raw sheet content or raise ValidationError.

    - `PENUH` forces the reason to None whatever the client sent.
    - Other statuses need a non-empty trimmed reason.
    - List fields keep order and duplicates; entries are not checked against
      an activity catalog.
    """
    if status_puasa not in STATUS_PUASA:
        raise ValidationError("Status puasa tidak valid")
    prayers = _string_list(sholat_fardhu, "sholat_fardhu")
    if len(prayers) > MAX_SHOLAT_FARDHU:
        raise ValidationError("sholat_fardhu maksimal 5 waktu")
    if not isinstance(tadarus, str):
        raise ValidationError("tadarus harus berupa teks")

    if status_puasa == STATUS_PENUH:
        reason = None
    else:
        reason = alasan_tidak_puasa.strip() if isinstance(alasan_tidak_puasa, str) else ""
        if not reason:
            raise ValidationError("Alasan tidak puasa wajib diisi")

    return SheetFields(
        sholat_fardhu=prayers,
        status_puasa=status_puasa,
        alasan_tidak_puasa=reason,
        ibadah_sunnah=_string_list(ibadah_sunnah, "ibadah_sunnah"),
        tadarus=tadarus.strip(),
        kebiasaan=_string_list(kebiasaan, "kebiasaan"),
    )


def validate_submission(*, nis: Any, fullname: Any, rombel: Any, tanggal: Any, **fields: Any) -> SheetSubmission:
    def _required(value: Any, name: str) -> str:
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            raise ValidationError(f"{name} wajib diisi")
        return text

    nis_v = _required(nis, "nis")
    fullname_v = _required(fullname, "fullname")
    rombel_v = _required(rombel, "rombel")
    tanggal_v = tanggal.strip() if isinstance(tanggal, str) else ""
    if not is_iso_date(tanggal_v):
        raise ValidationError("Format tanggal harus YYYY-MM-DD")
    return SheetSubmission(
        nis=nis_v,
        fullname=fullname_v,
        rombel=rombel_v,
        tanggal=tanggal_v,
        fields=validate_sheet_fields(**fields),
    )


def clamp_pagination(limit_raw: Any, offset_raw: Any) -> tuple[int, int]:
    """Clamp list pagination: limit to 1..200 (default 20), offset >= 0 (default 0)."""
    try:
        limit = int(float(limit_raw)) if limit_raw not in (None, "") else 20
    except (ValueError, TypeError, OverflowError):
        limit = 20
    try:
        offset = int(float(offset_raw)) if offset_raw not in (None, "") else 0
    except (ValueError, TypeError, OverflowError):
        offset = 0
    return max(1, min(200, limit)), max(0, offset)
