"""Report domain errors.

Each error carries the HTTP status the web adapter answers with and an
optional `extra` mapping merged into the `{error}` body.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ReportError(Exception):
    status = 500

    def __init__(self, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.extra = dict(extra or {})

    def to_body(self) -> dict:
        return {"error": self.message, **self.extra}


class ValidationError(ReportError):
    status = 400


class FutureDateError(ValidationError):
    def __init__(self, message: str = "Tidak bisa mengisi laporan untuk tanggal di masa depan") -> None:
        super().__init__(message, extra={"future": True})


class NotFoundError(ReportError):
    status = 404


class ConflictError(ReportError):
    status = 409


class LockedError(ConflictError):
    """A sheet for a past day exists; it can no longer be changed."""

    def __init__(self, tanggal: str, message: str = "Laporan untuk tanggal yang sudah lewat tidak bisa diubah") -> None:
        super().__init__(message, extra={"readonly": True, "existingDate": tanggal})
        self.tanggal = tanggal


class SheetExistsError(ConflictError):
    """Raised by repositories when the (student, tanggal) unique key is taken."""

    def __init__(self, student_id: int, tanggal: str) -> None:
        super().__init__("sheet_exists")
        self.student_id = student_id
        self.tanggal = tanggal


class InternalError(ReportError):
    status = 500
