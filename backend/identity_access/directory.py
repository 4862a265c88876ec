"""
Student directory adapter (identity service lookup by nis).

Why:
    The report form pre-fills name and rombel from the school's identity
    service. The web route only sees `StudentIdentity` or `DirectoryError`;
    the upstream JSON shape (`{success, data:{fullname, nipd, rombel_aktif}}`)
    stays inside this module.

Dev/test:
    `FakeStudentDirectory` serves a handful of demo students. It is selected
    explicitly via `STUDENT_DIRECTORY=fake` (never in production, see
    `web/config.py`) or injected by tests.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol
import logging

import requests

logger = logging.getLogger("laporan.identity.directory")

HTTP_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class StudentIdentity:
    nis: str
    fullname: str
    rombel: str

    def to_dict(self) -> dict:
        return {"nis": self.nis, "fullname": self.fullname, "rombel": self.rombel}


class DirectoryError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class StudentDirectory(Protocol):
    def lookup(self, nis: str) -> StudentIdentity:
        ...


class HttpStudentDirectory:
    """Query `<IDENTITY_API_URL>?nis=<nis>` with a bounded wait."""

    def __init__(self, api_url: str) -> None:
        self.api_url = api_url

    def lookup(self, nis: str) -> StudentIdentity:
        if not self.api_url:
            raise DirectoryError(500, "IDENTITY_API_URL belum dikonfigurasi")
        try:
            resp = requests.get(
                self.api_url,
                params={"nis": nis},
                headers={"Accept": "application/json"},
                timeout=HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            logger.warning("Student lookup failed: %s", exc.__class__.__name__)
            raise DirectoryError(502, "Gagal mengambil data dari layanan identitas")
        try:
            payload = resp.json()
        except ValueError:
            raise DirectoryError(502, "Gagal mengambil data dari layanan identitas")

        if not 200 <= int(resp.status_code) < 300:
            if isinstance(payload, dict) and "error" in payload:
                message = str(payload["error"])
            else:
                message = "Data siswa tidak ditemukan"
            raise DirectoryError(int(resp.status_code), message)

        if not isinstance(payload, dict):
            raise DirectoryError(502, "Format respons identitas tidak valid")
        if payload.get("success") is not True:
            raise DirectoryError(404, "Data siswa tidak ditemukan")
        source = payload.get("data")
        if not isinstance(source, dict):
            raise DirectoryError(502, "Format data siswa tidak valid")

        fullname = source.get("fullname") if isinstance(source.get("fullname"), str) else ""
        normalized_nis = source.get("nipd") if isinstance(source.get("nipd"), str) else nis
        rombel = ""
        rombel_aktif = source.get("rombel_aktif")
        if isinstance(rombel_aktif, list) and rombel_aktif:
            first = rombel_aktif[0]
            if isinstance(first, dict) and isinstance(first.get("nama"), str):
                rombel = first["nama"]
        if not fullname or not rombel:
            raise DirectoryError(502, "Data siswa belum lengkap pada layanan identitas")
        return StudentIdentity(nis=normalized_nis, fullname=fullname, rombel=rombel)


DEMO_STUDENTS = (
    StudentIdentity(nis="12345", fullname="Ahmad Rizky", rombel="XII TKJ 1"),
    StudentIdentity(nis="67890", fullname="Siti Aminah", rombel="XI RPL 2"),
    StudentIdentity(nis="11111", fullname="Budi Santoso", rombel="X AKL 1"),
    StudentIdentity(nis="22222", fullname="Dewi Lestari", rombel="XII MM 2"),
    StudentIdentity(nis="125261", fullname="Rina Amelia", rombel="XII TKJ 2"),
)


class FakeStudentDirectory:
    def __init__(self, students: Optional[Iterable[StudentIdentity]] = None) -> None:
        self._by_nis: Dict[str, StudentIdentity] = {
            s.nis: s for s in (DEMO_STUDENTS if students is None else students)
        }

    def lookup(self, nis: str) -> StudentIdentity:
        student = self._by_nis.get(nis)
        if student is None:
            raise DirectoryError(404, "Siswa tidak ditemukan")
        return student
