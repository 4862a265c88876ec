"""
Postgres-backed repository for students and daily report sheets.

Design:
- Minimal psycopg3 usage; each call opens a short-lived connection.
- Returns plain records/dicts to keep the web adapter independent of SQL.
- The unique keys (`students.nis`, `sheets(student_id, tanggal)`) are the
  final arbiter for concurrent submissions: `insert_sheet` reports a lost race
  as `SheetExistsError` instead of creating a duplicate.
"""
from __future__ import annotations

from typing import Any, List, Optional, Tuple
import logging
import os

try:
    import psycopg
    from psycopg.types.json import Json
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    Json = None  # type: ignore
    HAVE_PSYCOPG = False

from .domain import (
    MAX_SHOLAT_FARDHU,
    SheetFields,
    SheetFilters,
    SheetRecord,
    StudentRecord,
)
from .errors import SheetExistsError

logger = logging.getLogger("laporan.reporting.db")

SCHEMA_SQL = """
create table if not exists public.students (
    id bigserial primary key,
    nis text not null unique,
    fullname text not null,
    rombel text not null,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now()
);

create table if not exists public.sheets (
    id bigserial primary key,
    student_id bigint not null references public.students(id) on delete cascade,
    tanggal text not null check (tanggal ~ '^[0-9]{4}-[0-9]{2}-[0-9]{2}$'),
    sholat_fardhu jsonb not null default '[]'::jsonb,
    status_puasa text not null check (status_puasa in ('PENUH', 'SETENGAH HARI', 'TIDAK PUASA')),
    alasan_tidak_puasa text,
    ibadah_sunnah jsonb not null default '[]'::jsonb,
    tadarus text not null default '',
    kebiasaan jsonb not null default '[]'::jsonb,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now(),
    constraint sheets_student_date_key unique (student_id, tanggal)
);

create index if not exists sheets_tanggal_idx on public.sheets (tanggal);
create index if not exists students_rombel_idx on public.students (rombel);
"""

_TS = "to_char({col} at time zone 'utc', 'YYYY-MM-DD\"T\"HH24:MI:SS\"+00:00\"')"
_S_CREATED_AT = _TS.format(col="s.created_at")
_S_UPDATED_AT = _TS.format(col="s.updated_at")
_CREATED_AT = _TS.format(col="created_at")
_UPDATED_AT = _TS.format(col="updated_at")

_SHEET_COLUMNS_SQL = f"""
    s.id,
    s.student_id,
    s.tanggal,
    s.sholat_fardhu,
    s.status_puasa,
    s.alasan_tidak_puasa,
    s.ibadah_sunnah,
    s.tadarus,
    s.kebiasaan,
    {_S_CREATED_AT},
    {_S_UPDATED_AT}
"""


def _dsn() -> str:
    """Resolve the DSN: REPORT_DATABASE_URL, then DATABASE_URL."""
    for dsn in (os.getenv("REPORT_DATABASE_URL"), os.getenv("DATABASE_URL")):
        if dsn:
            return dsn
    raise RuntimeError("Database DSN unavailable for DBReportRepo")


def _sheet_row_to_record(row: Tuple) -> SheetRecord:
    return SheetRecord(
        id=int(row[0]),
        student_id=int(row[1]),
        tanggal=row[2],
        sholat_fardhu=list(row[3] or []),
        status_puasa=row[4],
        alasan_tidak_puasa=row[5],
        ibadah_sunnah=list(row[6] or []),
        tadarus=row[7] or "",
        kebiasaan=list(row[8] or []),
        created_at=row[9],
        updated_at=row[10],
    )


def _date_conditions(filters: SheetFilters, column: str) -> Tuple[List[str], List[Any]]:
    exact, date_from, date_to = filters.date_bounds()
    conditions: List[str] = []
    params: List[Any] = []
    if exact:
        conditions.append(f"{column} = %s")
        params.append(exact)
    if date_from:
        conditions.append(f"{column} >= %s")
        params.append(date_from)
    if date_to:
        conditions.append(f"{column} <= %s")
        params.append(date_to)
    return conditions, params


def _is_unique_violation(exc: Exception) -> bool:
    sqlstate = getattr(exc, "sqlstate", None) or getattr(exc, "pgcode", None)
    unique_violation = getattr(getattr(psycopg, "errors", None), "UniqueViolation", None)
    return bool(unique_violation and isinstance(exc, unique_violation)) or sqlstate == "23505"


class DBReportRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBReportRepo")
        self._dsn = dsn or _dsn()

    def ensure_schema(self) -> None:
        """Create tables and indexes when missing (idempotent)."""
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
        logger.info("Report schema ensured")

    # --- Students ---------------------------------------------------------------
    def upsert_student(self, *, nis: str, fullname: str, rombel: str) -> int:
        # Single statement: concurrent first submissions for one nis converge on one row.
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into public.students (nis, fullname, rombel)
                    values (%s, %s, %s)
                    on conflict (nis) do update
                       set fullname = excluded.fullname,
                           rombel = excluded.rombel,
                           updated_at = now()
                    returning id
                    """,
                    (nis, fullname, rombel),
                )
                row = cur.fetchone()
        if row is None:
            raise RuntimeError("students upsert returned no row")
        return int(row[0])

    def get_student_by_nis(self, nis: str) -> Optional[StudentRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select id, nis, fullname, rombel, {_CREATED_AT}, {_UPDATED_AT}
                      from public.students
                     where nis = %s
                    """,
                    (nis,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return StudentRecord(id=int(row[0]), nis=row[1], fullname=row[2], rombel=row[3], created_at=row[4], updated_at=row[5])

    # --- Sheets -----------------------------------------------------------------
    def get_sheet(self, student_id: int, tanggal: str) -> Optional[SheetRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_SHEET_COLUMNS_SQL} from public.sheets s where s.student_id = %s and s.tanggal = %s",
                    (student_id, tanggal),
                )
                row = cur.fetchone()
        return _sheet_row_to_record(row) if row else None

    def insert_sheet(self, student_id: int, tanggal: str, fields: SheetFields) -> SheetRecord:
        try:
            with psycopg.connect(self._dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        f"""
                        insert into public.sheets as s (
                            student_id, tanggal, sholat_fardhu, status_puasa,
                            alasan_tidak_puasa, ibadah_sunnah, tadarus, kebiasaan
                        ) values (%s, %s, %s, %s, %s, %s, %s, %s)
                        on conflict (student_id, tanggal) do nothing
                        returning {_SHEET_COLUMNS_SQL}
                        """,
                        (
                            student_id,
                            tanggal,
                            Json(list(fields.sholat_fardhu)),
                            fields.status_puasa,
                            fields.alasan_tidak_puasa,
                            Json(list(fields.ibadah_sunnah)),
                            fields.tadarus,
                            Json(list(fields.kebiasaan)),
                        ),
                    )
                    row = cur.fetchone()
        except Exception as exc:
            if _is_unique_violation(exc):
                raise SheetExistsError(student_id, tanggal) from exc
            raise
        if row is None:
            # `do nothing` fired: another request created the sheet first
            raise SheetExistsError(student_id, tanggal)
        return _sheet_row_to_record(row)

    def update_sheet(self, sheet_id: int, fields: SheetFields) -> SheetRecord:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    update public.sheets as s
                       set sholat_fardhu = %s,
                           status_puasa = %s,
                           alasan_tidak_puasa = %s,
                           ibadah_sunnah = %s,
                           tadarus = %s,
                           kebiasaan = %s,
                           updated_at = now()
                     where s.id = %s
                    returning {_SHEET_COLUMNS_SQL}
                    """,
                    (
                        Json(list(fields.sholat_fardhu)),
                        fields.status_puasa,
                        fields.alasan_tidak_puasa,
                        Json(list(fields.ibadah_sunnah)),
                        fields.tadarus,
                        Json(list(fields.kebiasaan)),
                        sheet_id,
                    ),
                )
                row = cur.fetchone()
        if row is None:
            raise LookupError("sheet_not_found")
        return _sheet_row_to_record(row)

    def list_sheets(self, filters: SheetFilters, *, limit: int, offset: int) -> List[dict]:
        conditions: List[str] = []
        params: List[Any] = []
        if filters.nis:
            conditions.append("st.nis = %s")
            params.append(filters.nis)
        if filters.rombel:
            conditions.append("st.rombel = %s")
            params.append(filters.rombel)
        date_conds, date_params = _date_conditions(filters, "s.tanggal")
        conditions.extend(date_conds)
        params.extend(date_params)
        where = f"where {' and '.join(conditions)}" if conditions else ""
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_SHEET_COLUMNS_SQL}, st.nis, st.fullname, st.rombel
                      from public.sheets s
                      join public.students st on st.id = s.student_id
                      {where}
                     order by s.tanggal desc, s.created_at desc, s.id desc
                     limit %s offset %s
                    """,
                    (*params, limit, offset),
                )
                rows = cur.fetchall()
        result = []
        for row in rows:
            record = _sheet_row_to_record(row[:11])
            result.append({**record.to_dict(), "nis": row[11], "fullname": row[12], "rombel": row[13]})
        return result

    def list_student_sheets(self, student_id: int, filters: SheetFilters) -> List[dict]:
        date_conds, date_params = _date_conditions(filters, "s.tanggal")
        conditions = ["s.student_id = %s", *date_conds]
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_SHEET_COLUMNS_SQL}
                      from public.sheets s
                     where {' and '.join(conditions)}
                     order by s.tanggal desc, s.created_at desc, s.id desc
                    """,
                    (student_id, *date_params),
                )
                rows = cur.fetchall()
        return [_sheet_row_to_record(row).to_dict() for row in rows]

    def list_rombel(self) -> List[str]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("select distinct rombel from public.students order by rombel")
                rows = cur.fetchall()
        return [row[0] for row in rows]

    def summarize(self, filters: SheetFilters) -> List[dict]:
        # Date filters sit in the join so rombels without matching sheets stay
        # in the result with zero metrics.
        date_conds, date_params = _date_conditions(filters, "s.tanggal")
        join_cond = " and ".join(["s.student_id = st.id", *date_conds])
        where = "where st.rombel = %s" if filters.rombel else ""
        params: List[Any] = [*date_params]
        if filters.rombel:
            params.append(filters.rombel)
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select st.rombel,
                           count(distinct st.id) as total_siswa,
                           count(distinct s.id) as total_laporan,
                           coalesce(round(avg(case when s.id is null then null
                                                   when s.status_puasa = 'PENUH' then 100.0 else 0 end), 1), 0),
                           coalesce(round(avg(case when s.id is null then null
                                                   else least(jsonb_array_length(s.sholat_fardhu), {MAX_SHOLAT_FARDHU})
                                                        * 100.0 / {MAX_SHOLAT_FARDHU} end), 1), 0),
                           coalesce(round(avg(case when s.id is null then null
                                                   when coalesce(s.tadarus, '') <> '' then 100.0 else 0 end), 1), 0)
                      from public.students st
                      left join public.sheets s on {join_cond}
                      {where}
                     group by st.rombel
                     order by st.rombel
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [
            {
                "rombel": row[0],
                "total_siswa": int(row[1]),
                "total_laporan": int(row[2]),
                "avg_puasa_penuh": float(row[3]),
                "avg_sholat": float(row[4]),
                "avg_tadarus": float(row[5]),
            }
            for row in rows
        ]
