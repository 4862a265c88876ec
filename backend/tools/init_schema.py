"""
Create the report tables in Postgres.

Usage:
    python -m backend.tools.init_schema --dsn postgresql://...
    python -m backend.tools.init_schema --print-sql

The DDL is idempotent (`create ... if not exists`), so running it against an
existing database is a no-op. The web app runs the same statement on startup
when `AUTO_CREATE_SCHEMA=true`.
"""
from __future__ import annotations

import argparse
import logging
import os
from urllib.parse import urlparse

from backend.reporting.repo_db import SCHEMA_SQL, DBReportRepo

logger = logging.getLogger("laporan.tools.init_schema")


def _redact_dsn(dsn: str) -> str:
    try:
        parsed = urlparse(dsn)
    except ValueError:
        return "***"
    host = parsed.hostname or "?"
    db = (parsed.path or "").lstrip("/") or "?"
    return f"{parsed.scheme}://***@{host}/{db}"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create students/sheets tables for Laporan Ramadan")
    parser.add_argument("--dsn", default=os.getenv("REPORT_DATABASE_URL") or os.getenv("DATABASE_URL"))
    parser.add_argument("--print-sql", action="store_true", help="Print the DDL instead of executing it")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    args = _parse_args(argv)

    if args.print_sql:
        print(SCHEMA_SQL)
        return
    if not args.dsn:
        raise SystemExit("--dsn or DATABASE_URL must be provided")

    logger.info("Ensuring report schema on %s", _redact_dsn(args.dsn))
    DBReportRepo(dsn=args.dsn).ensure_schema()
    logger.info("Report schema ready")


if __name__ == "__main__":
    main()
