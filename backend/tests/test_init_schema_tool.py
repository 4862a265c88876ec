"""
Schema bootstrap CLI (`python -m backend.tools.init_schema`).
"""
from __future__ import annotations

import pytest

from backend.reporting import repo_db
from backend.tools import init_schema
from utils.fake_psycopg import install_fake_psycopg


def test_print_sql_outputs_ddl(capsys):
    init_schema.main(["--print-sql"])

    out = capsys.readouterr().out
    assert "create table if not exists public.students" in out
    assert "create table if not exists public.sheets" in out


def test_missing_dsn_aborts():
    with pytest.raises(SystemExit):
        init_schema.main([])


def test_runs_ddl_against_dsn(monkeypatch):
    db = install_fake_psycopg(monkeypatch, repo_db)

    init_schema.main(["--dsn", "postgresql://user:pw@db.example.com/laporan"])

    assert db.last_sql == repo_db.SCHEMA_SQL


def test_dsn_is_redacted_for_logs():
    assert init_schema._redact_dsn("postgresql://user:pw@db.example.com:5432/laporan") == "postgresql://***@db.example.com/laporan"
