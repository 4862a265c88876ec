"""
Configuration and startup security checks for the Ramadan report backend.

Why: Student reports and teacher sessions must not be served from an
accidentally insecure deployment. This module provides a single guard that
enforces minimal production safety constraints without burdening local
development.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os


def current_environment() -> str:
    return (os.getenv("RAMADAN_ENV", "dev") or "dev").strip().lower()


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/stage only):
    - IDENTITY_API_URL must be set; it and every identity endpoint override
      must use https (teacher passwords and bearer tokens travel there).
    - DATABASE_URL (or REPORT_DATABASE_URL) must be set and must not disable TLS.
    - The fake student directory must not be selected.
    """
    env = current_environment()
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    # 1) Identity service endpoints
    api_url = (os.getenv("IDENTITY_API_URL") or "").strip()
    if not api_url:
        raise SystemExit("Refusing to start: IDENTITY_API_URL is unset in production.")

    def _must_be_https(url_value: str, var_name: str) -> None:
        if not url_value:
            return
        if url_value.strip().lower().startswith("http://"):
            raise SystemExit(
                f"Refusing to start: {var_name} must use https in production (got http)."
            )

    for var in ("IDENTITY_API_URL", "IDENTITY_CSRF_URL", "IDENTITY_LOGIN_URL", "IDENTITY_LOGOUT_URL"):
        _must_be_https(os.getenv(var, ""), var)

    # 2) Postgres: required, and TLS must not be disabled explicitly
    dsn = os.getenv("REPORT_DATABASE_URL") or os.getenv("DATABASE_URL") or ""
    if not dsn:
        raise SystemExit("Refusing to start: DATABASE_URL is unset in production.")
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    # 3) Demo data must never answer real lookups
    if (os.getenv("STUDENT_DIRECTORY") or "http").strip().lower() == "fake":
        raise SystemExit(
            "Refusing to start: STUDENT_DIRECTORY=fake is not allowed in production/staging."
        )
