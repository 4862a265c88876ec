"""
Endpoint configuration for the external identity service.

The service is a Laravel/Sanctum style API. `IDENTITY_API_URL` points at the
student lookup endpoint; the CSRF, login and logout endpoints live on the same
origin unless overridden explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlparse
import os

DEFAULT_CSRF_PATH = "/sanctum/csrf-cookie"
DEFAULT_LOGIN_PATH = "/assembly-login"
DEFAULT_LOGOUT_PATH = "/assembly-logout"


def derive_url(base_url: Optional[str], path: str) -> str:
    """Resolve `path` against `base_url`; empty string when base is unusable."""
    if not base_url:
        return ""
    parsed = urlparse(base_url)
    if not parsed.scheme or not parsed.netloc:
        return ""
    return urljoin(base_url, path)


@dataclass(frozen=True)
class IdentityConfig:
    api_url: str
    # None = derive from api_url; "" = explicitly disabled
    csrf_url_override: Optional[str] = None
    login_url_override: Optional[str] = None
    logout_url_override: Optional[str] = None

    @classmethod
    def from_env(cls) -> "IdentityConfig":
        return cls(
            api_url=(os.getenv("IDENTITY_API_URL") or "").strip(),
            csrf_url_override=os.getenv("IDENTITY_CSRF_URL"),
            login_url_override=os.getenv("IDENTITY_LOGIN_URL"),
            logout_url_override=os.getenv("IDENTITY_LOGOUT_URL"),
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_url)

    @property
    def csrf_endpoint(self) -> str:
        if self.csrf_url_override is not None:
            return self.csrf_url_override.strip()
        return derive_url(self.api_url, DEFAULT_CSRF_PATH)

    @property
    def login_endpoint(self) -> str:
        if self.login_url_override:
            return self.login_url_override.strip()
        return derive_url(self.api_url, DEFAULT_LOGIN_PATH)

    @property
    def logout_endpoint(self) -> str:
        if self.logout_url_override:
            return self.logout_url_override.strip()
        if self.login_url_override:
            return derive_url(self.login_url_override.strip(), DEFAULT_LOGOUT_PATH)
        return derive_url(self.api_url, DEFAULT_LOGOUT_PATH)
