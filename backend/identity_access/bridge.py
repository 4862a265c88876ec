"""
Identity bridge: teacher login/logout against the external identity service.

Why: Credentials never touch this application. The bridge forwards them to
the Sanctum-style login endpoint, validates the answer and normalizes every
outcome into `LoginOk` or `LoginErr` so no upstream shape leaks past this
module.

Security: Never log credentials or bearer tokens. All calls carry an explicit
timeout and are never retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from urllib.parse import unquote
import logging
import math
import re

# Small indirection to ease monkeypatching in tests
import requests as http

from .config import IdentityConfig
from .session_codec import TEACHER_TYPE, TeacherIdentity, TeacherSession

logger = logging.getLogger("laporan.identity")

HTTP_TIMEOUT_SECONDS = 10
BASE_HEADERS = {"Accept": "application/json", "X-Requested-With": "XMLHttpRequest"}

MSG_MISSING_CREDENTIALS = "Email/username dan password wajib diisi"
MSG_LOGIN_FAILED = "Login gagal. Periksa email/username dan password."
MSG_INVALID_RESPONSE = "Respons login tidak valid dari backend"
MSG_NOT_TEACHER = "Akses ditolak. Halaman laporan hanya untuk guru."
MSG_UNREACHABLE = "Gagal menghubungi layanan autentikasi"

# Split a folded Set-Cookie header on commas that start a new name=value pair
# (the comma in `Expires=Wed, 21 Oct ...` is followed by a date, not a cookie name).
_SET_COOKIE_SPLIT = re.compile(r",(?=\s*[^;,=\s]+=)")


def http_get(url: str, headers: Dict[str, str]):
    return http.get(url, headers=headers, timeout=HTTP_TIMEOUT_SECONDS)


def http_post(url: str, json: Dict[str, Any], headers: Dict[str, str]):
    return http.post(url, json=json, headers=headers, timeout=HTTP_TIMEOUT_SECONDS)


@dataclass(frozen=True)
class LoginOk:
    identity: TeacherIdentity


@dataclass(frozen=True)
class LoginErr:
    """Normalized login failure.

    kind: "validation" | "auth" | "forbidden" | "upstream" | "upstream_contract"
    status: HTTP status the web adapter should answer with
    message: human-readable message safe to show to the user
    """

    kind: str
    status: int
    message: str


LoginResult = Union[LoginOk, LoginErr]


def _is_success(status_code: int) -> bool:
    return 200 <= int(status_code) < 300


def cookie_header_from_set_cookie(set_cookie: Optional[str]) -> str:
    """Reduce a (possibly folded) Set-Cookie header to a Cookie request header."""
    if not set_cookie:
        return ""
    pairs = []
    for entry in _SET_COOKIE_SPLIT.split(set_cookie):
        pair = entry.split(";", 1)[0].strip()
        if pair:
            pairs.append(pair)
    return "; ".join(pairs)


def xsrf_token_from_cookie_header(cookie_header: str) -> str:
    if not cookie_header:
        return ""
    for cookie in cookie_header.split("; "):
        if cookie.startswith("XSRF-TOKEN="):
            return unquote(cookie[len("XSRF-TOKEN="):])
    return ""


def _extract_message(resp) -> str:
    """Best-effort `message` from an upstream error body."""
    try:
        body = resp.json()
    except ValueError:
        return MSG_LOGIN_FAILED
    if isinstance(body, dict) and body.get("message") is not None:
        return str(body["message"])
    return MSG_LOGIN_FAILED


def _non_empty_str(value: Any) -> str:
    return value if isinstance(value, str) and value else ""


def _parse_identity(payload: Any) -> Optional[TeacherIdentity]:
    if not isinstance(payload, dict):
        return None
    user = payload.get("user")
    if not isinstance(user, dict):
        return None
    token = _non_empty_str(payload.get("token"))
    user_id = _non_empty_str(user.get("id"))
    username = _non_empty_str(user.get("username"))
    email = _non_empty_str(user.get("email"))
    user_type = user.get("type")
    if isinstance(user_type, bool) or not isinstance(user_type, (int, float)) or not math.isfinite(user_type):
        return None
    if not (token and user_id and username and email):
        return None
    return TeacherIdentity(token=token, user_id=user_id, username=username, email=email, type=user_type)


class IdentityBridge:
    def __init__(self, config: IdentityConfig) -> None:
        self.cfg = config

    def _csrf_headers(self) -> Dict[str, str]:
        """Run the Sanctum CSRF pre-flight and return headers for the login call.

        Best effort: any failure degrades to an attempt without CSRF context.
        """
        headers: Dict[str, str] = {"X-Requested-With": BASE_HEADERS["X-Requested-With"]}
        csrf_url = self.cfg.csrf_endpoint
        if not csrf_url:
            return headers
        try:
            resp = http_get(csrf_url, headers=dict(BASE_HEADERS))
        except http.RequestException as exc:
            logger.warning("CSRF pre-flight failed: %s", exc.__class__.__name__)
            return headers
        if not _is_success(resp.status_code):
            logger.warning("CSRF pre-flight returned status=%s", resp.status_code)
            return headers
        cookie_header = cookie_header_from_set_cookie((resp.headers or {}).get("set-cookie"))
        xsrf = xsrf_token_from_cookie_header(cookie_header)
        if cookie_header:
            headers["Cookie"] = cookie_header
        if xsrf:
            headers["X-XSRF-TOKEN"] = xsrf
        return headers

    def login(self, identifier: Any, password: Any) -> LoginResult:
        """Authenticate a teacher and return the validated identity.

        Behavior:
            - 400 when identifier or password is missing.
            - Upstream non-2xx: upstream status with its `message` (or a generic one).
            - Network error/timeout: 502.
            - Payload missing token/user fields: 502.
            - Valid credentials of a non-teacher account: 403.
        """
        ident = identifier.strip() if isinstance(identifier, str) else ""
        pwd = password if isinstance(password, str) else ""
        if not ident or not pwd:
            return LoginErr(kind="validation", status=400, message=MSG_MISSING_CREDENTIALS)

        login_url = self.cfg.login_endpoint
        if not login_url:
            return LoginErr(kind="upstream", status=502, message=MSG_UNREACHABLE)

        headers = {**BASE_HEADERS, **self._csrf_headers()}
        try:
            resp = http_post(login_url, json={"email": ident, "username": ident, "password": pwd}, headers=headers)
        except http.RequestException as exc:
            logger.warning("Identity login request failed: %s", exc.__class__.__name__)
            return LoginErr(kind="upstream", status=502, message=MSG_UNREACHABLE)

        if not _is_success(resp.status_code):
            logger.info("Identity login rejected status=%s", resp.status_code)
            return LoginErr(kind="auth", status=int(resp.status_code), message=_extract_message(resp))

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        identity = _parse_identity(payload)
        if identity is None:
            logger.warning("Identity login returned an unexpected payload shape")
            return LoginErr(kind="upstream_contract", status=502, message=MSG_INVALID_RESPONSE)

        if identity.type != TEACHER_TYPE:
            return LoginErr(kind="forbidden", status=403, message=MSG_NOT_TEACHER)
        return LoginOk(identity=identity)

    def logout(self, session: Optional[TeacherSession]) -> None:
        """Notify the identity service about a logout; failures are swallowed."""
        if session is None or not session.token:
            return
        logout_url = self.cfg.logout_endpoint
        if not logout_url:
            return
        headers = {**BASE_HEADERS, "Authorization": f"Bearer {session.token}"}
        try:
            resp = http_post(logout_url, json={}, headers=headers)
        except http.RequestException as exc:
            logger.warning("Remote logout failed: %s", exc.__class__.__name__)
            return
        if not _is_success(resp.status_code):
            logger.warning("Remote logout returned status=%s", resp.status_code)
