"""
Teacher session codec: encode/decode the `teacher_session` cookie.

Why: The report area keeps no server-side session store. After a successful
login against the identity service the validated teacher fields are packed
into the cookie itself and re-read on every request.

Security: The value is base64url(JSON) and is neither signed nor encrypted.
Confidentiality relies on transport security and the cookie flags
(httpOnly, Secure, SameSite=Lax, host-only). Anyone able to write cookies for
the host can forge a session; see DESIGN.md.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
import base64
import binascii
import json
import math
import time

TEACHER_SESSION_COOKIE = "teacher_session"
SESSION_TTL_SECONDS = 60 * 60 * 8
TEACHER_TYPE = 1


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class TeacherIdentity:
    """Validated account fields returned by the identity service."""

    token: str
    user_id: str
    username: str
    email: str
    type: int


@dataclass(frozen=True)
class TeacherSession:
    token: str
    user_id: str
    username: str
    email: str
    type: int
    expires_at: int  # epoch milliseconds

    def summary(self) -> dict:
        """Redacted view for clients (never includes the token)."""
        return {"username": self.username, "email": self.email}


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("ascii"))


def encode_session(identity: TeacherIdentity, *, now_ms: Optional[int] = None) -> tuple[str, TeacherSession]:
    """Return the cookie value and the session it represents.

    The expiry is absolute: issuance time plus eight hours.
    """
    issued = _now_ms() if now_ms is None else now_ms
    session = TeacherSession(
        token=identity.token,
        user_id=identity.user_id,
        username=identity.username,
        email=identity.email,
        type=identity.type,
        expires_at=issued + SESSION_TTL_SECONDS * 1000,
    )
    payload = {
        "token": session.token,
        "userId": session.user_id,
        "username": session.username,
        "email": session.email,
        "type": session.type,
        "expiresAt": session.expires_at,
    }
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return _b64url_encode(raw), session


def _is_number(value: Any) -> bool:
    # bool is an int subclass; `true` must not pass as a role or expiry
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _parse(raw: str) -> Optional[TeacherSession]:
    try:
        decoded = _b64url_decode(raw).decode("utf-8")
        parsed = json.loads(decoded)
    # deeply nested arrays exhaust the json decoder's recursion limit
    except (ValueError, binascii.Error, UnicodeError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None
    for key in ("token", "userId", "username", "email"):
        if not isinstance(parsed.get(key), str):
            return None
    if not _is_number(parsed.get("type")) or not _is_number(parsed.get("expiresAt")):
        return None
    return TeacherSession(
        token=parsed["token"],
        user_id=parsed["userId"],
        username=parsed["username"],
        email=parsed["email"],
        type=parsed["type"],
        expires_at=parsed["expiresAt"],
    )


def decode_session(raw: Optional[str], *, now_ms: Optional[int] = None) -> Optional[TeacherSession]:
    """Materialize a teacher session from a cookie value.

    Total function: malformed, expired, non-teacher or absent values all yield
    None. Callers treat None as "no session", never as an error.
    """
    if not raw or not isinstance(raw, str):
        return None
    session = _parse(raw)
    if session is None:
        return None
    current = _now_ms() if now_ms is None else now_ms
    if session.expires_at <= current:
        return None
    if session.type != TEACHER_TYPE:
        return None
    return session

