"""
Teacher login/logout/session API against a faked identity service.

Focus:
- successful teacher login sets an httponly, secure `teacher_session` cookie
- non-teacher accounts get 403 and no cookie
- logout always clears the cookie; session reports the signed-in teacher
"""
from __future__ import annotations

import types

import httpx
import pytest
import requests
from httpx import ASGITransport

from backend.identity_access import bridge as bridge_mod
from backend.identity_access.session_codec import decode_session
from backend.web import main


pytestmark = pytest.mark.anyio("asyncio")


def _resp(status=200, body=None, headers=None):
    return types.SimpleNamespace(status_code=status, json=lambda: body, headers=headers or {})


class _Upstream:
    def __init__(self):
        self.login = _resp(200, {"token": "tok-1", "user": {"id": "9", "username": "bu.ani", "email": "ani@sekolah.sch.id", "type": 1}})
        self.logout = _resp(200, {})
        self.posts = []

    def get(self, url, headers):
        return _resp(204, headers={"set-cookie": "XSRF-TOKEN=x; Path=/"})

    def post(self, url, json, headers):
        self.posts.append((url, json, headers))
        if url.endswith("/assembly-logout"):
            if isinstance(self.logout, Exception):
                raise self.logout
            return self.logout
        return self.login


@pytest.fixture
def upstream(monkeypatch):
    monkeypatch.setenv("IDENTITY_API_URL", "https://id.example.sch.id/api/siswa")
    fake = _Upstream()
    monkeypatch.setattr(bridge_mod, "http_get", fake.get)
    monkeypatch.setattr(bridge_mod, "http_post", fake.post)
    return fake


def _client(**kwargs):
    return httpx.AsyncClient(transport=ASGITransport(app=main.app), base_url="http://test", **kwargs)


def _set_cookie_header(response) -> str:
    return next((v for k, v in response.headers.multi_items() if k.lower() == "set-cookie"), "")


@pytest.mark.anyio
async def test_teacher_login_sets_session_cookie(upstream):
    async with _client() as client:
        r = await client.post("/api/auth/login", json={"identifier": "bu.ani", "password": "pw"})

    assert r.status_code == 200
    assert r.json() == {"message": "Login berhasil", "teacher": {"username": "bu.ani", "email": "ani@sekolah.sch.id"}}
    assert r.headers.get("Cache-Control") == "private, no-store"
    cookie = _set_cookie_header(r)
    assert cookie.startswith("teacher_session=")
    lowered = cookie.lower()
    assert "httponly" in lowered
    assert "secure" in lowered
    assert "samesite=lax" in lowered
    assert "path=/" in lowered
    assert "max-age=28800" in lowered

    value = cookie.split(";", 1)[0].split("=", 1)[1]
    session = decode_session(value)
    assert session is not None
    assert session.type == 1
    assert session.token == "tok-1"


@pytest.mark.anyio
async def test_non_teacher_login_is_403_without_cookie(upstream):
    upstream.login = _resp(200, {"token": "tok-2", "user": {"id": "3", "username": "siswa", "email": "s@x", "type": 2}})

    async with _client() as client:
        r = await client.post("/api/auth/login", json={"identifier": "siswa", "password": "pw"})

    assert r.status_code == 403
    assert r.json() == {"error": "Akses ditolak. Halaman laporan hanya untuk guru."}
    assert _set_cookie_header(r) == ""


@pytest.mark.anyio
async def test_login_missing_fields_is_400(upstream):
    async with _client() as client:
        r_empty = await client.post("/api/auth/login", json={"identifier": "", "password": "pw"})
        r_not_json = await client.post("/api/auth/login", content=b"identifier=x", headers={"Content-Type": "text/plain"})
        r_array = await client.post("/api/auth/login", json=["x", "y"])

    for r in (r_empty, r_not_json, r_array):
        assert r.status_code == 400
        assert r.json() == {"error": "Email/username dan password wajib diisi"}
    assert upstream.posts == []


@pytest.mark.anyio
async def test_login_upstream_rejection_keeps_status(upstream):
    upstream.login = _resp(401, {"message": "Kredensial salah"})

    async with _client() as client:
        r = await client.post("/api/auth/login", json={"identifier": "bu.ani", "password": "bad"})

    assert r.status_code == 401
    assert r.json() == {"error": "Kredensial salah"}


@pytest.mark.anyio
async def test_login_without_identity_config_is_500():
    async with _client() as client:
        r = await client.post("/api/auth/login", json={"identifier": "bu.ani", "password": "pw"})

    assert r.status_code == 500
    assert "error" in r.json()


@pytest.mark.anyio
async def test_logout_clears_cookie_even_when_remote_fails(upstream, teacher_cookie):
    upstream.logout = requests.ConnectionError("down")

    async with _client(cookies={"teacher_session": teacher_cookie}) as client:
        r = await client.post("/api/auth/logout")

    assert r.status_code == 200
    assert r.json() == {"message": "Logout berhasil"}
    cookie = _set_cookie_header(r)
    assert cookie.startswith("teacher_session=")
    assert "max-age=0" in cookie.lower()
    url, body, headers = upstream.posts[-1]
    assert url == "https://id.example.sch.id/assembly-logout"
    assert headers["Authorization"] == "Bearer tok-123"


@pytest.mark.anyio
async def test_logout_without_session_still_succeeds(upstream):
    async with _client() as client:
        r = await client.post("/api/auth/logout")

    assert r.status_code == 200
    assert upstream.posts == []


@pytest.mark.anyio
async def test_session_endpoint_reports_teacher(teacher_cookie):
    async with _client(cookies={"teacher_session": teacher_cookie}) as client:
        r = await client.get("/api/auth/session")

    assert r.status_code == 200
    assert r.json() == {"authenticated": True, "teacher": {"username": "bu.guru", "email": "guru@sekolah.sch.id"}}


@pytest.mark.anyio
async def test_session_endpoint_without_cookie_is_401():
    async with _client() as client:
        r = await client.get("/api/auth/session")

    assert r.status_code == 401
    assert r.json() == {"authenticated": False}
