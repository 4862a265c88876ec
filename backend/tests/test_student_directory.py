"""
Student directory adapter (lookup by nis).

Focus:
- upstream payload normalization (`nipd`, first `rombel_aktif`)
- error mapping to DirectoryError statuses
- fake directory serves the demo students only
"""
from __future__ import annotations

import types

import pytest
import requests

from backend.identity_access import directory as directory_mod
from backend.identity_access.directory import (
    DirectoryError,
    FakeStudentDirectory,
    HttpStudentDirectory,
    StudentIdentity,
)

API_URL = "https://id.example.sch.id/api/siswa"


def _resp(status=200, body=None):
    def _json():
        if isinstance(body, Exception):
            raise body
        return body

    return types.SimpleNamespace(status_code=status, json=_json)


@pytest.fixture
def upstream(monkeypatch):
    state = {"response": _resp(200, {}), "calls": []}

    def fake_get(url, params=None, headers=None, timeout=None):
        state["calls"].append({"url": url, "params": params, "timeout": timeout})
        if isinstance(state["response"], Exception):
            raise state["response"]
        return state["response"]

    monkeypatch.setattr(directory_mod.requests, "get", fake_get)
    return state


def test_lookup_normalizes_upstream_payload(upstream):
    upstream["response"] = _resp(
        200,
        {
            "success": True,
            "data": {"fullname": "Siti Aminah", "nipd": "0067890", "rombel_aktif": [{"nama": "XI RPL 2"}, {"nama": "X RPL 1"}]},
        },
    )

    student = HttpStudentDirectory(API_URL).lookup("67890")

    assert student == StudentIdentity(nis="0067890", fullname="Siti Aminah", rombel="XI RPL 2")
    assert upstream["calls"][0] == {"url": API_URL, "params": {"nis": "67890"}, "timeout": 10}


def test_lookup_keeps_requested_nis_without_nipd(upstream):
    upstream["response"] = _resp(200, {"success": True, "data": {"fullname": "Budi", "rombel_aktif": [{"nama": "X AKL 1"}]}})

    assert HttpStudentDirectory(API_URL).lookup("11111").nis == "11111"


@pytest.mark.parametrize(
    "response, status",
    [
        (_resp(200, {"success": False}), 404),
        (_resp(200, ["not", "an", "object"]), 502),
        (_resp(200, {"success": True, "data": "nope"}), 502),
        (_resp(200, {"success": True, "data": {"fullname": "X", "rombel_aktif": []}}), 502),
        (_resp(200, {"success": True, "data": {"rombel_aktif": [{"nama": "X"}]}}), 502),
        (_resp(200, ValueError("not json")), 502),
        (_resp(404, {"error": "Siswa tidak terdaftar"}), 404),
        (_resp(503, {}), 503),
    ],
)
def test_lookup_error_mapping(upstream, response, status):
    upstream["response"] = response

    with pytest.raises(DirectoryError) as excinfo:
        HttpStudentDirectory(API_URL).lookup("12345")

    assert excinfo.value.status == status


def test_upstream_error_message_is_forwarded(upstream):
    upstream["response"] = _resp(404, {"error": "Siswa tidak terdaftar"})

    with pytest.raises(DirectoryError) as excinfo:
        HttpStudentDirectory(API_URL).lookup("12345")

    assert excinfo.value.message == "Siswa tidak terdaftar"


def test_network_failure_is_502(upstream):
    upstream["response"] = requests.ConnectionError("down")

    with pytest.raises(DirectoryError) as excinfo:
        HttpStudentDirectory(API_URL).lookup("12345")

    assert excinfo.value.status == 502


def test_missing_api_url_is_500(upstream):
    with pytest.raises(DirectoryError) as excinfo:
        HttpStudentDirectory("").lookup("12345")

    assert excinfo.value.status == 500
    assert upstream["calls"] == []


def test_fake_directory_serves_demo_students():
    fake = FakeStudentDirectory()

    assert fake.lookup("125261").fullname == "Rina Amelia"
    with pytest.raises(DirectoryError) as excinfo:
        fake.lookup("99999")
    assert excinfo.value.status == 404


def test_fake_directory_accepts_custom_roster():
    fake = FakeStudentDirectory([StudentIdentity(nis="1", fullname="A", rombel="R")])

    assert fake.lookup("1").rombel == "R"
    with pytest.raises(DirectoryError):
        fake.lookup("12345")
