from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from storefront.utils import security


def _request(headers=None, cookies=None):
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        raw.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


def test_determine_role(monkeypatch):
    monkeypatch.setattr(security, "ADMIN_EMAILS", ["owner@example.com"])
    assert security.determine_role("Owner@Example.com", {}) == "admin"
    assert security.determine_role("x@example.com", {"role": "admin"}) == "admin"
    assert security.determine_role("x@example.com", None) == "user"


def test_get_current_user_prefers_bearer(monkeypatch):
    seen = []
    monkeypatch.setattr(security, "get_user_from_token", lambda token: seen.append(token) or {"id": "u1"})

    user = security.get_current_user(_request({"Authorization": "Bearer abc"}, {"sb_access": "cookie-token"}))

    assert user == {"id": "u1"}
    assert seen == ["abc"]


def test_get_current_user_without_token():
    with pytest.raises(HTTPException) as exc:
        security.get_current_user(_request())
    assert exc.value.status_code == 401


def test_get_current_user_invalid_session(monkeypatch):
    def _boom(token):
        raise RuntimeError("jwt expired")

    monkeypatch.setattr(security, "get_user_from_token", _boom)
    with pytest.raises(HTTPException) as exc:
        security.get_current_user(_request(cookies={"sb_access": "old"}))
    assert exc.value.detail == "Session expired, please sign in again"


def test_get_user_from_token_normalizes(monkeypatch):
    client = MagicMock()
    client.auth.get_user.return_value = SimpleNamespace(user=SimpleNamespace(
        id="u1", email="a@b.co", user_metadata={"full_name": "Ann", "role": "admin"},
    ))
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: client)

    user = security.get_user_from_token("tok")

    assert user["id"] == "u1"
    assert user["name"] == "Ann"
    assert user["role"] == "admin"
    assert user["token"] == "tok"


def test_require_admin():
    with pytest.raises(HTTPException) as exc:
        security.require_admin({"role": "user"})
    assert exc.value.status_code == 403
    assert security.require_admin({"role": "admin"})["role"] == "admin"
