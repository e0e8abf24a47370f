import types

import pytest
from starlette.responses import HTMLResponse

from app.routes import auth


def _dummy_request():
    return types.SimpleNamespace(client=types.SimpleNamespace(host="127.0.0.1"), cookies={}, base_url="http://testserver/")


def test_password_reset_confirm_invalid_token(monkeypatch):
    monkeypatch.setattr(auth, "allow_request", lambda *a, **k: True)
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_password_reset_token", lambda token: None)

    resp = auth.password_reset_confirm(
        _dummy_request(),
        token="invalid",
        password="Passw0rd1",
        password2="Passw0rd1",
        csrf_token="ok",
    )
    assert isinstance(resp, HTMLResponse)
    assert resp.status_code == 200
    assert b"Reset link is invalid or expired." in resp.body


def test_password_reset_confirm_single_use(monkeypatch):
    token_data = {"user_id": 42}
    monkeypatch.setattr(auth, "allow_request", lambda *a, **k: True)
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_password_reset_token", lambda token: token_data if token == "valid" else None)
    monkeypatch.setattr(auth, "get_all_settings", lambda: {"password_min_length": 8})

    actions = {"updated": False, "used": False}
    monkeypatch.setattr(auth, "get_user_by_id", lambda uid: {"id": uid, "role": "candidate"})
    monkeypatch.setattr(auth, "update_user_password", lambda uid, pw: actions.__setitem__("updated", True))
    monkeypatch.setattr(auth, "mark_reset_token_used", lambda tok: actions.__setitem__("used", True))

    resp = auth.password_reset_confirm(
        _dummy_request(),
        token="valid",
        password="Passw0rd1",
        password2="Passw0rd1",
        csrf_token="ok",
    )
    assert resp.status_code == 200
    assert b"Password updated" in resp.body
    assert actions["updated"] is True
    assert actions["used"] is True

    # Second use should now fail because token lookup returns None
    monkeypatch.setattr(auth, "get_password_reset_token", lambda token: None)
    resp2 = auth.password_reset_confirm(
        _dummy_request(),
        token="valid",
        password="Passw0rd1",
        password2="Passw0rd1",
        csrf_token="ok",
    )
    assert b"Reset link is invalid or expired." in resp2.body


def test_password_reset_confirm_blocks_admin(monkeypatch):
    monkeypatch.setattr(auth, "allow_request", lambda *a, **k: True)
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_password_reset_token", lambda token: {"user_id": 1})
    monkeypatch.setattr(auth, "get_all_settings", lambda: {"password_min_length": 8})
    monkeypatch.setattr(auth, "get_user_by_id", lambda uid: {"id": uid, "role": "admin"})
    monkeypatch.setattr(auth, "update_user_password", lambda *a: pytest.fail("admin password must not change"))

    resp = auth.password_reset_confirm(
        _dummy_request(), token="t", password="Passw0rd1", password2="Passw0rd1", csrf_token="ok"
    )
    assert b"not available for this account" in resp.body


def test_password_reset_confirm_rejects_weak_password(monkeypatch):
    monkeypatch.setattr(auth, "allow_request", lambda *a, **k: True)
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_password_reset_token", lambda token: {"user_id": 1})
    monkeypatch.setattr(auth, "get_all_settings", lambda: {"password_min_length": 8})

    resp = auth.password_reset_confirm(
        _dummy_request(), token="t", password="lettersonly", password2="lettersonly", csrf_token="ok"
    )
    assert b"letters and numbers" in resp.body


def test_password_reset_request_skips_admin_accounts(monkeypatch):
    sent = []
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_user_by_email", lambda email: {"id": 1, "email": email, "role": "admin"})
    monkeypatch.setattr(auth, "create_password_reset_token", lambda uid: sent.append(uid) or "tok")
    monkeypatch.setattr(auth, "send_reset_email", lambda to, link: sent.append(to))

    resp = auth.password_reset_request(_dummy_request(), email="admin@example.com", csrf_token="ok")
    assert resp.status_code == 200
    assert b"If that email exists" in resp.body
    assert sent == []


def test_password_reset_request_sends_link(monkeypatch):
    sent = []
    monkeypatch.delenv("PUBLIC_BASE_URL", raising=False)
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_user_by_email", lambda email: {"id": 5, "email": email, "role": "candidate"})
    monkeypatch.setattr(auth, "create_password_reset_token", lambda uid: "reset-tok")
    monkeypatch.setattr(auth, "send_reset_email", lambda to, link: sent.append((to, link)))

    resp = auth.password_reset_request(_dummy_request(), email="user@example.com", csrf_token="ok")
    assert resp.status_code == 200
    assert sent == [("user@example.com", "http://testserver/password-reset/confirm?token=reset-tok")]


def test_password_reset_request_limited_to_five(monkeypatch):
    monkeypatch.setattr(auth, "validate_csrf", lambda req, token: True)
    monkeypatch.setattr(auth, "get_user_by_email", lambda email: None)

    for _ in range(5):
        assert auth.password_reset_request(_dummy_request(), email="u@example.com", csrf_token="ok").status_code == 200
    assert auth.password_reset_request(_dummy_request(), email="u@example.com", csrf_token="ok").status_code == 429
