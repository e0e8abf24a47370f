import types

from app import auth_utils, security
from app.routes import auth, public


def _dummy_request(cookies=None):
    return types.SimpleNamespace(
        client=types.SimpleNamespace(host="127.0.0.1"),
        cookies=cookies if cookies is not None else {security.CSRF_COOKIE_NAME: "cookie-token"},
    )


def test_login_rate_limit(monkeypatch):
    calls = {"count": 0}

    def fake_allow_request_with_remaining(key, limit=5, window_seconds=60):
        calls["count"] += 1
        allowed = calls["count"] < 2
        return allowed, (1 if allowed else 0)

    monkeypatch.setattr(auth, "allow_request_with_remaining", fake_allow_request_with_remaining)

    # first call passes limit check but fails CSRF -> 403
    resp1 = auth.login(_dummy_request(), email="user@example.com", password="bad", csrf_token="wrong")
    assert resp1.status_code == 403
    # second call exceeds limit -> 429
    resp2 = auth.login(_dummy_request(), email="user@example.com", password="bad", csrf_token="wrong")
    assert resp2.status_code == 429


def test_register_rate_limit_uses_client_ip(monkeypatch):
    keys = []

    def fake_allow_request(key, limit=5, window_seconds=60):
        keys.append((key, limit, window_seconds))
        return False

    monkeypatch.setattr(public, "allow_request", fake_allow_request)
    resp = public.register_submit(
        request=_dummy_request(),
        email="user@example.com",
        password="Passw0rd1",
        password2="Passw0rd1",
        role="candidate",
        csrf_token="wrong",
    )
    assert resp.status_code == 429
    assert keys == [("register:127.0.0.1", 10, 300)]


def test_logout_without_session_redirects_home(monkeypatch):
    monkeypatch.setattr(auth, "get_current_user", lambda req: (None, None))
    monkeypatch.setattr(auth, "delete_session", lambda tok: None)

    resp = auth.logout(_dummy_request({}))
    assert resp.status_code in (302, 303)
    assert resp.headers["location"] == "/"


def test_get_current_user_without_cookie():
    assert auth_utils.get_current_user(_dummy_request({})) == (None, None)


def test_get_current_user_drops_inactive_users(monkeypatch):
    deleted = []
    monkeypatch.setattr(auth_utils, "get_session", lambda tok: {"user_id": 3})
    monkeypatch.setattr(auth_utils, "get_user_by_id", lambda uid: {"id": uid, "active": 0})
    monkeypatch.setattr(auth_utils, "delete_session", lambda tok: deleted.append(tok))

    req = _dummy_request({auth_utils.SESSION_COOKIE_NAME: "tok"})
    assert auth_utils.get_current_user(req) == (None, "tok")
    assert deleted == ["tok"]


def test_get_current_user_blocks_unverified_when_required(monkeypatch):
    monkeypatch.setattr(auth_utils, "get_session", lambda tok: {"user_id": 3})
    monkeypatch.setattr(
        auth_utils,
        "get_user_by_id",
        lambda uid: {"id": uid, "active": 1, "role": "candidate", "email_verified_at": None},
    )
    monkeypatch.setattr(auth_utils, "get_setting", lambda key: key == "require_email_verification")
    monkeypatch.setattr(auth_utils, "delete_session", lambda tok: None)

    req = _dummy_request({auth_utils.SESSION_COOKIE_NAME: "tok"})
    assert auth_utils.get_current_user(req) == (None, "tok")


def test_get_current_user_refreshes_valid_session(monkeypatch):
    touched = []
    user = {"id": 3, "active": 1, "role": "recruiter", "email_verified_at": "2025-01-01T00:00:00"}
    monkeypatch.setattr(auth_utils, "get_session", lambda tok: {"user_id": 3})
    monkeypatch.setattr(auth_utils, "get_user_by_id", lambda uid: user)
    monkeypatch.setattr(auth_utils, "touch_session", lambda tok: touched.append(tok))

    req = _dummy_request({auth_utils.SESSION_COOKIE_NAME: "tok"})
    assert auth_utils.get_current_user(req) == (user, "tok")
    assert touched == ["tok"]
