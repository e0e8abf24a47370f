from fastapi.testclient import TestClient

import app.api as api_module
from app.routes import auth, dashboard, public


def _stub_login(monkeypatch, result):
    monkeypatch.setattr(auth, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(auth, "authenticate", lambda email, pw: result)
    monkeypatch.setattr(auth, "create_session", lambda uid: "session-token")
    monkeypatch.setattr(auth, "get_all_settings", lambda: {"require_email_verification": False})


def test_login_logout_flow_redirects_when_user_missing(monkeypatch):
    client = TestClient(api_module.app)
    user = {"id": 1, "email": "user@example.com", "role": "candidate", "active": 1,
            "email_verified_at": "2025-01-01T00:00:00"}
    _stub_login(monkeypatch, (user, ""))

    resp = client.post(
        "/login",
        data={"email": "user@example.com", "password": "Passw0rd1", "csrf_token": "ok"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"
    assert "session_id" in resp.cookies

    # Simulate missing/invalid session for protected route
    monkeypatch.setattr(dashboard, "get_current_user", lambda req: (None, None))
    resp2 = client.get("/dashboard", follow_redirects=False)
    assert resp2.status_code in (302, 303)
    assert "/login" in resp2.headers.get("location", "")


def test_login_distinguishes_unknown_email_and_wrong_password(monkeypatch):
    client = TestClient(api_module.app)

    _stub_login(monkeypatch, (None, "unknown_email"))
    resp = client.post("/login", data={"email": "x@example.com", "password": "Passw0rd1", "csrf_token": "ok"})
    assert resp.status_code == 200
    assert "Account does not exist" in resp.text
    assert "Attempts left: 9" in resp.text

    _stub_login(monkeypatch, ({"id": 1}, "bad_password"))
    resp = client.post("/login", data={"email": "x@example.com", "password": "Passw0rd1", "csrf_token": "ok"})
    assert "Incorrect password" in resp.text
    assert "Attempts left: 8" in resp.text


def test_login_blocks_inactive_account(monkeypatch):
    client = TestClient(api_module.app)
    _stub_login(monkeypatch, ({"id": 1, "active": 0}, "inactive"))

    resp = client.post(
        "/login",
        data={"email": "x@example.com", "password": "Passw0rd1", "csrf_token": "ok"},
        follow_redirects=False,
    )
    assert resp.status_code == 200
    assert "deactivated" in resp.text
    assert "session_id" not in resp.cookies


def test_login_rate_limited_after_ten_attempts(monkeypatch):
    client = TestClient(api_module.app)
    _stub_login(monkeypatch, (None, "unknown_email"))

    for _ in range(10):
        client.post("/login", data={"email": "x@example.com", "password": "Passw0rd1", "csrf_token": "ok"})
    resp = client.post("/login", data={"email": "x@example.com", "password": "Passw0rd1", "csrf_token": "ok"})
    assert resp.status_code == 429


def test_unverified_user_gets_verification_page(monkeypatch):
    client = TestClient(api_module.app)
    sent = []
    user = {"id": 3, "email": "new@example.com", "role": "candidate", "active": 1, "email_verified_at": None}
    _stub_login(monkeypatch, (user, ""))
    monkeypatch.setattr(auth, "get_all_settings", lambda: {"require_email_verification": True})
    monkeypatch.setattr(auth, "create_email_verification_token", lambda uid: "verify-token")
    monkeypatch.setattr(auth, "send_text_email", lambda **kw: sent.append(kw))

    def no_session(uid):
        raise AssertionError("unverified users must not get a session")

    monkeypatch.setattr(auth, "create_session", no_session)

    resp = client.post(
        "/login",
        data={"email": "new@example.com", "password": "Passw0rd1", "csrf_token": "ok"},
        follow_redirects=False,
    )
    assert resp.status_code == 200
    assert "Verify your email" in resp.text
    assert sent and sent[0]["to_email"] == "new@example.com"
    assert "verify-token" in sent[0]["body"]


def test_demo_login_creates_session(monkeypatch):
    client = TestClient(api_module.app)
    monkeypatch.setattr(auth, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(auth, "ensure_demo_user", lambda role: {"id": 11, "role": role, "active": 1})
    monkeypatch.setattr(auth, "create_session", lambda uid: "demo-session")

    resp = client.post("/login/demo/recruiter", data={"csrf_token": "ok"}, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.cookies.get("session_id") == "demo-session"


def test_demo_login_disabled(monkeypatch):
    client = TestClient(api_module.app)
    monkeypatch.setenv("DEMO_LOGIN_ENABLED", "false")

    resp = client.post("/login/demo/candidate", data={"csrf_token": "ok"}, follow_redirects=False)
    assert resp.status_code == 404


def test_register_rate_limit_integration(monkeypatch):
    client = TestClient(api_module.app)
    monkeypatch.setattr(public, "allow_request", lambda *a, **k: False)
    monkeypatch.setattr(public, "validate_csrf", lambda req, tok: True)

    resp = client.post(
        "/register",
        data={
            "email": "user@example.com",
            "password": "Passw0rd1",
            "password2": "Passw0rd1",
            "role": "candidate",
            "csrf_token": "ok",
        },
        follow_redirects=False,
    )
    assert resp.status_code == 429


def test_register_success_logs_in(monkeypatch):
    client = TestClient(api_module.app)
    monkeypatch.setattr(public, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(public, "get_all_settings", lambda: {"require_email_verification": False, "notify_new_user": False})
    monkeypatch.setattr(public, "register", lambda email, pw, role, settings=None: 21)
    monkeypatch.setattr(public, "create_session", lambda uid: "new-session")

    resp = client.post(
        "/register",
        data={
            "email": "user@example.com",
            "password": "Passw0rd1",
            "password2": "Passw0rd1",
            "role": "recruiter",
            "csrf_token": "ok",
        },
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"
    assert resp.cookies.get("session_id") == "new-session"


def test_register_password_mismatch(monkeypatch):
    client = TestClient(api_module.app)
    monkeypatch.setattr(public, "validate_csrf", lambda req, tok: True)

    resp = client.post(
        "/register",
        data={
            "email": "user@example.com",
            "password": "Passw0rd1",
            "password2": "Passw0rd2",
            "role": "candidate",
            "csrf_token": "ok",
        },
    )
    assert resp.status_code == 400
    assert "Passwords do not match." in resp.text
