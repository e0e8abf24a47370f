import types

import pytest

from app import auth_utils, security
from app.routes import admin, applications, auth, public, recruiter


def _dummy_request(cookies=None):
    return types.SimpleNamespace(
        client=types.SimpleNamespace(host="127.0.0.1"),
        cookies=cookies if cookies is not None else {security.CSRF_COOKIE_NAME: "cookie-token"},
    )


def test_csrf_validation_success_and_failure():
    class DummyReq:
        def __init__(self, cookies):
            self.cookies = cookies

    token = security.issue_csrf_token()
    req_ok = DummyReq({security.CSRF_COOKIE_NAME: token})
    assert security.validate_csrf(req_ok, token) is True

    req_bad = DummyReq({security.CSRF_COOKIE_NAME: token})
    assert security.validate_csrf(req_bad, "wrong") is False
    req_missing = DummyReq({})
    assert security.validate_csrf(req_missing, token) is False


def test_rate_limit_sliding_window():
    key = "test:rl"
    allowed, remaining = security.allow_request_with_remaining(key, limit=2, window_seconds=60)
    assert allowed is True and remaining == 1
    allowed, remaining = security.allow_request_with_remaining(key, limit=2, window_seconds=60)
    assert allowed is True and remaining == 0
    allowed, remaining = security.allow_request_with_remaining(key, limit=2, window_seconds=60)
    assert allowed is False and remaining == 0


def test_require_role():
    assert auth_utils.require_role(None, "admin").status_code == 303
    assert auth_utils.require_role({"role": "candidate"}, "admin").status_code == 403
    assert auth_utils.require_role({"role": "admin"}, "admin") is None


@pytest.mark.parametrize(
    "handler,stubs",
    [
        (admin.users_page, {"list_users": lambda: []}),
        (admin.all_applications, {"get_all_applications": lambda: []}),
        (admin.settings_page, {"get_all_settings": lambda: {}}),
        (admin.archives, {"get_deleted_users": lambda limit=200: []}),
    ],
)
def test_admin_pages_forbidden_for_non_admin(monkeypatch, handler, stubs):
    monkeypatch.setattr(admin, "get_current_user", lambda req: ({"id": 2, "role": "recruiter"}, None))
    for name, stub in stubs.items():
        monkeypatch.setattr(admin, name, stub)

    resp = handler(_dummy_request())
    assert resp.status_code == 403


def test_admin_route_redirect_when_not_logged_in(monkeypatch):
    monkeypatch.setattr(admin, "get_current_user", lambda req: (None, None))
    monkeypatch.setattr(admin, "list_users", lambda: [])

    resp = admin.users_page(_dummy_request())
    assert resp.status_code in (302, 303)
    assert resp.headers["location"] == "/login"


def test_candidate_cannot_change_application_status(monkeypatch):
    monkeypatch.setattr(applications, "get_current_user", lambda req: ({"id": 5, "role": "candidate"}, None))
    monkeypatch.setattr(applications, "update_application_status", lambda *a: pytest.fail("should not update"))

    resp = applications.change_status(_dummy_request(), 1, status="hired", next="", csrf_token="cookie-token")
    assert resp.status_code == 403


def test_candidate_cannot_close_jobs(monkeypatch):
    monkeypatch.setattr(recruiter, "get_current_user", lambda req: ({"id": 5, "role": "candidate"}, None))
    monkeypatch.setattr(recruiter, "close_job", lambda *a, **k: pytest.fail("should not close"))

    resp = recruiter.close_job_route(_dummy_request(), 1, csrf_token="cookie-token")
    assert resp.status_code == 403


def test_recruiter_close_is_scoped_to_own_postings(monkeypatch):
    calls = []
    monkeypatch.setattr(recruiter, "get_current_user", lambda req: ({"id": 9, "role": "recruiter"}, None))
    monkeypatch.setattr(recruiter, "close_job", lambda job_id, recruiter_user_id=None: calls.append((job_id, recruiter_user_id)) or False)

    resp = recruiter.close_job_route(_dummy_request(), 3, csrf_token="cookie-token")
    assert calls == [(3, 9)]
    assert resp.status_code == 404


def test_admin_delete_job_is_unscoped(monkeypatch):
    calls = []
    monkeypatch.setattr(recruiter, "get_current_user", lambda req: ({"id": 1, "role": "admin"}, None))
    monkeypatch.setattr(recruiter, "job_resume_urls", lambda job_id: [])
    monkeypatch.setattr(recruiter, "delete_job", lambda job_id, recruiter_user_id=None: calls.append((job_id, recruiter_user_id)) or True)

    resp = recruiter.delete_job_route(_dummy_request(), 3, csrf_token="cookie-token")
    assert calls == [(3, None)]
    assert resp.status_code == 303
    assert resp.headers["location"] == "/jobs"


def test_login_rejects_missing_csrf(monkeypatch):
    monkeypatch.setattr(auth, "allow_request_with_remaining", lambda *a, **k: (True, 9))
    monkeypatch.setattr(auth, "authenticate", lambda *a: pytest.fail("should not authenticate"))

    resp = auth.login(_dummy_request(), email="user@example.com", password="bad", csrf_token="wrong")
    assert resp.status_code == 403


def test_password_reset_rejects_missing_csrf(monkeypatch):
    monkeypatch.setattr(auth, "allow_request_with_remaining", lambda *a, **k: (True, 5))
    resp = auth.password_reset_request(_dummy_request(), email="user@example.com", csrf_token="wrong")
    assert resp.status_code == 403


def test_register_rejects_missing_csrf(monkeypatch):
    monkeypatch.setattr(public, "allow_request", lambda *a, **k: True)
    monkeypatch.setattr(public, "register", lambda *a, **k: pytest.fail("should not register"))

    resp = public.register_submit(
        request=_dummy_request(),
        email="user@example.com",
        password="Passw0rd1",
        password2="Passw0rd1",
        role="candidate",
        csrf_token="wrong",
    )
    assert resp.status_code == 403


def test_admin_cannot_deactivate_self_or_other_admins(monkeypatch):
    monkeypatch.setattr(admin, "get_current_user", lambda req: ({"id": 1, "role": "admin"}, None))
    monkeypatch.setattr(admin, "get_user_by_id", lambda uid: {"id": uid, "role": "admin"})
    monkeypatch.setattr(admin, "set_user_active", lambda *a: pytest.fail("should not change"))

    resp_self = admin.deactivate_user(_dummy_request(), 1, csrf_token="cookie-token")
    assert resp_self.status_code == 303
    assert "error=" in resp_self.headers["location"]

    resp_admin = admin.deactivate_user(_dummy_request(), 2, csrf_token="cookie-token")
    assert resp_admin.status_code == 303
    assert "error=" in resp_admin.headers["location"]


def test_admin_deactivates_candidate(monkeypatch):
    changed = []
    monkeypatch.setattr(admin, "get_current_user", lambda req: ({"id": 1, "role": "admin"}, None))
    monkeypatch.setattr(admin, "get_user_by_id", lambda uid: {"id": uid, "role": "candidate"})
    monkeypatch.setattr(admin, "set_user_active", lambda uid, active: changed.append((uid, active)))

    resp = admin.deactivate_user(_dummy_request(), 4, csrf_token="cookie-token")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/users"
    assert changed == [(4, False)]
