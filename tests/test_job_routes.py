import pytest
from fastapi.testclient import TestClient

import app.api as api_module
from app.routes import applications, jobs, recruiter
from core.errors import ApplicationError

CANDIDATE = {"id": 5, "email": "cand@example.com", "role": "candidate", "active": 1}
RECRUITER = {"id": 9, "email": "rec@example.com", "role": "recruiter", "active": 1}

OPEN_JOB = {
    "id": 3,
    "recruiter_user_id": 9,
    "job_title": "Python Developer",
    "employer": "Acme",
    "city": "Johannesburg",
    "state": "Gauteng",
    "country": "South Africa",
    "experience_level": "fresher",
    "skills_required": ["Python"],
    "status": "active",
    "expires_at": "2999-01-01T00:00:00",
}


def _login_as(monkeypatch, module, user):
    monkeypatch.setattr(module, "get_current_user", lambda req: (user, "tok" if user else None))


def test_browse_jobs_is_public_and_filters(monkeypatch):
    client = TestClient(api_module.app)
    accountant = dict(OPEN_JOB, id=4, job_title="Accountant", skills_required=["Excel"])
    monkeypatch.setattr(jobs, "get_open_jobs", lambda: [OPEN_JOB, accountant])

    resp = client.get("/jobs", params={"search": "python"})
    assert resp.status_code == 200
    assert "Python Developer" in resp.text
    assert "Accountant" not in resp.text
    assert "1 job(s) found." in resp.text


def test_closed_job_hidden_from_candidates_but_visible_to_owner(monkeypatch):
    client = TestClient(api_module.app)
    closed = dict(OPEN_JOB, status="closed")
    monkeypatch.setattr(jobs, "get_job", lambda job_id: closed)

    _login_as(monkeypatch, jobs, CANDIDATE)
    assert client.get("/jobs/3").status_code == 404

    _login_as(monkeypatch, jobs, RECRUITER)
    resp = client.get("/jobs/3")
    assert resp.status_code == 200
    assert "Apply now" not in resp.text


def test_apply_requires_candidate(monkeypatch):
    client = TestClient(api_module.app)
    _login_as(monkeypatch, jobs, RECRUITER)
    monkeypatch.setattr(jobs, "get_job", lambda job_id: OPEN_JOB)

    assert client.get("/jobs/3/apply").status_code == 403


def test_apply_submit_saves_resume_and_notifies(monkeypatch):
    client = TestClient(api_module.app)
    saved, applied, notified = [], [], []
    _login_as(monkeypatch, jobs, CANDIDATE)
    monkeypatch.setattr(jobs, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(jobs, "get_job", lambda job_id: OPEN_JOB)
    monkeypatch.setattr(jobs, "get_candidate_profile", lambda uid: {"id": 12, "user_id": uid})
    monkeypatch.setattr(
        jobs,
        "save_upload",
        lambda bucket, owner, name, data, folder="": saved.append((bucket, owner, folder, data)) or f"/uploads/{bucket}/{owner}/{folder}1.pdf",
    )
    monkeypatch.setattr(jobs, "apply_to_job", lambda uid, job_id, url, cover: applied.append((uid, job_id, url, cover)) or 1)
    monkeypatch.setattr(jobs, "get_user_by_id", lambda uid: {"id": uid, "email": "rec@example.com"})
    monkeypatch.setattr(jobs, "get_all_settings", lambda: {"notify_new_application": True})
    monkeypatch.setattr(jobs, "notify_new_application", lambda email, job, settings: notified.append(email))

    resp = client.post(
        "/jobs/3/apply",
        data={"cover_letter": "Keen to join.", "csrf_token": "ok"},
        files={"resume": ("cv.pdf", b"%PDF-1.4", "application/pdf")},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/applications?applied=1"
    assert saved == [("resumes", 12, "applications/", b"%PDF-1.4")]
    assert applied == [(5, 3, "/uploads/resumes/12/applications/1.pdf", "Keen to join.")]
    assert notified == ["rec@example.com"]


def test_apply_submit_without_resume_shows_error(monkeypatch):
    client = TestClient(api_module.app)
    _login_as(monkeypatch, jobs, CANDIDATE)
    monkeypatch.setattr(jobs, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(jobs, "get_job", lambda job_id: OPEN_JOB)
    monkeypatch.setattr(jobs, "get_candidate_profile", lambda uid: {"id": 12})

    def no_apply(*args):
        raise AssertionError("apply_to_job should not run without a resume")

    monkeypatch.setattr(jobs, "apply_to_job", no_apply)

    resp = client.post("/jobs/3/apply", data={"csrf_token": "ok"})
    assert resp.status_code == 400
    assert "Please upload a resume." in resp.text


def test_recruiter_posts_job(monkeypatch):
    client = TestClient(api_module.app)
    posted = []
    _login_as(monkeypatch, recruiter, RECRUITER)
    monkeypatch.setattr(recruiter, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(recruiter, "get_or_create_recruiter_profile", lambda uid: {"id": 2, "company_name": "Acme"})
    monkeypatch.setattr(recruiter, "post_job", lambda uid, data, skills, duration: posted.append((uid, skills, duration)) or 8)
    monkeypatch.setattr(recruiter, "get_all_settings", lambda: {"notify_new_job": False})

    form = {
        "job_title": "Data Analyst",
        "employer": "Acme",
        "address_line1": "1 Main St",
        "city": "Durban",
        "state": "KwaZulu-Natal",
        "zip_code": "4001",
        "country": "South Africa",
        "qualification": "BCom",
        "experience_level": "fresher",
        "post_duration": "15-days",
        "skills": "SQL, Excel",
        "job_description": "Analyse data.",
        "csrf_token": "ok",
    }
    resp = client.post("/jobs/create", data=form, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/jobs/posted?created=1"
    assert posted == [(9, "SQL, Excel", "15-days")]


def test_job_preview_reports_validation_error(monkeypatch):
    client = TestClient(api_module.app)
    _login_as(monkeypatch, recruiter, RECRUITER)
    monkeypatch.setattr(recruiter, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(recruiter, "default_expiry_days", lambda: 30)

    resp = client.post("/jobs/preview", data={"job_title": "", "csrf_token": "ok"})
    assert resp.status_code == 400
    assert "Job title is required." in resp.text


def test_status_change_notifies_candidate(monkeypatch):
    notified = []
    updated = {"id": 1, "status": "shortlisted", "previous_status": "applied", "candidate_email": "c@example.com"}
    _login_as(monkeypatch, applications, RECRUITER)
    monkeypatch.setattr(applications, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(applications, "update_application_status", lambda user, aid, status: updated)
    monkeypatch.setattr(applications, "get_all_settings", lambda: {"notify_status_update": True})
    monkeypatch.setattr(applications, "notify_status_change", lambda app, settings: notified.append(app["id"]))

    client = TestClient(api_module.app)
    resp = client.post(
        "/applications/1/status",
        data={"status": "shortlisted", "next": "https://evil.example.com/", "csrf_token": "ok"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/applications"
    assert notified == [1]


def test_status_change_without_change_does_not_notify(monkeypatch):
    _login_as(monkeypatch, applications, RECRUITER)
    monkeypatch.setattr(applications, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(applications, "update_application_status", lambda user, aid, status: {"id": 1, "status": status})

    def no_notify(*args):
        raise AssertionError("unchanged status should not notify")

    monkeypatch.setattr(applications, "notify_status_change", no_notify)

    client = TestClient(api_module.app)
    resp = client.post(
        "/applications/1/status",
        data={"status": "applied", "next": "/applications?job_id=3", "csrf_token": "ok"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/applications?job_id=3"


def test_rejected_application_leaves_no_files(monkeypatch, tmp_path):
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path))
    client = TestClient(api_module.app)
    _login_as(monkeypatch, jobs, CANDIDATE)
    monkeypatch.setattr(jobs, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(jobs, "get_job", lambda job_id: OPEN_JOB)
    monkeypatch.setattr(jobs, "get_candidate_profile", lambda uid: {"id": 12})

    def already_applied(*args):
        raise ApplicationError("You have already applied to this job.")

    monkeypatch.setattr(jobs, "apply_to_job", already_applied)

    resp = client.post(
        "/jobs/3/apply",
        data={"csrf_token": "ok"},
        files={
            "resume": ("cv.pdf", b"%PDF-1.4", "application/pdf"),
            "document": ("id.png", b"png", "image/png"),
        },
    )
    assert resp.status_code == 400
    assert "already applied" in resp.text
    assert [p for p in tmp_path.rglob("*") if p.is_file()] == []


def test_preview_uses_default_expiry_setting_for_unlisted_duration(monkeypatch):
    client = TestClient(api_module.app)
    _login_as(monkeypatch, recruiter, RECRUITER)
    monkeypatch.setattr(recruiter, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(recruiter, "default_expiry_days", lambda: 45)

    form = {
        "job_title": "Data Analyst",
        "employer": "Acme",
        "address_line1": "1 Main St",
        "city": "Durban",
        "state": "KwaZulu-Natal",
        "zip_code": "4001",
        "country": "South Africa",
        "qualification": "BCom",
        "experience_level": "fresher",
        "post_duration": "",
        "job_description": "Analyse data.",
        "csrf_token": "ok",
    }
    resp = client.post("/jobs/preview", data=form)
    assert resp.status_code == 200
    assert "Open for 45 days" in resp.text


def test_deleting_job_removes_its_application_resumes(monkeypatch):
    removed = []
    monkeypatch.setattr(recruiter, "get_current_user", lambda req: (RECRUITER, None))
    monkeypatch.setattr(recruiter, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(recruiter, "job_resume_urls", lambda job_id: ["/uploads/resumes/12/applications/1.pdf"])
    monkeypatch.setattr(recruiter, "delete_job", lambda job_id, recruiter_user_id=None: True)
    monkeypatch.setattr(recruiter, "delete_upload", lambda url: removed.append(url))

    client = TestClient(api_module.app)
    resp = client.post("/jobs/3/delete", data={"csrf_token": "ok"}, follow_redirects=False)
    assert resp.status_code == 303
    assert removed == ["/uploads/resumes/12/applications/1.pdf"]


def test_failed_job_delete_keeps_files(monkeypatch):
    monkeypatch.setattr(recruiter, "get_current_user", lambda req: (RECRUITER, None))
    monkeypatch.setattr(recruiter, "validate_csrf", lambda req, tok: True)
    monkeypatch.setattr(recruiter, "job_resume_urls", lambda job_id: ["/uploads/resumes/12/applications/1.pdf"])
    monkeypatch.setattr(recruiter, "delete_job", lambda job_id, recruiter_user_id=None: False)
    monkeypatch.setattr(recruiter, "delete_upload", lambda url: pytest.fail("nothing should be removed"))

    client = TestClient(api_module.app)
    assert client.post("/jobs/3/delete", data={"csrf_token": "ok"}).status_code == 404
