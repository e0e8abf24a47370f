import pytest

from core import registration
from core.database import (
    apply_to_job,
    authenticate,
    close_job,
    create_session,
    delete_user_data,
    expire_jobs,
    get_all_settings,
    get_candidate_applications,
    get_conn,
    get_deleted_users,
    get_job,
    get_open_jobs,
    get_or_create_recruiter_profile,
    get_posted_jobs,
    get_session,
    get_user_by_email,
    post_job,
    set_user_active,
    update_application_status,
    update_settings,
)
from core.errors import ApplicationError

JOB = {
    "job_title": "Python Developer",
    "employer": "Acme",
    "address_line1": "1 Main St",
    "city": "Cape Town",
    "state": "Western Cape",
    "zip_code": "8001",
    "country": "South Africa",
    "qualification": "BSc",
    "experience_level": "fresher",
    "job_description": "Build APIs.",
}


@pytest.fixture
def accounts(db):
    settings = get_all_settings()
    candidate_id = registration.register("cand@example.com", "Passw0rd1", "candidate", settings=settings)
    recruiter_id = registration.register("rec@example.com", "Passw0rd1", "recruiter", settings=settings)
    return candidate_id, recruiter_id


def test_registration_creates_role_profiles(accounts):
    _, recruiter_id = accounts
    assert get_or_create_recruiter_profile(recruiter_id)["company_name"] == "New Company"

    user, reason = authenticate("CAND@example.com", "Passw0rd1")
    assert reason == "" and user["role"] == "candidate"
    assert authenticate("cand@example.com", "wrong-pass1")[1] == "bad_password"
    assert authenticate("nobody@example.com", "Passw0rd1")[1] == "unknown_email"


def test_post_apply_and_review(accounts):
    candidate_id, recruiter_id = accounts
    job_id = post_job(recruiter_id, JOB, "Python, SQL, python", "7-days")

    assert get_job(job_id)["skills_required"] == ["Python", "SQL"]
    assert [j["id"] for j in get_open_jobs()] == [job_id]

    application_id = apply_to_job(candidate_id, job_id, "/uploads/resumes/1/applications/1.pdf", "Hello")
    with pytest.raises(ApplicationError, match="already applied"):
        apply_to_job(candidate_id, job_id, "/uploads/resumes/1/applications/2.pdf")

    assert get_posted_jobs(recruiter_id)[0]["application_count"] == 1

    recruiter = get_user_by_email("rec@example.com")
    updated = update_application_status(recruiter, application_id, "shortlisted")
    assert updated["previous_status"] == "applied"
    assert get_candidate_applications(candidate_id)[0]["status"] == "shortlisted"

    candidate = get_user_by_email("cand@example.com")
    with pytest.raises(ApplicationError):
        update_application_status(candidate, application_id, "hired")


def test_closed_job_rejects_applications(accounts):
    candidate_id, recruiter_id = accounts
    job_id = post_job(recruiter_id, JOB, "", "30-days")

    assert close_job(job_id, recruiter_user_id=candidate_id) is False
    assert close_job(job_id, recruiter_user_id=recruiter_id) is True
    with pytest.raises(ApplicationError, match="no longer accepting"):
        apply_to_job(candidate_id, job_id, "/uploads/resumes/1/applications/1.pdf")


def test_expire_jobs_marks_past_postings(accounts):
    _, recruiter_id = accounts
    job_id = post_job(recruiter_id, JOB, "", "7-days")
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("UPDATE job_postings SET expires_at = ? WHERE id = ?", ("2000-01-01T00:00:00", job_id))
    conn.commit()
    conn.close()

    assert expire_jobs() == 1
    assert get_job(job_id)["status"] == "expired"
    assert expire_jobs() == 0


def test_application_limit_setting(accounts):
    candidate_id, recruiter_id = accounts
    update_settings({"max_applications_per_job": "1"})
    other = registration.register("other@example.com", "Passw0rd1", "candidate", settings=get_all_settings())
    job_id = post_job(recruiter_id, JOB, "", "7-days")

    apply_to_job(candidate_id, job_id, "/uploads/resumes/1/applications/1.pdf")
    with pytest.raises(ApplicationError, match="application limit"):
        apply_to_job(other, job_id, "/uploads/resumes/2/applications/1.pdf")


def test_deactivate_ends_sessions_and_delete_archives(accounts):
    candidate_id, _ = accounts
    token = create_session(candidate_id)
    set_user_active(candidate_id, False)
    assert get_session(token) is None

    delete_user_data(candidate_id)
    assert get_user_by_email("cand@example.com") is None
    archived = get_deleted_users(limit=10)
    assert archived[0]["email"] == "cand@example.com"
    assert archived[0]["role"] == "candidate"


def test_settings_round_trip(db):
    update_settings({"site_name": "Hire Hub", "allowed_email_domains": "example.com"})
    settings = get_all_settings()
    assert settings["site_name"] == "Hire Hub"
    assert settings["allowed_email_domains"] == ["example.com"]
    assert settings["notify_new_user"] is True
