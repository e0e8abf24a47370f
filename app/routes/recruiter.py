import logging
import os

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import get_current_user, require_role, submitted_form
from app.email_utils import notify_new_job
from app.layout import badge, esc, format_dt, message_html, options_html, render_page
from app.security import attach_csrf_cookie, csrf_field, request_csrf_token, validate_csrf
from core.database import (
    EXPERIENCE_LEVELS,
    FIELD_LIMITS,
    POST_DURATIONS,
    close_job,
    compute_expires_at,
    default_expiry_days,
    delete_job,
    get_all_settings,
    get_or_create_recruiter_profile,
    get_posted_jobs,
    job_location,
    job_resume_urls,
    normalize_skills,
    post_job,
    validate_job_posting,
)
from core.errors import JobPostingError
from core.storage import delete_upload

log = logging.getLogger("routes.recruiter")

router = APIRouter()

DURATION_CHOICES = [(key, f"{days} days") for key, days in POST_DURATIONS.items()]
EXPERIENCE_CHOICES = [(level, level.capitalize()) for level in EXPERIENCE_LEVELS]

# (field, label, required)
TEXT_FIELDS = [
    ("job_title", "Job title", True),
    ("employer", "Employer", True),
    ("website", "Website", False),
    ("address_line1", "Address line 1", True),
    ("address_line2", "Address line 2", False),
    ("city", "City", True),
    ("state", "State", True),
    ("zip_code", "Zip code", True),
    ("country", "Country", True),
    ("qualification", "Qualification", True),
    ("notice_period", "Notice period", False),
]


def _default_duration() -> str:
    key = f"{default_expiry_days()}-days"
    return key if key in POST_DURATIONS else "30-days"


def _job_form(csrf_token: str, data: dict | None = None, error: str | None = None) -> str:
    data = data or {}
    inputs = "".join(
        f"""
        <label>{esc(label)}{' *' if required else ''}
          <input type="text" name="{field}" value="{esc(data.get(field))}"
                 maxlength="{FIELD_LIMITS[field]}"{' required' if required else ''} />
        </label>
        """
        for field, label, required in TEXT_FIELDS
    )
    return f"""
    <div class="card form-card">
      {message_html(error)}
      <form method="post" action="/jobs/create">
        <div class="grid">{inputs}</div>
        <div class="grid">
          <label>Experience level *
            <select name="experience_level">{options_html(EXPERIENCE_CHOICES, data.get('experience_level') or 'fresher')}</select>
          </label>
          <label>Post duration
            <select name="post_duration">{options_html(DURATION_CHOICES, data.get('post_duration') or _default_duration())}</select>
          </label>
        </div>
        <label>Skills required (comma separated)
          <input type="text" name="skills" value="{esc(data.get('skills'))}" maxlength="1000" />
        </label>
        <label>Job description *
          <textarea name="job_description" maxlength="{FIELD_LIMITS['job_description']}" required>{esc(data.get('job_description'))}</textarea>
        </label>
        {csrf_field(csrf_token)}
        <button type="submit" formaction="/jobs/preview" class="secondary">Preview</button>
        <button type="submit">Post job</button>
      </form>
    </div>
    """


def _job_data(form: dict) -> dict:
    keys = [f for f, _, _ in TEXT_FIELDS] + ["experience_level", "post_duration", "skills", "job_description", "csrf_token"]
    return {k: form.get(k) or "" for k in keys}


@router.get("/jobs/create", response_class=HTMLResponse)
def create_job_form(request: Request):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter")
    if denied:
        return denied

    profile = get_or_create_recruiter_profile(user["id"])
    csrf_token = request_csrf_token(request)
    resp = render_page(
        "Post New Job",
        _job_form(csrf_token, {"employer": profile.get("company_name")}),
        user=user,
    )
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/jobs/preview", response_class=HTMLResponse)
def preview_job(request: Request, form: dict = Depends(submitted_form)):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter")
    if denied:
        return denied

    data = _job_data(form)
    if not validate_csrf(request, data["csrf_token"]):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    token = request_csrf_token(request)
    try:
        cleaned = validate_job_posting(data)
    except JobPostingError as exc:
        return render_page("Post New Job", _job_form(token, data, str(exc)), user=user, status_code=400)

    skills = "".join(f'<span class="skill">{esc(s)}</span>' for s in normalize_skills(data["skills"]))
    default_days = default_expiry_days()
    days = POST_DURATIONS.get(data["post_duration"], default_days)
    expires_at = compute_expires_at(data["post_duration"], default_days=default_days)
    preview = f"""
    <div class="card">
      <p class="muted">Preview. Nothing is published until you post the job.</p>
      <h2>{esc(cleaned['job_title'])}</h2>
      <p class="muted">{esc(cleaned['employer'])} &middot; {esc(job_location(cleaned))}
         &middot; {esc(cleaned['experience_level'].capitalize())}</p>
      <p><strong>Qualification:</strong> {esc(cleaned['qualification'])}</p>
      <p><strong>Notice period:</strong> {esc(cleaned['notice_period'] or 'Not specified')}</p>
      <p><strong>Skills:</strong> {skills}</p>
      <p class="muted">Open for {days} days, until {format_dt(expires_at)}.</p>
      <div style="white-space:pre-wrap;">{esc(cleaned['job_description'])}</div>
    </div>
    """
    body = preview + _job_form(token, data)
    resp = render_page("Preview Job", body, user=user)
    attach_csrf_cookie(resp, token)
    return resp


@router.post("/jobs/create", response_class=HTMLResponse)
def create_job(request: Request, form: dict = Depends(submitted_form)):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter")
    if denied:
        return denied

    data = _job_data(form)
    if not validate_csrf(request, data["csrf_token"]):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    get_or_create_recruiter_profile(user["id"])
    try:
        post_job(user["id"], data, data["skills"], data["post_duration"])
    except JobPostingError as exc:
        token = request_csrf_token(request)
        return render_page("Post New Job", _job_form(token, data, str(exc)), user=user, status_code=400)

    notify_new_job(os.getenv("ADMIN_EMAIL"), data["job_title"], user["email"], get_all_settings())
    return RedirectResponse(url="/jobs/posted?created=1", status_code=303)


@router.get("/jobs/posted", response_class=HTMLResponse)
def posted_jobs(request: Request, created: int = 0):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter")
    if denied:
        return denied

    csrf_token = request_csrf_token(request)
    jobs = get_posted_jobs(user["id"])

    def actions(job: dict) -> str:
        close_btn = ""
        if job.get("status") == "active":
            close_btn = f"""
            <form method="post" action="/jobs/{job['id']}/close" class="inline">
              {csrf_field(csrf_token)}
              <button type="submit" class="secondary small">Close</button>
            </form>
            """
        return f"""
        <a href="/applications?job_id={job['id']}">Applications</a>
        {close_btn}
        <form method="post" action="/jobs/{job['id']}/delete" class="inline"
              onsubmit="return confirm('Delete this job and all its applications?');">
          {csrf_field(csrf_token)}
          <button type="submit" class="danger small">Delete</button>
        </form>
        """

    rows = "".join(
        f"""
        <tr>
          <td><a href="/jobs/{j['id']}">{esc(j.get('job_title'))}</a></td>
          <td>{esc(job_location(j))}</td>
          <td>{badge(j.get('status'))}</td>
          <td>{esc(j.get('application_count', 0))}</td>
          <td>{format_dt(j.get('created_at'))}</td>
          <td>{format_dt(j.get('expires_at'))}</td>
          <td>{actions(j)}</td>
        </tr>
        """
        for j in jobs
    ) or "<tr><td colspan='7'>You have not posted any jobs yet. <a href='/jobs/create'>Post one</a></td></tr>"

    body = f"""
    {message_html("Job posted." if created else None, error=False)}
    <div class="card">
      <table>
        <thead><tr><th>Title</th><th>Location</th><th>Status</th><th>Applications</th>
          <th>Posted</th><th>Expires</th><th></th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """
    resp = render_page("Posted Jobs", body, user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


def _owner_scope(user: dict):
    """None lets admins act on any posting; recruiters are limited to their own."""
    return None if user.get("role") == "admin" else user["id"]


def _back_url(user: dict) -> str:
    return "/jobs" if user.get("role") == "admin" else "/jobs/posted"


@router.post("/jobs/{job_id}/close")
def close_job_route(request: Request, job_id: int, csrf_token: str = Form("")):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter", "admin")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    if not close_job(job_id, recruiter_user_id=_owner_scope(user)):
        return HTMLResponse("Job not found", status_code=404)
    log.info("User %s closed job %s", user["id"], job_id)
    return RedirectResponse(url=_back_url(user), status_code=303)


@router.post("/jobs/{job_id}/delete")
def delete_job_route(request: Request, job_id: int, csrf_token: str = Form("")):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter", "admin")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    resumes = job_resume_urls(job_id)
    if not delete_job(job_id, recruiter_user_id=_owner_scope(user)):
        return HTMLResponse("Job not found", status_code=404)
    for url in resumes:
        delete_upload(url)
    return RedirectResponse(url=_back_url(user), status_code=303)
