import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import get_current_user, require_role
from app.email_utils import notify_status_change
from app.layout import badge, esc, format_dt, message_html, options_html, render_page
from app.security import attach_csrf_cookie, csrf_field, request_csrf_token, validate_csrf
from core.database import (
    APPLICATION_STATUSES,
    get_all_settings,
    get_candidate_applications,
    get_posted_jobs,
    get_recruiter_applications,
    job_location,
    status_label,
    update_application_status,
)
from core.errors import ApplicationError

log = logging.getLogger("routes.applications")

router = APIRouter()

STATUS_CHOICES = [(s, status_label(s)) for s in APPLICATION_STATUSES]
STATUS_FILTER_CHOICES = [("all", "All")] + STATUS_CHOICES


def status_form(application: dict, csrf_token: str, next_url: str) -> str:
    """Inline status selector posting to /applications/{id}/status."""
    return f"""
    <form method="post" action="/applications/{application['id']}/status" class="inline">
      <select name="status">{options_html(STATUS_CHOICES, application.get('status'))}</select>
      <input type="hidden" name="next" value="{esc(next_url)}" />
      {csrf_field(csrf_token)}
      <button type="submit" class="small">Update</button>
    </form>
    """


def _candidate_page(user: dict, status: str, applied: int) -> str:
    applications = get_candidate_applications(user["id"], status=status)
    rows = "".join(
        f"""
        <tr>
          <td><a href="/jobs/{a['job_id']}">{esc(a.get('job_title'))}</a></td>
          <td>{esc(a.get('employer'))}</td>
          <td>{esc(job_location(a))}</td>
          <td>{badge(a.get('status'))}</td>
          <td>{format_dt(a.get('applied_at'))}</td>
          <td>{f'<a href="{esc(a["resume_url"])}">Resume</a>' if a.get('resume_url') else ''}</td>
        </tr>
        """
        for a in applications
    ) or "<tr><td colspan='6'>No applications found. <a href='/jobs'>Browse jobs</a></td></tr>"

    return f"""
    {message_html("Application submitted." if applied else None, error=False)}
    <form method="get" action="/applications" class="card filters">
      <label>Status
        <select name="status">{options_html(STATUS_FILTER_CHOICES, status)}</select>
      </label>
      <button type="submit">Filter</button>
    </form>
    <div class="card">
      <table>
        <thead><tr><th>Job</th><th>Employer</th><th>Location</th><th>Status</th><th>Applied</th><th></th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """


def _recruiter_page(user: dict, job_id: int | None, csrf_token: str, next_url: str) -> str:
    jobs = get_posted_jobs(user["id"])
    applications = get_recruiter_applications(user["id"], job_id=job_id)

    job_choices = [("", "All jobs")] + [(str(j["id"]), j.get("job_title") or "") for j in jobs]
    rows = "".join(
        f"""
        <tr>
          <td>{esc(' '.join(filter(None, [a.get('candidate_name'), a.get('candidate_surname')])))}<br/>
              <span class="muted">{esc(a.get('candidate_email'))}</span></td>
          <td>{esc(a.get('job_title'))}</td>
          <td>{''.join(f'<span class="skill">{esc(s)}</span>' for s in (a.get('candidate_skills') or []))}</td>
          <td>{f'<a href="{esc(a["resume_url"])}">Resume</a>' if a.get('resume_url') else ''}</td>
          <td>{esc(a.get('cover_letter') or '')}</td>
          <td>{format_dt(a.get('applied_at'))}</td>
          <td>{badge(a.get('status'))}<br/>{status_form(a, csrf_token, next_url)}</td>
        </tr>
        """
        for a in applications
    ) or "<tr><td colspan='7'>No applications yet.</td></tr>"

    return f"""
    <form method="get" action="/applications" class="card filters">
      <label>Job
        <select name="job_id">{options_html(job_choices, str(job_id) if job_id else "")}</select>
      </label>
      <button type="submit">Filter</button>
    </form>
    <div class="card">
      <table>
        <thead><tr><th>Candidate</th><th>Job</th><th>Skills</th><th>Resume</th><th>Cover letter</th>
          <th>Applied</th><th>Status</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """


@router.get("/applications", response_class=HTMLResponse)
def applications_page(request: Request, status: str = "all", job_id: str = "", applied: int = 0):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate", "recruiter")
    if denied:
        return denied

    csrf_token = request_csrf_token(request)
    if user["role"] == "candidate":
        body = _candidate_page(user, status, applied)
        title = "My Applications"
    else:
        selected = int(job_id) if job_id.isdigit() else None
        next_url = f"/applications?job_id={selected}" if selected else "/applications"
        body = _recruiter_page(user, selected, csrf_token, next_url)
        title = "Applications"

    resp = render_page(title, body, user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


def _safe_next(next_url: str, default: str) -> str:
    # Only same-site relative paths
    if next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return default


@router.post("/applications/{application_id}/status")
def change_status(
    request: Request,
    application_id: int,
    status: str = Form(..., max_length=20),
    next: str = Form("", max_length=200),
    csrf_token: str = Form(""),
):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter", "admin")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    try:
        application = update_application_status(user, application_id, status)
    except ApplicationError as exc:
        return render_page("Applications", f"<div class='card'>{message_html(str(exc))}</div>", user=user, status_code=400)

    if application.get("previous_status") and application["previous_status"] != application["status"]:
        notify_status_change(application, get_all_settings())

    default = "/all-applications" if user["role"] == "admin" else "/applications"
    return RedirectResponse(url=_safe_next(next, default), status_code=303)
