import logging

from fastapi import APIRouter, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import get_current_user, require_role
from app.email_utils import notify_new_application
from app.layout import badge, esc, format_dt, message_html, options_html, render_page
from app.security import allow_request, attach_csrf_cookie, csrf_field, request_csrf_token, validate_csrf
from core.database import (
    EXPERIENCE_LEVELS,
    apply_to_job,
    filter_jobs,
    get_all_jobs,
    get_all_settings,
    get_candidate_profile,
    get_job,
    get_open_jobs,
    get_user_by_id,
    is_job_open,
    job_location,
)
from core.errors import ApplicationError, PortalError
from core.storage import delete_upload, save_upload

log = logging.getLogger("routes.jobs")

router = APIRouter()

EXPERIENCE_CHOICES = [("all", "All levels")] + [(level, level.capitalize()) for level in EXPERIENCE_LEVELS]


def _skills_html(skills) -> str:
    return "".join(f'<span class="skill">{esc(s)}</span>' for s in (skills or []))


def _filters_form(search: str, location: str, experience: str) -> str:
    return f"""
    <form method="get" action="/jobs" class="card filters">
      <label>Search
        <input type="text" name="search" value="{esc(search)}" placeholder="Title or skill" maxlength="100" />
      </label>
      <label>Location
        <input type="text" name="location" value="{esc(location)}" placeholder="City, state or country" maxlength="100" />
      </label>
      <label>Experience
        <select name="experience">{options_html(EXPERIENCE_CHOICES, experience or "all")}</select>
      </label>
      <button type="submit">Filter</button>
    </form>
    """


def _admin_job_actions(job: dict, csrf_token: str) -> str:
    close_btn = ""
    if job.get("status") == "active":
        close_btn = f"""
        <form method="post" action="/jobs/{job['id']}/close" class="inline">
          {csrf_field(csrf_token)}
          <button type="submit" class="secondary small">Close</button>
        </form>
        """
    return f"""
    {close_btn}
    <form method="post" action="/jobs/{job['id']}/delete" class="inline"
          onsubmit="return confirm('Delete this job and all its applications?');">
      {csrf_field(csrf_token)}
      <button type="submit" class="danger small">Delete</button>
    </form>
    """


@router.get("/jobs", response_class=HTMLResponse)
def browse_jobs(request: Request, search: str = "", location: str = "", experience: str = "all"):
    user, _ = get_current_user(request)
    is_admin = bool(user and user.get("role") == "admin")
    csrf_token = request_csrf_token(request)

    jobs = get_all_jobs() if is_admin else get_open_jobs()
    jobs = filter_jobs(jobs, search=search, location=location, experience=experience)

    if is_admin:
        rows = "".join(
            f"""
            <tr>
              <td><a href="/jobs/{j['id']}">{esc(j.get('job_title'))}</a></td>
              <td>{esc(j.get('company_name') or j.get('employer'))}</td>
              <td>{esc(job_location(j))}</td>
              <td>{badge(j.get('status'))}</td>
              <td>{esc(j.get('application_count', 0))}</td>
              <td>{format_dt(j.get('expires_at'))}</td>
              <td>{_admin_job_actions(j, csrf_token)}</td>
            </tr>
            """
            for j in jobs
        ) or "<tr><td colspan='7'>No jobs match these filters.</td></tr>"
        listing = f"""
        <div class="card">
          <table>
            <thead><tr><th>Title</th><th>Company</th><th>Location</th><th>Status</th>
              <th>Applications</th><th>Expires</th><th></th></tr></thead>
            <tbody>{rows}</tbody>
          </table>
        </div>
        """
    else:
        listing = "".join(
            f"""
            <div class="card">
              <h3><a href="/jobs/{j['id']}">{esc(j.get('job_title'))}</a></h3>
              <p class="muted">{esc(j.get('company_name') or j.get('employer'))} &middot; {esc(job_location(j))}
                 &middot; {esc((j.get('experience_level') or '').capitalize())}</p>
              <p>{_skills_html(j.get('skills_required'))}</p>
              <p class="muted">Posted {format_dt(j.get('created_at'))} &middot; closes {format_dt(j.get('expires_at'))}</p>
            </div>
            """
            for j in jobs
        ) or "<div class='card'><p>No open jobs match these filters.</p></div>"

    body = f"""
    {_filters_form(search, location, experience)}
    <p class="muted">{len(jobs)} job(s) found.</p>
    {listing}
    """
    resp = render_page("All Jobs" if is_admin else "Browse Jobs", body, user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.get("/jobs/{job_id}", response_class=HTMLResponse)
def view_job(request: Request, job_id: int):
    user, _ = get_current_user(request)
    job = get_job(job_id)
    is_owner = bool(user and job and user.get("id") == job.get("recruiter_user_id"))
    is_admin = bool(user and user.get("role") == "admin")
    if not job or (not is_job_open(job) and not is_owner and not is_admin):
        return render_page("Job not found", "<div class='card'><p>This job is not available.</p></div>", user=user, status_code=404)

    action = ""
    if is_job_open(job) and (not user or user.get("role") == "candidate"):
        action = f'<p><a href="/jobs/{job_id}/apply"><button type="button">Apply now</button></a></p>'

    address = ", ".join(p for p in [job.get("address_line1"), job.get("address_line2")] if p)
    website = ""
    if job.get("website"):
        website = f'<p><strong>Website:</strong> <a href="{esc(job["website"])}" rel="noopener nofollow">{esc(job["website"])}</a></p>'
    logo = ""
    if job.get("logo_url"):
        logo = f'<img src="{esc(job["logo_url"])}" alt="logo" style="max-height:64px;float:right;" />'

    body = f"""
    <div class="card">
      {logo}
      <h2>{esc(job.get('job_title'))} {badge(job.get('status'))}</h2>
      <p class="muted">{esc(job.get('company_name') or job.get('employer'))} &middot; {esc(job_location(job))}</p>
      <p><strong>Employer:</strong> {esc(job.get('employer'))}</p>
      {website}
      <p><strong>Address:</strong> {esc(address)}, {esc(job.get('zip_code'))}</p>
      <p><strong>Qualification:</strong> {esc(job.get('qualification'))}</p>
      <p><strong>Experience:</strong> {esc((job.get('experience_level') or '').capitalize())}</p>
      <p><strong>Notice period:</strong> {esc(job.get('notice_period') or 'Not specified')}</p>
      <p><strong>Skills:</strong> {_skills_html(job.get('skills_required'))}</p>
      <p class="muted">Posted {format_dt(job.get('created_at'))} &middot; closes {format_dt(job.get('expires_at'))}</p>
      <h3>Description</h3>
      <div style="white-space:pre-wrap;">{esc(job.get('job_description'))}</div>
      {action}
    </div>
    """
    return render_page(job.get("job_title") or "Job", body, user=user)


def _apply_form(job: dict, csrf_token: str, cover_letter: str = "", error: str | None = None) -> str:
    return f"""
    <div class="card form-card">
      <h2>Apply: {esc(job.get('job_title'))}</h2>
      <p class="muted">{esc(job.get('company_name') or job.get('employer'))} &middot; {esc(job_location(job))}</p>
      {message_html(error)}
      <form method="post" action="/jobs/{job['id']}/apply" enctype="multipart/form-data">
        <label>Resume (PDF, DOC or DOCX)</label>
        <input type="file" name="resume" accept=".pdf,.doc,.docx" required />
        <label>Additional document (optional)</label>
        <input type="file" name="document" accept=".pdf,.doc,.docx,.png,.jpg,.jpeg" />
        <label>Cover letter (optional)</label>
        <textarea name="cover_letter" maxlength="5000">{esc(cover_letter)}</textarea>
        {csrf_field(csrf_token)}
        <button type="submit">Submit application</button>
      </form>
    </div>
    """


@router.get("/jobs/{job_id}/apply", response_class=HTMLResponse)
def apply_form(request: Request, job_id: int):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate")
    if denied:
        return denied

    job = get_job(job_id)
    if not job or not is_job_open(job):
        return render_page("Apply", "<div class='card'><p>This job is no longer accepting applications.</p></div>", user=user, status_code=404)

    csrf_token = request_csrf_token(request)
    resp = render_page("Apply", _apply_form(job, csrf_token), user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/jobs/{job_id}/apply", response_class=HTMLResponse)
def apply_submit(
    request: Request,
    job_id: int,
    resume: UploadFile | None = File(None),
    document: UploadFile | None = File(None),
    cover_letter: str = Form("", max_length=5000),
    csrf_token: str = Form(""),
):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate")
    if denied:
        return denied

    if not allow_request(f"apply:{user['id']}", limit=20, window_seconds=3600):
        return HTMLResponse("Too many applications. Please try again later.", status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    job = get_job(job_id)
    if not job:
        return render_page("Apply", "<div class='card'><p>Job not found.</p></div>", user=user, status_code=404)

    token = request_csrf_token(request)
    profile = get_candidate_profile(user["id"])
    if not profile:
        return render_page(
            "Apply",
            _apply_form(job, token, cover_letter, "Profile not found. Please complete your profile first."),
            user=user,
            status_code=400,
        )

    stored = []
    try:
        resume_data = resume.file.read() if resume is not None and resume.filename else b""
        if not resume_data:
            raise ApplicationError("Please upload a resume.")
        resume_url = save_upload("resumes", profile["id"], resume.filename, resume_data, folder="applications/")
        stored.append(resume_url)

        if document is not None and document.filename:
            doc_data = document.file.read()
            if doc_data:
                stored.append(save_upload("documents", profile["id"], document.filename, doc_data, folder="applications/"))

        apply_to_job(user["id"], job_id, resume_url, cover_letter)
    except PortalError as exc:
        # Rejected applications keep nothing on disk
        for url in stored:
            delete_upload(url)
        return render_page("Apply", _apply_form(job, token, cover_letter, str(exc)), user=user, status_code=400)

    recruiter = get_user_by_id(job["recruiter_user_id"]) if job.get("recruiter_user_id") else None
    notify_new_application(recruiter.get("email") if recruiter else None, job, get_all_settings())

    return RedirectResponse(url="/applications?applied=1", status_code=303)
