import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import get_current_user, require_role, submitted_form
from app.layout import esc, format_dt, message_html, options_html, render_page
from app.security import attach_csrf_cookie, csrf_field, request_csrf_token, validate_csrf
from core.database import (
    QUALIFICATION_TYPES,
    add_education_record,
    delete_education_record,
    get_candidate_profile,
    get_education_records,
    get_or_create_recruiter_profile,
    is_resume_referenced,
    profile_completeness,
    update_candidate_profile,
    update_recruiter_profile,
)
from core.errors import PortalError
from core.storage import delete_upload, save_upload

log = logging.getLogger("routes.profile")

router = APIRouter()

GENDER_CHOICES = [("", "Prefer not to say"), ("male", "Male"), ("female", "Female"), ("other", "Other")]

CANDIDATE_TEXT_FIELDS = [
    ("name", "First name", 100),
    ("surname", "Surname", 100),
    ("phone", "Phone", 30),
    ("location", "Location", 250),
    ("education", "Highest education", 250),
    ("license_type", "Driver's license type", 50),
    ("license_number", "License number", 50),
    ("id_passport", "ID / passport number", 50),
]

RECRUITER_TEXT_FIELDS = [
    ("name", "Contact name", 100),
    ("company_name", "Company name", 150),
    ("industry", "Industry", 100),
    ("location", "Location", 250),
]


def _text_inputs(fields, profile: dict) -> str:
    return "".join(
        f"""
        <label>{esc(label)}
          <input type="text" name="{name}" value="{esc(profile.get(name))}" maxlength="{limit}" />
        </label>
        """
        for name, label, limit in fields
    )


def _upload_form(action: str, field: str, label: str, accept: str, csrf_token: str) -> str:
    return f"""
    <form method="post" action="{action}" enctype="multipart/form-data">
      <label>{esc(label)}
        <input type="file" name="{field}" accept="{accept}" required />
      </label>
      {csrf_field(csrf_token)}
      <button type="submit" class="secondary">Upload</button>
    </form>
    """


def _education_section(profile: dict, csrf_token: str) -> str:
    records = get_education_records(profile["id"])
    rows = "".join(
        f"""
        <tr>
          <td>{esc(r.get('qualification_type'))}</td>
          <td>{f'<a href="{esc(r["document_url"])}">Document</a>' if r.get('document_url') else ''}</td>
          <td>{format_dt(r.get('created_at'))}</td>
          <td>
            <form method="post" action="/profile/education/{r['id']}/delete" class="inline">
              {csrf_field(csrf_token)}
              <button type="submit" class="danger small">Remove</button>
            </form>
          </td>
        </tr>
        """
        for r in records
    ) or "<tr><td colspan='4'>No qualifications added yet.</td></tr>"

    choices = [("", "Select a qualification")] + list(QUALIFICATION_TYPES)
    return f"""
    <div class="card form-card">
      <h3>Education and qualifications</h3>
      <table>
        <thead><tr><th>Qualification</th><th>Document</th><th>Added</th><th></th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
      <form method="post" action="/profile/education" enctype="multipart/form-data">
        <label>Qualification type
          <select name="qualification_type">{options_html(choices, "")}</select>
        </label>
        <label>Supporting document (optional)
          <input type="file" name="document" accept=".pdf,.doc,.docx,.png,.jpg,.jpeg" />
        </label>
        {csrf_field(csrf_token)}
        <button type="submit" class="secondary">Add qualification</button>
      </form>
    </div>
    """


def _account_section(csrf_token: str) -> str:
    return f"""
    <div class="card form-card">
      <h3>Account</h3>
      <form method="post" action="/account/deactivate" class="inline"
            onsubmit="return confirm('Deactivate your account? You will be signed out.');">
        {csrf_field(csrf_token)}
        <button type="submit" class="secondary small">Deactivate account</button>
      </form>
      <form method="post" action="/account/delete" class="inline"
            onsubmit="return confirm('Permanently delete your account and all your data?');">
        {csrf_field(csrf_token)}
        <button type="submit" class="danger small">Delete account</button>
      </form>
    </div>
    """


def _candidate_page(profile: dict, csrf_token: str, error: str | None = None, saved: bool = False) -> str:
    skills = ", ".join(profile.get("skills") or [])
    resume = "<p class='muted'>No resume uploaded yet.</p>"
    if profile.get("resume_url"):
        resume = f'<p><a href="{esc(profile["resume_url"])}">Current resume</a></p>'

    return f"""
    <div class="card form-card">
      <p class="muted">Profile {profile_completeness(profile)}% complete.</p>
      {message_html(error)}
      {message_html("Profile saved." if saved else None, error=False)}
      <form method="post" action="/profile">
        <div class="grid">
          {_text_inputs(CANDIDATE_TEXT_FIELDS, profile)}
          <label>Age
            <input type="number" name="age" min="14" max="100" value="{esc(profile.get('age'))}" />
          </label>
          <label>Gender
            <select name="gender">{options_html(GENDER_CHOICES, profile.get('gender') or '')}</select>
          </label>
        </div>
        <label>Experience
          <textarea name="experience" maxlength="5000">{esc(profile.get('experience'))}</textarea>
        </label>
        <label>Skills (comma separated)
          <input type="text" name="skills" value="{esc(skills)}" maxlength="1000" />
        </label>
        {csrf_field(csrf_token)}
        <button type="submit">Save profile</button>
      </form>
    </div>
    <div class="card form-card">
      <h3>Resume</h3>
      {resume}
      {_upload_form("/profile/resume", "resume", "Upload resume (PDF, DOC or DOCX)", ".pdf,.doc,.docx", csrf_token)}
    </div>
    {_education_section(profile, csrf_token)}
    {_account_section(csrf_token)}
    """


def _recruiter_page(profile: dict, csrf_token: str, error: str | None = None, saved: bool = False) -> str:
    logo = "<p class='muted'>No logo uploaded yet.</p>"
    if profile.get("logo_url"):
        logo = f'<p><img src="{esc(profile["logo_url"])}" alt="logo" style="max-height:80px;" /></p>'

    return f"""
    <div class="card form-card">
      {message_html(error)}
      {message_html("Profile saved." if saved else None, error=False)}
      <form method="post" action="/profile">
        <div class="grid">{_text_inputs(RECRUITER_TEXT_FIELDS, profile)}</div>
        <label>Company description
          <textarea name="description" maxlength="5000">{esc(profile.get('description'))}</textarea>
        </label>
        {csrf_field(csrf_token)}
        <button type="submit">Save profile</button>
      </form>
    </div>
    <div class="card form-card">
      <h3>Company logo</h3>
      {logo}
      {_upload_form("/profile/logo", "logo", "Upload logo (PNG, JPG, GIF or WEBP)", "image/*", csrf_token)}
    </div>
    {_account_section(csrf_token)}
    """


def _load_profile(user: dict) -> dict:
    if user["role"] == "recruiter":
        return get_or_create_recruiter_profile(user["id"])
    return get_candidate_profile(user["id"]) or {}


def _render(request: Request, user: dict, error: str | None = None, saved: bool = False, status_code: int = 200):
    profile = _load_profile(user)
    csrf_token = request_csrf_token(request)
    if user["role"] == "recruiter":
        resp = render_page("Company Profile", _recruiter_page(profile, csrf_token, error, saved), user=user, status_code=status_code)
    elif profile:
        resp = render_page("My Profile", _candidate_page(profile, csrf_token, error, saved), user=user, status_code=status_code)
    else:
        resp = render_page("My Profile", "<div class='card'><p>Profile not found.</p></div>", user=user, status_code=404)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.get("/profile", response_class=HTMLResponse)
def profile_page(request: Request, saved: int = 0):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate", "recruiter")
    if denied:
        return denied
    return _render(request, user, saved=bool(saved))


@router.post("/profile", response_class=HTMLResponse)
def profile_save(request: Request, form: dict = Depends(submitted_form)):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate", "recruiter")
    if denied:
        return denied

    if not validate_csrf(request, form.get("csrf_token") or ""):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    try:
        if user["role"] == "recruiter":
            names = [f for f, _, _ in RECRUITER_TEXT_FIELDS] + ["description"]
            update_recruiter_profile(user["id"], {k: form.get(k) or "" for k in names})
        else:
            names = [f for f, _, _ in CANDIDATE_TEXT_FIELDS] + ["age", "gender", "experience", "skills"]
            update_candidate_profile(user["id"], {k: form.get(k) or "" for k in names})
    except PortalError as exc:
        return _render(request, user, error=str(exc), status_code=400)

    return RedirectResponse(url="/profile?saved=1", status_code=303)


@router.post("/profile/resume", response_class=HTMLResponse)
def upload_resume(request: Request, resume: UploadFile = File(...), csrf_token: str = Form("")):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    profile = get_candidate_profile(user["id"])
    if not profile:
        return _render(request, user)
    try:
        url = save_upload("resumes", profile["id"], resume.filename or "", resume.file.read(), folder="profile/")
    except PortalError as exc:
        return _render(request, user, error=str(exc), status_code=400)

    update_candidate_profile(user["id"], {"resume_url": url})
    # Applications keep pointing at the resume they were sent with
    previous = profile.get("resume_url")
    if previous and previous != url and not is_resume_referenced(previous):
        delete_upload(previous)
    return RedirectResponse(url="/profile?saved=1", status_code=303)


@router.post("/profile/logo", response_class=HTMLResponse)
def upload_logo(request: Request, logo: UploadFile = File(...), csrf_token: str = Form("")):
    user, _ = get_current_user(request)
    denied = require_role(user, "recruiter")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    profile = get_or_create_recruiter_profile(user["id"])
    try:
        url = save_upload("logos", profile["id"], logo.filename or "", logo.file.read())
    except PortalError as exc:
        return _render(request, user, error=str(exc), status_code=400)

    update_recruiter_profile(user["id"], {"logo_url": url})
    if profile.get("logo_url") and profile["logo_url"] != url:
        delete_upload(profile["logo_url"])
    return RedirectResponse(url="/profile?saved=1", status_code=303)


@router.post("/profile/education", response_class=HTMLResponse)
def add_education(
    request: Request,
    qualification_type: str = Form("", max_length=100),
    document: UploadFile | None = File(None),
    csrf_token: str = Form(""),
):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    profile = get_candidate_profile(user["id"])
    if not profile:
        return _render(request, user)

    try:
        document_url = None
        if qualification_type in QUALIFICATION_TYPES and document is not None and document.filename:
            data = document.file.read()
            if data:
                document_url = save_upload("documents", profile["id"], document.filename, data, folder="education/")
        add_education_record(profile["id"], qualification_type, document_url)
    except PortalError as exc:
        return _render(request, user, error=str(exc), status_code=400)

    return RedirectResponse(url="/profile", status_code=303)


@router.post("/profile/education/{record_id}/delete")
def remove_education(request: Request, record_id: int, csrf_token: str = Form("")):
    user, _ = get_current_user(request)
    denied = require_role(user, "candidate")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    profile = get_candidate_profile(user["id"])
    record = delete_education_record(profile["id"], record_id) if profile else None
    if not record:
        return HTMLResponse("Record not found", status_code=404)
    if record.get("document_url"):
        delete_upload(record["document_url"])
    return RedirectResponse(url="/profile", status_code=303)
