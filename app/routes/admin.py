import logging

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import get_current_user, require_role, submitted_form
from app.layout import badge, esc, format_dt, message_html, options_html, render_page, stat_card
from app.routes.applications import STATUS_FILTER_CHOICES, status_form
from app.security import attach_csrf_cookie, csrf_field, request_csrf_token, validate_csrf
from core.database import (
    APPLICATION_STATUSES,
    DEFAULT_SETTINGS,
    NOTIFICATION_KEYS,
    application_stats,
    delete_user_data,
    filter_applications,
    get_all_applications,
    get_all_settings,
    get_deleted_users,
    get_user_by_id,
    list_users,
    set_user_active,
    status_label,
    update_settings,
)
from core.errors import SettingsError

log = logging.getLogger("routes.admin")

router = APIRouter()

ROLE_FILTER_CHOICES = [("all", "All roles"), ("candidate", "Candidates"), ("recruiter", "Recruiters"), ("admin", "Admins")]

SETTING_LABELS = {
    "site_name": "Site name",
    "site_description": "Site description",
    "max_applications_per_job": "Max applications per job",
    "default_job_expiry_days": "Default job expiry (days)",
    "allow_registrations": "Allow new registrations",
    "require_email_verification": "Require email verification",
    "maintenance_mode": "Maintenance mode",
    "notify_new_user": "New user registrations",
    "notify_new_job": "New job postings",
    "notify_new_application": "New applications",
    "notify_status_update": "Application status updates",
    "notify_system_alerts": "System alerts",
    "session_timeout_minutes": "Session timeout (minutes)",
    "password_min_length": "Minimum password length",
    "allowed_email_domains": "Allowed email domains (one per line, empty allows all)",
}


def user_matches(user: dict, search: str = "", role: str = "all") -> bool:
    if role and role != "all" and user.get("role") != role:
        return False
    search = (search or "").strip().lower()
    if search:
        haystack = f"{user.get('email') or ''} {user.get('display_name') or ''}".lower()
        if search not in haystack:
            return False
    return True


@router.get("/users", response_class=HTMLResponse)
def users_page(request: Request, search: str = "", role: str = "all", error: str = ""):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied

    all_users = list_users()
    users = [u for u in all_users if user_matches(u, search, role)]
    csrf_token = request_csrf_token(request)

    def actions(u: dict) -> str:
        if u["id"] == user["id"] or u.get("role") == "admin":
            return "<span class='muted'>-</span>"
        toggle = "deactivate" if u.get("active") else "activate"
        return f"""
        <form method="post" action="/users/{u['id']}/{toggle}" class="inline">
          {csrf_field(csrf_token)}
          <button type="submit" class="secondary small">{toggle.capitalize()}</button>
        </form>
        <form method="post" action="/users/{u['id']}/delete" class="inline"
              onsubmit="return confirm('Permanently delete this user and all their data?');">
          {csrf_field(csrf_token)}
          <button type="submit" class="danger small">Delete</button>
        </form>
        """

    rows = "".join(
        f"""
        <tr>
          <td>{esc(u.get('email'))}</td>
          <td>{esc(u.get('display_name'))}</td>
          <td>{esc(u.get('role'))}</td>
          <td>{badge('active' if u.get('active') else 'inactive')}</td>
          <td>{'Yes' if u.get('email_verified_at') else 'No'}</td>
          <td>{format_dt(u.get('created_at'))}</td>
          <td>{actions(u)}</td>
        </tr>
        """
        for u in users
    ) or "<tr><td colspan='7'>No users match these filters.</td></tr>"

    body = f"""
    <div class="stats">
      {stat_card("Total users", len(all_users))}
      {stat_card("Candidates", sum(1 for u in all_users if u.get("role") == "candidate"))}
      {stat_card("Recruiters", sum(1 for u in all_users if u.get("role") == "recruiter"))}
      {stat_card("Active", sum(1 for u in all_users if u.get("active")))}
    </div>
    {message_html(error)}
    <form method="get" action="/users" class="card filters">
      <label>Search
        <input type="text" name="search" value="{esc(search)}" placeholder="Email or name" maxlength="100" />
      </label>
      <label>Role
        <select name="role">{options_html(ROLE_FILTER_CHOICES, role)}</select>
      </label>
      <button type="submit">Filter</button>
    </form>
    <div class="card">
      <table>
        <thead><tr><th>Email</th><th>Name</th><th>Role</th><th>Status</th><th>Verified</th><th>Joined</th><th></th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
      <p class="muted"><a href="/archives">Deleted users</a></p>
    </div>
    """
    resp = render_page("Manage Users", body, user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


def _managed_user(admin: dict, user_id: int):
    """Target user an admin may act on, or the error response to return."""
    if user_id == admin["id"]:
        return None, RedirectResponse(url="/users?error=You+cannot+change+your+own+account.", status_code=303)
    target = get_user_by_id(user_id)
    if not target:
        return None, HTMLResponse("User not found", status_code=404)
    if target.get("role") == "admin":
        return None, RedirectResponse(url="/users?error=Admin+accounts+cannot+be+changed.", status_code=303)
    return target, None


def _user_action(request: Request, user_id: int, csrf_token: str, action: str):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    target, error = _managed_user(user, user_id)
    if error:
        return error

    if action == "delete":
        delete_user_data(target["id"])
    else:
        set_user_active(target["id"], action == "activate")
    log.info("Admin %s: %s user %s", user["id"], action, target["id"])
    return RedirectResponse(url="/users", status_code=303)


@router.post("/users/{user_id}/activate")
def activate_user(request: Request, user_id: int, csrf_token: str = Form("")):
    return _user_action(request, user_id, csrf_token, "activate")


@router.post("/users/{user_id}/deactivate")
def deactivate_user(request: Request, user_id: int, csrf_token: str = Form("")):
    return _user_action(request, user_id, csrf_token, "deactivate")


@router.post("/users/{user_id}/delete")
def delete_user(request: Request, user_id: int, csrf_token: str = Form("")):
    return _user_action(request, user_id, csrf_token, "delete")


@router.get("/archives", response_class=HTMLResponse)
def archives(request: Request):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied

    deleted = get_deleted_users(limit=200)
    rows = "".join(
        f"""
        <tr>
          <td>{esc(d.get('user_id'))}</td>
          <td>{esc(d.get('email'))}</td>
          <td>{esc(d.get('role'))}</td>
          <td>{format_dt(d.get('created_at'))}</td>
          <td>{format_dt(d.get('deleted_at'))}</td>
        </tr>
        """
        for d in deleted
    ) or "<tr><td colspan='5'>No deleted users.</td></tr>"

    body = f"""
    <div class="card">
      <h2>Deleted users</h2>
      <table>
        <thead><tr><th>User ID</th><th>Email</th><th>Role</th><th>Created</th><th>Deleted</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """
    return render_page("Archives", body, user=user)


@router.get("/all-applications", response_class=HTMLResponse)
def all_applications(request: Request, search: str = "", status: str = "all"):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied

    applications = get_all_applications()
    stats = application_stats(applications)
    shown = filter_applications(applications, search=search, status=status)
    csrf_token = request_csrf_token(request)

    rows = "".join(
        f"""
        <tr>
          <td>{esc(' '.join(filter(None, [a.get('candidate_name'), a.get('candidate_surname')])))}<br/>
              <span class="muted">{esc(a.get('candidate_email'))}</span></td>
          <td><a href="/jobs/{a['job_id']}">{esc(a.get('job_title'))}</a></td>
          <td>{esc(a.get('employer'))}</td>
          <td>{format_dt(a.get('applied_at'))}</td>
          <td>{badge(a.get('status'))}<br/>{status_form(a, csrf_token, "/all-applications")}</td>
        </tr>
        """
        for a in shown
    ) or "<tr><td colspan='5'>No applications match these filters.</td></tr>"

    body = f"""
    <div class="stats">
      {stat_card("Total", stats["total"])}
      {stat_card("Under review", stats["under_review"])}
      {stat_card("Hired", stats["hired"])}
      {stat_card("Hire rate", f"{stats['hire_rate']}%")}
    </div>
    <form method="get" action="/all-applications" class="card filters">
      <label>Search
        <input type="text" name="search" value="{esc(search)}" placeholder="Candidate, job or employer" maxlength="100" />
      </label>
      <label>Status
        <select name="status">{options_html(STATUS_FILTER_CHOICES, status)}</select>
      </label>
      <button type="submit">Filter</button>
    </form>
    <div class="card">
      <table>
        <thead><tr><th>Candidate</th><th>Job</th><th>Employer</th><th>Applied</th><th>Status</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """
    resp = render_page("All Applications", body, user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.get("/applications-monitor", response_class=HTMLResponse)
def applications_monitor(request: Request, status: str = "all"):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied

    applications = get_all_applications()
    stats = application_stats(applications)
    recent = sorted(
        filter_applications(applications, status=status),
        key=lambda a: a.get("updated_at") or a.get("applied_at") or "",
        reverse=True,
    )[:25]

    cards = "".join(stat_card(status_label(s), stats["by_status"][s]) for s in APPLICATION_STATUSES)
    items = "".join(
        f"""
        <tr>
          <td>{esc(' '.join(filter(None, [a.get('candidate_name'), a.get('candidate_surname')])))}</td>
          <td>{esc(a.get('job_title'))}</td>
          <td>{badge(a.get('status'))}</td>
          <td>{format_dt(a.get('updated_at') or a.get('applied_at'))}</td>
        </tr>
        """
        for a in recent
    ) or "<tr><td colspan='4'>No recent activity.</td></tr>"

    body = f"""
    <div class="stats">{stat_card("Total", stats["total"])}{cards}</div>
    <form method="get" action="/applications-monitor" class="card filters">
      <label>Status
        <select name="status">{options_html(STATUS_FILTER_CHOICES, status)}</select>
      </label>
      <button type="submit">Filter</button>
    </form>
    <div class="card">
      <h3>Recent activity</h3>
      <table>
        <thead><tr><th>Candidate</th><th>Job</th><th>Status</th><th>Last update</th></tr></thead>
        <tbody>{items}</tbody>
      </table>
    </div>
    """
    return render_page("Applications Monitor", body, user=user)


def _setting_input(key: str, value) -> str:
    label = esc(SETTING_LABELS.get(key, key))
    default = DEFAULT_SETTINGS[key]
    if isinstance(default, bool):
        checked = " checked" if value else ""
        return f'<label><input type="checkbox" name="{key}" value="1"{checked} /> {label}</label>'
    if isinstance(default, int):
        return f'<label>{label}<input type="number" name="{key}" value="{esc(value)}" /></label>'
    if isinstance(default, list):
        return f'<label>{label}<textarea name="{key}" style="min-height:4rem;">{esc(chr(10).join(value or []))}</textarea></label>'
    return f'<label>{label}<input type="text" name="{key}" value="{esc(value)}" maxlength="250" /></label>'


def _settings_form(settings: dict, csrf_token: str, error: str | None = None, saved: bool = False) -> str:
    general = [k for k in DEFAULT_SETTINGS if k not in NOTIFICATION_KEYS]
    return f"""
    <div class="card form-card">
      {message_html(error)}
      {message_html("Settings saved." if saved else None, error=False)}
      <form method="post" action="/settings">
        <h3>Platform</h3>
        {''.join(_setting_input(k, settings.get(k)) for k in general)}
        <h3>Email notifications</h3>
        {''.join(_setting_input(k, settings.get(k)) for k in NOTIFICATION_KEYS)}
        {csrf_field(csrf_token)}
        <button type="submit">Save settings</button>
      </form>
    </div>
    """


@router.get("/settings", response_class=HTMLResponse)
def settings_page(request: Request, saved: int = 0):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied

    csrf_token = request_csrf_token(request)
    resp = render_page("Settings", _settings_form(get_all_settings(), csrf_token, saved=bool(saved)), user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/settings", response_class=HTMLResponse)
def settings_save(request: Request, form: dict = Depends(submitted_form)):
    user, _ = get_current_user(request)
    denied = require_role(user, "admin")
    if denied:
        return denied

    if not validate_csrf(request, form.get("csrf_token") or ""):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    # Unchecked checkboxes are absent from the form
    updates = {
        key: (key in form) if isinstance(default, bool) else form.get(key) or ""
        for key, default in DEFAULT_SETTINGS.items()
    }
    try:
        update_settings(updates)
    except SettingsError as exc:
        token = request_csrf_token(request)
        submitted = {**get_all_settings(), **{k: v for k, v in updates.items()}}
        submitted["allowed_email_domains"] = [
            d for d in str(updates["allowed_email_domains"]).splitlines() if d.strip()
        ]
        return render_page("Settings", _settings_form(submitted, token, str(exc)), user=user, status_code=400)

    log.info("Admin %s updated platform settings", user["id"])
    return RedirectResponse(url="/settings?saved=1", status_code=303)
