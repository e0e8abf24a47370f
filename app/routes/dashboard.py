from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from app.auth_utils import get_current_user, require_role
from app.layout import badge, esc, format_dt, render_page, stat_card
from core.database import (
    application_stats,
    get_all_applications,
    get_candidate_applications,
    get_candidate_profile,
    get_open_jobs,
    get_or_create_recruiter_profile,
    get_posted_jobs,
    get_recruiter_applications,
    get_stats,
    job_location,
    profile_completeness,
    status_label,
)

router = APIRouter()

RECENT_LIMIT = 5


def _candidate_dashboard(user: dict) -> str:
    profile = get_candidate_profile(user["id"]) or {}
    applications = get_candidate_applications(user["id"])
    stats = application_stats(applications)
    jobs = get_open_jobs()

    rows = "".join(
        f"""
        <tr>
          <td><a href="/jobs/{a['job_id']}">{esc(a.get('job_title'))}</a></td>
          <td>{esc(a.get('employer'))}</td>
          <td>{badge(a.get('status'))}</td>
          <td>{format_dt(a.get('applied_at'))}</td>
        </tr>
        """
        for a in applications[:RECENT_LIMIT]
    ) or "<tr><td colspan='4'>No applications yet. <a href='/jobs'>Browse jobs</a></td></tr>"

    job_items = "".join(
        f"<li><a href='/jobs/{j['id']}'>{esc(j.get('job_title'))}</a> "
        f"<span class='muted'>{esc(j.get('company_name') or j.get('employer'))} &middot; {esc(job_location(j))}</span></li>"
        for j in jobs[:RECENT_LIMIT]
    ) or "<li class='muted'>No open jobs right now.</li>"

    completeness = profile_completeness(profile)
    profile_hint = ""
    if completeness < 100:
        profile_hint = f"<p class='muted'>Your profile is {completeness}% complete. <a href='/profile'>Finish it</a> to stand out.</p>"

    return f"""
    <div class="stats">
      {stat_card("Applications", stats["total"])}
      {stat_card("Under review", stats["under_review"])}
      {stat_card("Shortlisted", stats["by_status"]["shortlisted"])}
      {stat_card("Open jobs", len(jobs))}
      {stat_card("Profile complete", f"{completeness}%")}
    </div>
    <div class="card">
      <h2>Welcome, {esc(profile.get('name') or user['email'])}</h2>
      {profile_hint}
    </div>
    <div class="card">
      <h3>Recent applications</h3>
      <table>
        <thead><tr><th>Job</th><th>Employer</th><th>Status</th><th>Applied</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    <div class="card">
      <h3>Latest jobs</h3>
      <ul>{job_items}</ul>
    </div>
    """


def _recruiter_dashboard(user: dict) -> str:
    profile = get_or_create_recruiter_profile(user["id"])
    jobs = get_posted_jobs(user["id"])
    applications = get_recruiter_applications(user["id"])
    stats = application_stats(applications)
    active = sum(1 for j in jobs if j.get("status") == "active")
    expired = sum(1 for j in jobs if j.get("status") == "expired")

    rows = "".join(
        f"""
        <tr>
          <td>{esc(' '.join(filter(None, [a.get('candidate_name'), a.get('candidate_surname')])))}</td>
          <td>{esc(a.get('job_title'))}</td>
          <td>{esc(status_label(a.get('status')))}</td>
          <td>{format_dt(a.get('applied_at'))}</td>
        </tr>
        """
        for a in applications[:RECENT_LIMIT]
    ) or "<tr><td colspan='4'>No applications yet.</td></tr>"

    return f"""
    <div class="stats">
      {stat_card("Posted jobs", len(jobs))}
      {stat_card("Active jobs", active)}
      {stat_card("Expired jobs", expired)}
      {stat_card("Applications", stats["total"])}
      {stat_card("Hired", stats["hired"])}
    </div>
    <div class="card">
      <h2>{esc(profile.get('company_name'))}</h2>
      <p><a href="/jobs/create">Post a new job</a> &middot; <a href="/jobs/posted">Manage postings</a>
         &middot; <a href="/applications">Review applications</a></p>
    </div>
    <div class="card">
      <h3>Recent applications</h3>
      <table>
        <thead><tr><th>Candidate</th><th>Job</th><th>Status</th><th>Applied</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    """


def _admin_dashboard(user: dict) -> str:
    stats = get_stats()
    app_stats = application_stats(get_all_applications())

    return f"""
    <div class="stats">
      {stat_card("Users", stats["users"])}
      {stat_card("Candidates", stats["candidates"])}
      {stat_card("Recruiters", stats["recruiters"])}
      {stat_card("Active users", stats["active_users"])}
      {stat_card("Active jobs", stats["active_jobs"])}
      {stat_card("Applications", stats["applications"])}
      {stat_card("Hire rate", f"{app_stats['hire_rate']}%")}
    </div>
    <div class="card">
      <h2>Administration</h2>
      <p><a href="/users">Manage users</a> &middot; <a href="/jobs">All jobs</a>
         &middot; <a href="/all-applications">All applications</a> &middot; <a href="/settings">Settings</a></p>
    </div>
    """


DASHBOARDS = {
    "candidate": _candidate_dashboard,
    "recruiter": _recruiter_dashboard,
    "admin": _admin_dashboard,
}


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request):
    user, _ = get_current_user(request)
    denied = require_role(user, *DASHBOARDS)
    if denied:
        return denied

    body = DASHBOARDS[user["role"]](user)
    return render_page("Dashboard", body, user=user)
