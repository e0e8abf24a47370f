"""
Shared HTML layout, navigation and small rendering helpers.
"""
from __future__ import annotations

import html
from datetime import datetime, timezone
from typing import Iterable

from fastapi.responses import HTMLResponse

SITE_NAME = "Job Portal"

NAV_LINKS = {
    "candidate": [
        ("/dashboard", "Dashboard"),
        ("/profile", "My Profile"),
        ("/jobs", "Browse Jobs"),
        ("/applications", "My Applications"),
    ],
    "recruiter": [
        ("/dashboard", "Dashboard"),
        ("/profile", "Company Profile"),
        ("/jobs/posted", "Posted Jobs"),
        ("/jobs/create", "Post New Job"),
        ("/applications", "Applications"),
    ],
    "admin": [
        ("/dashboard", "Dashboard"),
        ("/users", "Manage Users"),
        ("/jobs", "All Jobs"),
        ("/all-applications", "All Applications"),
        ("/applications-monitor", "Monitor"),
        ("/settings", "Settings"),
    ],
}

STATUS_COLORS = {
    "applied": "#2563eb",
    "under_review": "#ca8a04",
    "shortlisted": "#7c3aed",
    "rejected": "#dc2626",
    "hired": "#16a34a",
    "active": "#16a34a",
    "closed": "#6b7280",
    "expired": "#9ca3af",
    "inactive": "#dc2626",
}


def esc(value) -> str:
    """HTML-escape any value for interpolation; None renders as an empty string."""
    if value is None:
        return ""
    return html.escape(str(value), quote=True)


def badge(status: str) -> str:
    color = STATUS_COLORS.get(status, "#6b7280")
    label = esc((status or "").replace("_", " "))
    return f'<span class="badge" style="background:{color};">{label}</span>'


def format_dt(dt_str: str | None) -> str:
    """Render an ISO timestamp (stored as UTC) as a local human-readable string."""
    if not dt_str:
        return ""
    try:
        dt = datetime.fromisoformat(dt_str)
    except ValueError:
        return esc(dt_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def options_html(choices: Iterable, selected: str | None = None) -> str:
    """<option> tags from plain values or (value, label) pairs."""
    parts = []
    for choice in choices:
        value, label = choice if isinstance(choice, tuple) else (choice, choice)
        sel = " selected" if selected is not None and str(value) == str(selected) else ""
        parts.append(f'<option value="{esc(value)}"{sel}>{esc(label)}</option>')
    return "\n".join(parts)


def message_html(message: str | None, error: bool = True) -> str:
    if not message:
        return ""
    css = "error" if error else "notice"
    return f'<p class="{css}">{esc(message)}</p>'


def stat_card(label: str, value) -> str:
    return f"""
    <div class="stat">
      <div class="label">{esc(label)}</div>
      <div class="value">{esc(value)}</div>
    </div>
    """


def render_page(title: str, body: str, user: dict | None = None, status_code: int = 200) -> HTMLResponse:
    """
    Shared layout: header with role-based navigation and optional 'signed in as' line.
    """
    if user:
        links = NAV_LINKS.get(user.get("role"), [("/dashboard", "Dashboard")])
        nav_html = "".join(f'<a href="{href}">{esc(label)}</a>' for href, label in links)
        nav_html += '<a href="/logout">Logout</a>'
        signed_in_text = f'Signed in as <strong>{esc(user.get("email"))}</strong> ({esc(user.get("role"))})'
    else:
        nav_html = '<a href="/jobs">Jobs</a><a href="/login">Login</a><a href="/register">Register</a>'
        signed_in_text = "Not signed in"

    page = f"""
    <!DOCTYPE html>
    <html>
      <head>
        <meta charset="utf-8" />
        <meta name="viewport" content="width=device-width, initial-scale=1" />
        <title>{esc(title)}</title>
        <style>
          * {{ box-sizing: border-box; }}
          body {{
            font-family: system-ui, -apple-system, "Segoe UI", sans-serif;
            margin: 0;
            background: #f9fafb;
            color: #111827;
          }}
          .page {{ max-width: 1080px; margin: 0 auto; padding: 1.5rem 1rem 3rem; }}
          header {{
            display: flex;
            justify-content: space-between;
            align-items: center;
            flex-wrap: wrap;
            gap: 0.75rem;
            margin-bottom: 1.5rem;
            padding: 0.75rem 1rem;
            background: #ffffff;
            border: 1px solid #e5e7eb;
            border-radius: 0.75rem;
          }}
          header h1 {{ font-size: 1.3rem; margin: 0; }}
          nav {{ display: flex; gap: 0.4rem; flex-wrap: wrap; }}
          nav a {{
            text-decoration: none;
            color: #1f2937;
            padding: 6px 10px;
            border-radius: 8px;
            background: #f3f4f6;
          }}
          nav a:hover {{ color: #2563eb; }}
          .signed-in {{ font-size: 0.8rem; color: #6b7280; margin-top: 0.25rem; }}
          a {{ color: #2563eb; }}
          .card {{
            background: #ffffff;
            border-radius: 0.75rem;
            border: 1px solid #e5e7eb;
            padding: 1rem 1.25rem;
            margin-bottom: 1rem;
          }}
          .form-card {{ max-width: 760px; margin: 0 auto 1rem; }}
          label {{ display: block; margin-top: 0.9rem; font-size: 0.95rem; }}
          input:not([type="checkbox"]):not([type="radio"]):not([type="hidden"]), select, textarea {{
            width: 100%;
            padding: 0.5rem;
            margin-top: 0.25rem;
            border-radius: 0.375rem;
            border: 1px solid #d1d5db;
            background: #ffffff;
            font: inherit;
          }}
          textarea {{ min-height: 8rem; }}
          .grid {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr)); gap: 0 1rem; }}
          button {{
            margin-top: 1.25rem;
            padding: 0.6rem 1.25rem;
            border-radius: 0.5rem;
            border: none;
            background: #2563eb;
            color: #ffffff;
            font-weight: 600;
            cursor: pointer;
          }}
          button.secondary {{ background: #6b7280; }}
          button.danger {{ background: #dc2626; }}
          button.small {{ margin-top: 0; padding: 0.3rem 0.7rem; font-size: 0.85rem; }}
          .inline {{ display: inline; }}
          .filters {{ display: flex; gap: 0.75rem; flex-wrap: wrap; align-items: flex-end; }}
          .filters label {{ flex: 1 1 180px; }}
          table {{ width: 100%; border-collapse: collapse; margin-top: 1rem; font-size: 0.9rem; }}
          th, td {{ border: 1px solid #e5e7eb; padding: 0.45rem 0.6rem; vertical-align: top; text-align: left; }}
          th {{ background: #f3f4f6; }}
          .muted {{ color: #6b7280; font-size: 0.85rem; }}
          .error {{ color: #dc2626; }}
          .notice {{ color: #16a34a; }}
          .badge {{ color: #ffffff; border-radius: 999px; padding: 2px 8px; font-size: 0.75rem; text-transform: capitalize; }}
          .skill {{ display: inline-block; background: #eef2ff; color: #3730a3; border-radius: 6px; padding: 1px 6px; margin: 1px; font-size: 0.8rem; }}
          .stats {{ display: flex; gap: 0.75rem; margin-bottom: 1rem; flex-wrap: wrap; }}
          .stat {{ flex: 0 0 160px; padding: 0.6rem 0.8rem; border-radius: 0.75rem; border: 1px solid #e5e7eb; background: #ffffff; }}
          .stat .label {{ font-size: 0.75rem; color: #6b7280; }}
          .stat .value {{ font-size: 1.3rem; font-weight: 600; }}
          footer {{ margin-top: 2.5rem; padding: 1rem 0; border-top: 1px solid #e5e7eb; font-size: 0.85rem; color: #6b7280; text-align: center; }}
        </style>
      </head>
      <body>
        <div class="page">
          <header>
            <div>
              <h1>{esc(title)}</h1>
              <div class="signed-in">{signed_in_text}</div>
            </div>
            <nav>{nav_html}</nav>
          </header>
          <main>
            {body}
          </main>
          <footer>(c) {datetime.utcnow().year} {SITE_NAME}</footer>
        </div>
      </body>
    </html>
    """
    return HTMLResponse(content=page, status_code=status_code)
