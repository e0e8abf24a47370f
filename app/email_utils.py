"""
SMTP helpers and the notification emails sent on application events.
"""
from __future__ import annotations

import logging
import os
import smtplib
from email.mime.text import MIMEText

log = logging.getLogger("email")


def _effective_from(email_from: str | None, email_user: str | None, smtp_server: str) -> str:
    # Gmail rewrites or rejects a From that differs from the authenticated user
    if "gmail" in (smtp_server or "").lower() and email_user:
        return email_user
    return email_from or email_user or "noreply@jobportal.local"


def send_text_email(to_email: str, subject: str, body: str) -> None:
    email_user = os.getenv("EMAIL_USER")
    email_password = os.getenv("EMAIL_PASSWORD")
    email_from = os.getenv("EMAIL_FROM")
    smtp_server = os.getenv("SMTP_SERVER", "smtp.gmail.com")
    smtp_port = int(os.getenv("SMTP_PORT", "587"))

    if not (email_user and email_password):
        raise RuntimeError("Email credentials not configured. Set EMAIL_USER and EMAIL_PASSWORD.")

    msg = MIMEText(body)
    msg["Subject"] = subject
    msg["From"] = _effective_from(email_from, email_user, smtp_server)
    msg["To"] = to_email

    with smtplib.SMTP(smtp_server, smtp_port) as server:
        server.starttls()
        server.login(email_user, email_password)
        server.sendmail(msg["From"], [to_email], msg.as_string())
    log.info("Email sent to=%s subject=%r", to_email, subject)


def _send_quietly(to_email: str | None, subject: str, body: str) -> bool:
    """Notification mail must never fail the request that triggered it."""
    if not to_email:
        return False
    try:
        send_text_email(to_email, subject, body)
        return True
    except Exception as exc:
        log.warning("Notification to %s failed: %s", to_email, exc)
        return False


def notify_status_change(application: dict, settings: dict) -> bool:
    if not settings.get("notify_status_update"):
        return False
    status = (application.get("status") or "").replace("_", " ")
    return _send_quietly(
        application.get("candidate_email"),
        f"Application update: {application.get('job_title')}",
        f"Your application for {application.get('job_title')} at {application.get('employer')} "
        f"is now: {status}.",
    )


def notify_new_application(recruiter_email: str | None, job: dict, settings: dict) -> bool:
    if not settings.get("notify_new_application"):
        return False
    return _send_quietly(
        recruiter_email,
        f"New application: {job.get('job_title')}",
        f"A candidate has applied to {job.get('job_title')}. Sign in to review the application.",
    )


def notify_new_user(admin_email: str | None, new_email: str, role: str, settings: dict) -> bool:
    if not settings.get("notify_new_user"):
        return False
    return _send_quietly(admin_email, "New user registration", f"{new_email} registered as a {role}.")


def notify_system_alert(admin_email: str | None, subject: str, message: str, settings: dict) -> bool:
    if not settings.get("notify_system_alerts"):
        return False
    return _send_quietly(admin_email, subject, message)


def notify_new_job(admin_email: str | None, job_title: str, recruiter_email: str, settings: dict) -> bool:
    if not settings.get("notify_new_job"):
        return False
    return _send_quietly(admin_email, "New job posted", f"{recruiter_email} posted a new job: {job_title}.")
