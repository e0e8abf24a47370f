import logging
import os

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from app.auth_utils import get_current_user, set_session_cookie
from app.email_utils import notify_new_user, send_text_email
from app.layout import esc, message_html, options_html, render_page
from app.security import (
    allow_request,
    attach_csrf_cookie,
    client_ip,
    csrf_field,
    request_csrf_token,
    validate_csrf,
)
from core.database import (
    create_email_verification_token,
    create_session,
    get_all_settings,
    get_stats,
)
from core.config import public_base_url
from core.errors import RegistrationError
from core.registration import register

log = logging.getLogger("routes.public")

router = APIRouter()

ROLE_CHOICES = [("candidate", "Candidate - looking for a job"), ("recruiter", "Recruiter - hiring")]


def _build_public_url(request: Request, path: str) -> str:
    base = (public_base_url() or str(request.base_url)).rstrip("/")
    return f"{base}{path}"


@router.get("/", response_class=HTMLResponse)
def index(request: Request):
    user, _ = get_current_user(request)
    if user:
        return RedirectResponse(url="/dashboard", status_code=303)

    body = """
    <div class="card">
      <h2>Find your next opportunity</h2>
      <p>Candidates browse open positions and apply in a few clicks. Recruiters post jobs and
         review applicants in one place.</p>
      <p><a href="/jobs">Browse open jobs</a> &middot; <a href="/register">Create an account</a>
         &middot; <a href="/login">Log in</a></p>
    </div>
    """
    return render_page("Job Portal", body, user=None)


def _register_form(csrf_token: str, email: str = "", role: str = "candidate", error: str | None = None) -> str:
    return f"""
    <div class="card form-card">
      <p class="muted">Create a candidate or recruiter account.</p>
      {message_html(error)}
      <form method="post" action="/register">
        <label>Email</label>
        <input type="email" name="email" required maxlength="50" value="{esc(email)}" />
        <label>Password</label>
        <input type="password" name="password" required maxlength="25" />
        <label>Confirm password</label>
        <input type="password" name="password2" required maxlength="25" />
        <label>I am a</label>
        <select name="role">{options_html(ROLE_CHOICES, role)}</select>
        {csrf_field(csrf_token)}
        <button type="submit">Create account</button>
      </form>
      <p class="muted">Already registered? <a href="/login">Log in</a></p>
    </div>
    """


@router.get("/register", response_class=HTMLResponse)
def register_form(request: Request):
    user, _ = get_current_user(request)
    if user:
        return RedirectResponse(url="/dashboard", status_code=303)
    csrf_token = request_csrf_token(request)
    resp = render_page("Register", _register_form(csrf_token), user=None)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/register")
def register_submit(
    request: Request,
    email: str = Form(..., max_length=50),
    password: str = Form(..., max_length=25),
    password2: str = Form(..., max_length=25),
    role: str = Form("candidate", max_length=20),
    csrf_token: str = Form("", max_length=128),
):
    if not allow_request(f"register:{client_ip(request)}", limit=10, window_seconds=300):
        return HTMLResponse("Too many attempts. Please try again later.", status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    token = request_csrf_token(request)
    if password != password2:
        return render_page(
            "Register",
            _register_form(token, email, role, "Passwords do not match."),
            user=None,
            status_code=400,
        )

    settings = get_all_settings()
    try:
        user_id = register(email, password, role, settings=settings)
    except RegistrationError as exc:
        return render_page("Register", _register_form(token, email, role, str(exc)), user=None, status_code=400)

    notify_new_user(os.getenv("ADMIN_EMAIL"), email.strip().lower(), role, settings)

    if settings.get("require_email_verification"):
        try:
            verify_token = create_email_verification_token(user_id)
            link = _build_public_url(request, f"/verify-email?token={verify_token}")
            send_text_email(
                to_email=email.strip().lower(),
                subject="Verify your email - Job Portal",
                body=f"Please verify your email by clicking this link:\n\n{link}\n\nThis link expires in 24 hours.",
            )
        except Exception as exc:
            log.warning("Could not send verification email for user_id=%s: %s", user_id, exc)

        body = """
        <div class="card form-card">
          <h2>Check your inbox</h2>
          <p class="muted">We sent you a verification link. Verify your email, then log in.</p>
          <p class="muted"><a href="/verify-email/resend">Resend the link</a></p>
        </div>
        """
        return render_page("Verify your email", body, user=None)

    session_token = create_session(user_id)
    response = RedirectResponse(url="/dashboard", status_code=303)
    set_session_cookie(response, session_token)
    return response


@router.get("/health")
def health():
    """
    Basic health check for the app.
    """
    try:
        return {"status": "ok", "stats": get_stats()}
    except Exception as e:
        return {"status": "error", "detail": str(e)}


@router.get("/favicon.ico")
def favicon():
    # Empty 204 avoids log noise for the missing favicon
    return Response(status_code=204)
