import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import clear_session_cookie, get_current_user, is_unverified, set_session_cookie
from app.email_utils import send_text_email
from app.layout import esc, message_html, render_page
from app.routes.public import _build_public_url
from app.security import (
    allow_request,
    allow_request_with_remaining,
    attach_csrf_cookie,
    client_ip,
    csrf_field,
    request_csrf_token,
    validate_csrf,
)
from core.config import demo_login_enabled
from core.database import (
    authenticate,
    create_email_verification_token,
    create_password_reset_token,
    create_session,
    delete_session,
    get_all_settings,
    get_email_verification_token,
    get_password_reset_token,
    get_user_by_email,
    get_user_by_id,
    mark_email_verification_token_used,
    mark_reset_token_used,
    mark_user_email_verified,
    update_user_password,
)
from core.errors import RegistrationError
from core.registration import ensure_demo_user, is_valid_password

log = logging.getLogger("routes.auth")

router = APIRouter()

DEMO_ROLES = ("candidate", "recruiter", "admin")

_INVALID_RESET_LINK = """
<div class="card">
  <p>Reset link is invalid or expired.</p>
  <p><a href="/password-reset">Request a new reset link</a></p>
</div>
"""


def _send_verification_email(to_email: str, verify_link: str) -> None:
    send_text_email(
        to_email=to_email,
        subject="Verify your email - Job Portal",
        body=f"Please verify your email by clicking this link:\n\n{verify_link}\n\nThis link expires in 24 hours.",
    )


def send_reset_email(to_email: str, reset_link: str) -> None:
    send_text_email(
        to_email=to_email,
        subject="Reset your password",
        body=f"Use this link to reset your password:\n\n{reset_link}\n\nIf you did not request this, ignore the email.",
    )


def _login_form(csrf_token: str, email: str = "", error: str | None = None, extra: str = "") -> str:
    demo_html = ""
    if demo_login_enabled():
        buttons = "".join(
            f"""
            <form method="post" action="/login/demo/{role}" class="inline">
              {csrf_field(csrf_token)}
              <button type="submit" class="secondary small">Demo {role}</button>
            </form>
            """
            for role in DEMO_ROLES
        )
        demo_html = f'<p class="muted" style="margin-top:1rem;">Or try a demo account:</p><div class="filters">{buttons}</div>'

    return f"""
    <div class="card form-card">
      <p class="muted">Log in to browse jobs, manage postings, or review applications.</p>
      {message_html(error)}
      {extra}
      <form method="post" action="/login">
        <label>Email</label>
        <input type="email" name="email" required maxlength="50" value="{esc(email)}" />
        <label>Password</label>
        <input type="password" name="password" required maxlength="25" />
        {csrf_field(csrf_token)}
        <button type="submit">Login</button>
      </form>
      <p style="margin-top:0.5rem;"><a href="/password-reset">Forgot password?</a>
         &middot; <a href="/register">Create an account</a></p>
      {demo_html}
    </div>
    """


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request):
    user, _ = get_current_user(request)
    if user:
        return RedirectResponse(url="/dashboard", status_code=303)
    csrf_token = request_csrf_token(request)
    resp = render_page("Login", _login_form(csrf_token), user=None)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/login", response_class=HTMLResponse)
def login(
    request: Request,
    email: str = Form(..., max_length=50),
    password: str = Form(..., max_length=25),
    csrf_token: str = Form(""),
):
    allowed, remaining = allow_request_with_remaining(f"login:{client_ip(request)}", limit=10, window_seconds=300)
    if not allowed:
        return HTMLResponse("Too many login attempts. Please try again later.", status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    user, reason = authenticate(email, password)
    token = request_csrf_token(request)
    attempts_left_html = f"<p class='muted'>Attempts left: {remaining}</p>"

    if reason == "unknown_email":
        return render_page("Login", _login_form(token, email, "Account does not exist for that email.", attempts_left_html))
    if reason == "bad_password":
        return render_page("Login", _login_form(token, email, "Incorrect password. Please try again.", attempts_left_html))
    if reason == "inactive":
        return render_page("Login", _login_form(token, email, "This account has been deactivated. Contact an administrator."))

    if is_unverified(user) and user.get("role") != "admin" and get_all_settings().get("require_email_verification"):
        try:
            verify_token = create_email_verification_token(user["id"])
            _send_verification_email(user["email"], _build_public_url(request, f"/verify-email?token={verify_token}"))
        except Exception as exc:
            # Do not leak details; login stays blocked either way
            log.warning("Verification email failed for user_id=%s: %s", user["id"], exc)

        body = """
        <div class="card form-card">
          <h2>Verify your email</h2>
          <p class="muted">Your account is not verified yet. Check your inbox for a verification link.</p>
          <p class="muted"><a href="/verify-email/resend">Resend the link</a></p>
        </div>
        """
        resp = render_page("Verify your email", body, user=None)
        attach_csrf_cookie(resp, token)
        return resp

    session_token = create_session(user["id"])
    response = RedirectResponse(url="/dashboard", status_code=303)
    set_session_cookie(response, session_token)
    return response


@router.post("/login/demo/{role}")
def login_demo(request: Request, role: str, csrf_token: str = Form("")):
    if not demo_login_enabled():
        return HTMLResponse("Not found", status_code=404)
    if not allow_request(f"demo:{client_ip(request)}", limit=20, window_seconds=300):
        return HTMLResponse("Too many attempts. Please try again later.", status_code=429)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)
    if role not in DEMO_ROLES:
        return HTMLResponse("Demo user not found.", status_code=404)

    try:
        user = ensure_demo_user(role)
    except RegistrationError as exc:
        return render_page("Login", _login_form(request_csrf_token(request), error=str(exc)), status_code=400)
    if not user.get("active"):
        return render_page(
            "Login",
            _login_form(request_csrf_token(request), error="This account has been deactivated. Contact an administrator."),
            status_code=400,
        )

    session_token = create_session(user["id"])
    response = RedirectResponse(url="/dashboard", status_code=303)
    set_session_cookie(response, session_token)
    log.info("Demo login as %s", role)
    return response


@router.get("/logout")
def logout(request: Request):
    _, token = get_current_user(request)
    if token:
        delete_session(token)
    response = RedirectResponse(url="/", status_code=303)
    clear_session_cookie(response)
    return response


@router.get("/password-reset", response_class=HTMLResponse)
def password_reset_request_form(request: Request):
    user, _ = get_current_user(request)
    csrf_token = request_csrf_token(request)
    body = f"""
    <div class="card form-card">
      <p class="muted">Enter your email to get a password reset link.</p>
      <form method="post" action="/password-reset">
        <label>Email</label>
        <input type="email" name="email" required maxlength="50" />
        {csrf_field(csrf_token)}
        <button type="submit">Send reset link</button>
      </form>
    </div>
    """
    resp = render_page("Reset password", body, user=user)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/password-reset", response_class=HTMLResponse)
def password_reset_request(request: Request, email: str = Form(..., max_length=50), csrf_token: str = Form("")):
    allowed, remaining = allow_request_with_remaining(
        f"pwdreset:{client_ip(request)}", limit=5, window_seconds=21600
    )
    if not allowed:
        body = """
        <div class="card">
          <p>You have reached the password reset limit (5 per 6 hours).</p>
          <p><a href="/login">Back to login</a></p>
        </div>
        """
        return HTMLResponse(body, status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    message = "If that email exists, a reset link has been sent."
    user = get_user_by_email(email)

    # Admin passwords are managed out-of-band
    if user and user.get("role") == "admin":
        log.info("Blocked password reset for admin account")
    elif user:
        token = create_password_reset_token(user["id"])
        reset_link = _build_public_url(request, f"/password-reset/confirm?token={token}")
        try:
            send_reset_email(user["email"], reset_link)
            log.info("Sent reset link for user_id=%s", user["id"])
        except Exception as exc:
            log.warning("Failed to send reset link for user_id=%s: %s", user["id"], exc)

    body = f"""
    <div class="card">
      <p>{message}</p>
      <p class="muted">You have {remaining} reset attempt(s) left in this 6-hour window.</p>
      <p><a href="/login">Back to login</a></p>
    </div>
    """
    return render_page("Reset password", body, user=None)


def _reset_confirm_form(token: str, csrf_token: str, error: str | None = None) -> str:
    return f"""
    <div class="card form-card">
      <p class="muted">Enter a new password.</p>
      {message_html(error)}
      <form method="post" action="/password-reset/confirm?token={esc(token)}">
        <label>New password</label>
        <input type="password" name="password" required maxlength="25" />
        <label>Confirm password</label>
        <input type="password" name="password2" required maxlength="25" />
        {csrf_field(csrf_token)}
        <button type="submit">Set new password</button>
      </form>
    </div>
    """


@router.get("/password-reset/confirm", response_class=HTMLResponse, name="password_reset_confirm")
def password_reset_confirm_form(request: Request, token: str = ""):
    if not get_password_reset_token(token):
        return render_page("Reset password", _INVALID_RESET_LINK, user=None)

    csrf_token = request_csrf_token(request)
    resp = render_page("Reset password", _reset_confirm_form(token, csrf_token), user=None)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/password-reset/confirm", response_class=HTMLResponse)
def password_reset_confirm(
    request: Request,
    token: str = "",
    password: str = Form(..., max_length=25),
    password2: str = Form(..., max_length=25),
    csrf_token: str = Form(""),
):
    if not allow_request(f"pwdreset_conf:{client_ip(request)}", limit=5, window_seconds=300):
        return HTMLResponse("Too many attempts. Please try again later.", status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    token_data = get_password_reset_token(token)
    if not token_data:
        return render_page("Reset password", _INVALID_RESET_LINK, user=None)

    form_token = request_csrf_token(request)
    if password != password2:
        return render_page("Reset password", _reset_confirm_form(token, form_token, "Passwords do not match."))

    min_length = int(get_all_settings().get("password_min_length") or 8)
    if not is_valid_password(password, min_length):
        return render_page(
            "Reset password",
            _reset_confirm_form(token, form_token, "Password must include letters and numbers, with no spaces."),
        )

    target_user = get_user_by_id(token_data["user_id"])
    if not target_user:
        return render_page("Reset password", _INVALID_RESET_LINK, user=None)

    if target_user.get("role") == "admin":
        body = """
        <div class="card">
          <p>Password reset is not available for this account.</p>
          <p><a href="/login">Back to login</a></p>
        </div>
        """
        return render_page("Reset password", body, user=None)

    update_user_password(target_user["id"], password)
    mark_reset_token_used(token)

    body = """
    <div class="card">
      <p>Password updated. You can now log in.</p>
      <p><a href="/login">Back to login</a></p>
    </div>
    """
    return render_page("Reset password", body, user=None)


@router.get("/verify-email", response_class=HTMLResponse)
def verify_email(request: Request, token: str = ""):
    token_data = get_email_verification_token(token)
    user = get_user_by_id(token_data["user_id"]) if token_data else None
    if not user:
        body = """
        <div class="card form-card">
          <h2>Verification link invalid</h2>
          <p class="muted">This verification link is invalid or expired.</p>
          <p class="muted"><a href="/verify-email/resend">Request a new link</a></p>
        </div>
        """
        return render_page("Verify email", body, user=None)

    mark_user_email_verified(user["id"])
    mark_email_verification_token_used(token)

    session_token = create_session(user["id"])
    resp = RedirectResponse(url="/dashboard", status_code=303)
    set_session_cookie(resp, session_token)
    return resp


@router.get("/verify-email/resend", response_class=HTMLResponse)
def verify_email_resend_form(request: Request):
    csrf_token = request_csrf_token(request)
    body = f"""
    <div class="card form-card">
      <h2>Resend verification email</h2>
      <form method="post" action="/verify-email/resend">
        <label>Email</label>
        <input type="email" name="email" required maxlength="50" />
        {csrf_field(csrf_token)}
        <button type="submit">Resend</button>
      </form>
    </div>
    """
    resp = render_page("Resend verification", body, user=None)
    attach_csrf_cookie(resp, csrf_token)
    return resp


@router.post("/verify-email/resend", response_class=HTMLResponse)
def verify_email_resend(request: Request, email: str = Form(..., max_length=50), csrf_token: str = Form("")):
    if not allow_request(f"verify_resend:{client_ip(request)}", limit=3, window_seconds=3600):
        return HTMLResponse("Too many attempts. Please try again later.", status_code=429)

    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    user = get_user_by_email(email)
    if user and is_unverified(user):
        try:
            token = create_email_verification_token(user["id"])
            _send_verification_email(user["email"], _build_public_url(request, f"/verify-email?token={token}"))
        except Exception as exc:
            log.warning("Verification resend failed for user_id=%s: %s", user["id"], exc)

    body = """
    <div class="card form-card">
      <p>If that email exists, a verification link has been sent.</p>
      <p class="muted"><a href="/login">Back to login</a></p>
    </div>
    """
    return render_page("Resend verification", body, user=None)
