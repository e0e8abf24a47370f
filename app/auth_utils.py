"""
Helpers for session cookies, current-user lookup and role checks.
"""
from __future__ import annotations

from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from core.config import secure_cookies
from core.database import (
    delete_session,
    get_session,
    get_setting,
    get_user_by_id,
    touch_session,
)

SESSION_COOKIE_NAME = "session_id"
SESSION_COOKIE_MAX_AGE = 8 * 3600  # browser cap; the server-side inactivity timeout is shorter


def is_unverified(user: dict) -> bool:
    return user.get("email_verified_at") in (None, "")


def get_current_user(request: Request):
    """
    Read session cookie and return (user_dict, session_token) or (None, None).
    Refreshes the inactivity timeout when the session is valid.
    """
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None, None

    session = get_session(token)
    if not session:
        return None, token

    user = get_user_by_id(session["user_id"])
    if not user or not user.get("active"):
        delete_session(token)
        return None, token

    if is_unverified(user) and user.get("role") != "admin" and get_setting("require_email_verification"):
        delete_session(token)
        return None, token

    touch_session(token)
    return user, token


def require_role(user: dict | None, *roles: str) -> Response | None:
    """
    Return the response to send when user may not proceed, else None:
    a redirect to /login when anonymous, 403 when the role is not allowed.
    """
    if not user:
        return RedirectResponse(url="/login", status_code=303)
    if roles and user.get("role") not in roles:
        return HTMLResponse("Forbidden", status_code=403)
    return None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=SESSION_COOKIE_MAX_AGE,
        samesite="lax",
        secure=secure_cookies(),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME)


async def submitted_form(request: Request) -> dict:
    """
    Dependency returning the posted text fields as a dict.
    Lets handlers with a dynamic field set stay sync (threadpool) while only
    the body parsing happens on the event loop.
    """
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}
