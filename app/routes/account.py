import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from app.auth_utils import clear_session_cookie, get_current_user
from app.security import validate_csrf
from core.database import delete_session, delete_user_data, set_user_active

log = logging.getLogger("routes.account")

router = APIRouter()


@router.post("/account/deactivate")
def deactivate_account(request: Request, csrf_token: str = Form("")):
    user, token = get_current_user(request)
    if not user:
        return RedirectResponse(url="/login", status_code=303)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    # Do not allow admin to deactivate via UI
    if user.get("role") == "admin":
        return RedirectResponse(url="/dashboard", status_code=303)

    set_user_active(user["id"], False)
    log.info("User %s deactivated their account", user["id"])

    if token:
        delete_session(token)
    response = RedirectResponse(url="/", status_code=303)
    clear_session_cookie(response)
    return response


@router.post("/account/delete")
def delete_account(request: Request, csrf_token: str = Form("")):
    user, token = get_current_user(request)
    if not user:
        return RedirectResponse(url="/login", status_code=303)
    if not validate_csrf(request, csrf_token):
        return HTMLResponse("Invalid or missing CSRF token.", status_code=403)

    # Do not allow admin to delete via UI
    if user.get("role") == "admin":
        return RedirectResponse(url="/dashboard", status_code=303)

    delete_user_data(user["id"])
    log.info("User %s deleted their account", user["id"])
    if token:
        delete_session(token)
    response = RedirectResponse(url="/", status_code=303)
    clear_session_cookie(response)
    return response
