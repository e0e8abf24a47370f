"""
Account registration rules and demo accounts.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from email_validator import EmailNotValidError, validate_email
from password_strength import PasswordPolicy

from core.db.settings import get_all_settings
from core.db.users import create_user_with_profile, get_user_by_email, verify_password
from core.errors import RegistrationError

log = logging.getLogger("registration")

SELF_SERVICE_ROLES = ("candidate", "recruiter")
MAX_PASSWORD_LENGTH = 25

DEMO_PASSWORD = "DemoPass123!"
DEMO_USERS = {
    "candidate": "demo.candidate@jobportal.com",
    "recruiter": "demo.recruiter@jobportal.com",
    "admin": "demo.admin@jobportal.com",
}

# password_strength test names: length and numbers are the ones we rely on.
password_policy = PasswordPolicy.from_names(length=8, numbers=1)


def is_valid_email(email: str) -> bool:
    email = (email or "").strip()
    if not email:
        return False
    if not re.fullmatch(r"[^@\s]+@[^@\s]+\.[^@\s]+", email):
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_password(pw: str, min_length: int = 8) -> bool:
    """8..25 chars (or more per min_length), no whitespace, at least one letter and one digit."""
    if not pw or re.search(r"\s", pw):
        return False
    if len(pw) < max(8, min_length) or len(pw) > MAX_PASSWORD_LENGTH:
        return False
    if not (re.search(r"[A-Za-z]", pw) and re.search(r"\d", pw)):
        return False
    return not password_policy.test(pw)


def email_domain_allowed(email: str, allowed_domains) -> bool:
    if not allowed_domains:
        return True
    domain = (email or "").strip().lower().rpartition("@")[2]
    return domain in {d.lower() for d in allowed_domains}


def register(email: str, password: str, role: str, settings: Optional[Dict] = None) -> int:
    """
    Create a candidate or recruiter account with its profile.
    Raises RegistrationError with a user-facing message when any rule fails.
    """
    settings = settings if settings is not None else get_all_settings()

    if not settings.get("allow_registrations", True):
        raise RegistrationError("New registrations are currently disabled.")
    if role not in SELF_SERVICE_ROLES:
        raise RegistrationError("Please choose candidate or recruiter.")

    email = (email or "").strip().lower()
    if not is_valid_email(email):
        raise RegistrationError("Please enter a valid email address.")
    if not email_domain_allowed(email, settings.get("allowed_email_domains")):
        raise RegistrationError("Registrations from this email domain are not allowed.")

    min_length = int(settings.get("password_min_length") or 8)
    if not is_valid_password(password, min_length):
        raise RegistrationError(
            f"Password must be {max(8, min_length)}-{MAX_PASSWORD_LENGTH} characters, "
            "with at least one letter and one number and no spaces."
        )
    if get_user_by_email(email):
        raise RegistrationError("An account with that email already exists.")

    verified = not settings.get("require_email_verification", False)
    user_id = create_user_with_profile(email, password, role=role, verified=verified)
    log.info("Registered %s account user_id=%s", role, user_id)
    return user_id


def ensure_demo_user(role: str) -> Dict:
    """
    Return the demo account for a role, creating it (verified, with profile) if needed.
    Raises RegistrationError when the account exists with different credentials.
    """
    email = DEMO_USERS.get(role)
    if not email:
        raise RegistrationError("Demo user not found.")

    user = get_user_by_email(email)
    if user:
        if not verify_password(DEMO_PASSWORD, user["password_hash"]):
            raise RegistrationError(
                f"Demo {role} account exists but credentials don't match. Please use regular login."
            )
        return user

    create_user_with_profile(email, DEMO_PASSWORD, role=role, verified=True)
    log.info("Created demo %s account", role)
    return get_user_by_email(email)


__all__ = [
    "SELF_SERVICE_ROLES",
    "DEMO_PASSWORD",
    "DEMO_USERS",
    "is_valid_email",
    "is_valid_password",
    "email_domain_allowed",
    "register",
    "ensure_demo_user",
]
