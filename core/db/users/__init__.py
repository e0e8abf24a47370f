"""
User-related storage helpers, split by responsibility.
"""
from core.db.users.credentials import authenticate, hash_password, verify_password
from core.db.users.user_store import (
    DEFAULT_COMPANY_NAME,
    ROLES,
    create_user_with_profile,
    delete_user_data,
    get_deleted_users,
    get_user_by_email,
    get_user_by_id,
    list_users,
    mark_user_email_verified,
    set_user_active,
    update_user_password,
)
from core.db.users.tokens import (
    RESET_TOKEN_MINUTES,
    VERIFY_TOKEN_HOURS,
    create_email_verification_token,
    create_password_reset_token,
    get_email_verification_token,
    get_password_reset_token,
    mark_email_verification_token_used,
    mark_reset_token_used,
)
from core.db.users.sessions import (
    SESSION_TIMEOUT_MINUTES,
    create_session,
    delete_session,
    delete_sessions_for_user,
    get_session,
    touch_session,
)

__all__ = [
    "authenticate",
    "hash_password",
    "verify_password",
    "DEFAULT_COMPANY_NAME",
    "ROLES",
    "create_user_with_profile",
    "delete_user_data",
    "get_deleted_users",
    "get_user_by_email",
    "get_user_by_id",
    "list_users",
    "mark_user_email_verified",
    "set_user_active",
    "update_user_password",
    "RESET_TOKEN_MINUTES",
    "VERIFY_TOKEN_HOURS",
    "create_email_verification_token",
    "create_password_reset_token",
    "get_email_verification_token",
    "get_password_reset_token",
    "mark_email_verification_token_used",
    "mark_reset_token_used",
    "SESSION_TIMEOUT_MINUTES",
    "create_session",
    "delete_session",
    "delete_sessions_for_user",
    "get_session",
    "touch_session",
]
