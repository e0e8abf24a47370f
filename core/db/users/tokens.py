"""
Single-use, expiring tokens for password resets and email verification.

Both token kinds share one table layout; the helpers here take the table name
from a fixed mapping so callers can never inject SQL.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Dict, Optional

from core.db.base import get_conn

RESET_TOKEN_MINUTES = 60
VERIFY_TOKEN_HOURS = 24

_TABLES = {
    "reset": "password_reset_tokens",
    "verify": "email_verification_tokens",
}


def _create_token(kind: str, user_id: int, lifetime: timedelta, replace_existing: bool) -> str:
    table = _TABLES[kind]
    token = secrets.token_urlsafe(32)
    now = datetime.utcnow()

    conn = get_conn()
    cur = conn.cursor()
    if replace_existing:
        cur.execute(f"DELETE FROM {table} WHERE user_id = ?", (user_id,))
    cur.execute(
        f"""
        INSERT INTO {table} (user_id, token, created_at, expires_at, used_at)
        VALUES (?, ?, ?, ?, NULL)
        """,
        (
            user_id,
            token,
            now.isoformat(timespec="seconds"),
            (now + lifetime).isoformat(timespec="seconds"),
        ),
    )
    conn.commit()
    conn.close()
    return token


def _get_valid_token(kind: str, token: str) -> Optional[Dict]:
    """Return the token row if unused and unexpired; stale rows are deleted."""
    if not token:
        return None
    table = _TABLES[kind]

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"SELECT id, user_id, token, created_at, expires_at, used_at FROM {table} WHERE token = ?",
        (token,),
    )
    row = cur.fetchone()
    if not row:
        conn.close()
        return None

    data = dict(row)
    try:
        expired = datetime.fromisoformat(data["expires_at"]) <= datetime.utcnow()
    except (TypeError, ValueError):
        expired = True

    if data.get("used_at") or expired:
        cur.execute(f"DELETE FROM {table} WHERE token = ?", (token,))
        conn.commit()
        conn.close()
        return None

    conn.close()
    return data


def _mark_used(kind: str, token: str) -> None:
    if not token:
        return
    table = _TABLES[kind]
    now = datetime.utcnow().isoformat(timespec="seconds")

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"UPDATE {table} SET used_at = ? WHERE token = ? AND used_at IS NULL", (now, token))
    # Any sibling tokens for the same user are no longer useful
    cur.execute(
        f"DELETE FROM {table} WHERE token != ? AND user_id = (SELECT user_id FROM {table} WHERE token = ?)",
        (token, token),
    )
    conn.commit()
    conn.close()


def create_password_reset_token(user_id: int) -> str:
    return _create_token("reset", user_id, timedelta(minutes=RESET_TOKEN_MINUTES), replace_existing=True)


def get_password_reset_token(token: str) -> Optional[Dict]:
    return _get_valid_token("reset", token)


def mark_reset_token_used(token: str) -> None:
    _mark_used("reset", token)


def create_email_verification_token(user_id: int) -> str:
    return _create_token("verify", user_id, timedelta(hours=VERIFY_TOKEN_HOURS), replace_existing=False)


def get_email_verification_token(token: str) -> Optional[Dict]:
    return _get_valid_token("verify", token)


def mark_email_verification_token_used(token: str) -> None:
    _mark_used("verify", token)


__all__ = [
    "RESET_TOKEN_MINUTES",
    "VERIFY_TOKEN_HOURS",
    "create_password_reset_token",
    "get_password_reset_token",
    "mark_reset_token_used",
    "create_email_verification_token",
    "get_email_verification_token",
    "mark_email_verification_token_used",
]
