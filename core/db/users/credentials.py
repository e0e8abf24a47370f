"""
Password hashing and credential checks.
"""
from __future__ import annotations

from typing import Dict, Optional, Tuple

import bcrypt

from core.db.base import get_conn


def hash_password(raw_password: str) -> str:
    return bcrypt.hashpw(raw_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(raw_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(raw_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed or non-bcrypt hash
        return False


def authenticate(email: str, raw_password: str) -> Tuple[Optional[Dict], str]:
    """
    Check an email/password pair.
    Returns (user, "") on success, otherwise (user_or_None, reason) where reason is
    one of "unknown_email", "bad_password" or "inactive".
    """
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, email, password_hash, role, active, created_at, email_verified_at
        FROM users
        WHERE email = ?
        """,
        ((email or "").strip().lower(),),
    )
    row = cur.fetchone()
    conn.close()

    if not row:
        return None, "unknown_email"
    user = dict(row)
    if not verify_password(raw_password or "", user["password_hash"]):
        return user, "bad_password"
    if not user.get("active"):
        return user, "inactive"
    return user, ""


__all__ = ["hash_password", "verify_password", "authenticate"]
