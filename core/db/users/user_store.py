"""
User CRUD, role profiles and account activation helpers.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from core.db.base import get_conn, now_iso
from core.db.users.credentials import hash_password

log = logging.getLogger("db.users")

ROLES = ("candidate", "recruiter", "admin")
DEFAULT_COMPANY_NAME = "New Company"

_USER_COLUMNS = "id, email, password_hash, role, active, created_at, email_verified_at"


def create_user_with_profile(
    email: str,
    raw_password: str,
    role: str = "candidate",
    verified: bool = True,
    name: str | None = None,
    company_name: str | None = None,
) -> int:
    """
    Insert a user and the profile row matching its role in one transaction.

    Candidates get a candidates row (name defaults to the email's local part),
    recruiters get a recruiters row named "New Company" unless given one.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    email_normalized = email.strip().lower()
    now = now_iso()

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO users (email, password_hash, role, active, created_at, email_verified_at)
        VALUES (?, ?, ?, 1, ?, ?)
        RETURNING id
        """,
        (email_normalized, hash_password(raw_password), role, now, now if verified else None),
    )
    user_id = int(cur.fetchone()["id"])

    if role == "candidate":
        cur.execute(
            """
            INSERT INTO candidates (user_id, name, email, skills, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (user_id, name or email_normalized.split("@")[0] or "New User", email_normalized, [], now, now),
        )
    elif role == "recruiter":
        cur.execute(
            """
            INSERT INTO recruiters (user_id, company_name, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, company_name or DEFAULT_COMPANY_NAME, now, now),
        )

    conn.commit()
    conn.close()
    log.info("Created %s profile for user %s", role, user_id)
    return user_id


def get_user_by_email(email: str) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?", ((email or "").strip().lower(),))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def get_user_by_id(user_id: int) -> Optional[Dict]:
    """Look up a user by numeric id. Returns dict or None."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def list_users() -> List[Dict]:
    """All users newest first, with the display name taken from their profile."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT u.id, u.email, u.role, u.active, u.created_at, u.email_verified_at,
               COALESCE(NULLIF(TRIM(CONCAT(c.name, ' ', COALESCE(c.surname, ''))), ''),
                        r.company_name, '') AS display_name
        FROM users u
        LEFT JOIN candidates c ON c.user_id = u.id
        LEFT JOIN recruiters r ON r.user_id = u.id
        ORDER BY u.created_at DESC, u.id DESC
        """
    )
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def update_user_password(user_id: int, raw_password: str) -> None:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("UPDATE users SET password_hash=? WHERE id=?", (hash_password(raw_password), user_id))
    conn.commit()
    conn.close()


def set_user_active(user_id: int, active: bool) -> None:
    """Activate or deactivate an account; deactivation also ends its sessions."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("UPDATE users SET active=? WHERE id=?", (1 if active else 0, user_id))
    if not active:
        cur.execute("DELETE FROM sessions WHERE user_id=?", (user_id,))
    conn.commit()
    conn.close()


def mark_user_email_verified(user_id: int) -> None:
    """Set email_verified_at if not already set."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        "UPDATE users SET email_verified_at = ? WHERE id = ? AND (email_verified_at IS NULL OR email_verified_at = '')",
        (now_iso(), user_id),
    )
    conn.commit()
    conn.close()


def delete_user_data(user_id: int) -> None:
    """
    Archive the user into deleted_users, then remove the user row.
    Profiles, postings, applications, sessions and tokens go with it via ON DELETE CASCADE.
    """
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("SELECT id, email, role, created_at FROM users WHERE id=?", (user_id,))
    row = cur.fetchone()
    if not row:
        conn.close()
        return

    cur.execute(
        """
        INSERT INTO deleted_users (user_id, email, role, created_at, deleted_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (row["id"], row["email"], row["role"], row["created_at"], now_iso()),
    )
    cur.execute("DELETE FROM users WHERE id=?", (user_id,))
    conn.commit()
    conn.close()
    log.info("Deleted user %s (%s)", user_id, row["role"])


def get_deleted_users(limit: int = 100) -> List[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, user_id, email, role, created_at, deleted_at
        FROM deleted_users
        ORDER BY deleted_at DESC, id DESC
        LIMIT ?
        """,
        (int(limit),),
    )
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


__all__ = [
    "ROLES",
    "DEFAULT_COMPANY_NAME",
    "create_user_with_profile",
    "get_user_by_email",
    "get_user_by_id",
    "list_users",
    "update_user_password",
    "set_user_active",
    "mark_user_email_verified",
    "delete_user_data",
    "get_deleted_users",
]
