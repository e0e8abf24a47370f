"""
Recruiter (company) profile storage.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from core.db.base import get_conn, now_iso
from core.db.users.user_store import DEFAULT_COMPANY_NAME

log = logging.getLogger("db.recruiters")

EDITABLE_FIELDS = ("name", "company_name", "industry", "description", "location", "logo_url")

_RECRUITER_COLUMNS = (
    "id, user_id, name, company_name, industry, description, location, logo_url, created_at, updated_at"
)


def get_recruiter_profile(user_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_RECRUITER_COLUMNS} FROM recruiters WHERE user_id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def get_or_create_recruiter_profile(user_id: int) -> Dict:
    """Return the recruiter's profile, creating a placeholder company when missing."""
    profile = get_recruiter_profile(user_id)
    if profile:
        return profile

    now = now_iso()
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        INSERT INTO recruiters (user_id, company_name, created_at, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT (user_id) DO NOTHING
        RETURNING {_RECRUITER_COLUMNS}
        """,
        (user_id, DEFAULT_COMPANY_NAME, now, now),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    if row:
        log.info("Created recruiter profile for user %s", user_id)
        return dict(row)
    # Created concurrently by another request
    return get_recruiter_profile(user_id)


def update_recruiter_profile(user_id: int, updates: Dict) -> Optional[Dict]:
    cleaned = {
        key: (str(value).strip() or None) if value is not None else None
        for key, value in updates.items()
        if key in EDITABLE_FIELDS
    }
    if "name" in cleaned and cleaned["name"] is None:
        cleaned["name"] = ""
    if not cleaned:
        return get_recruiter_profile(user_id)

    assignments = ", ".join(f"{column} = ?" for column in cleaned)
    params = list(cleaned.values()) + [now_iso(), user_id]

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"UPDATE recruiters SET {assignments}, updated_at = ? WHERE user_id = ?", params)
    conn.commit()
    conn.close()
    return get_recruiter_profile(user_id)


__all__ = [
    "EDITABLE_FIELDS",
    "get_recruiter_profile",
    "get_or_create_recruiter_profile",
    "update_recruiter_profile",
]
