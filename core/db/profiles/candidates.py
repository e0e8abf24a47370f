"""
Candidate profile and education record storage.
"""
from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from core.db.base import get_conn, now_iso
from core.errors import ProfileError

QUALIFICATION_TYPES = [
    "High School Diploma",
    "Associate Degree",
    "Bachelor's Degree",
    "Master's Degree",
    "PhD/Doctorate",
    "Professional Certificate",
    "Trade Certification",
    "Diploma",
    "Online Course Certificate",
    "Bootcamp Certificate",
    "Industry Certification",
    "Other",
]

# Columns a candidate may edit from the profile form.
EDITABLE_FIELDS = (
    "name",
    "surname",
    "phone",
    "age",
    "gender",
    "location",
    "education",
    "experience",
    "skills",
    "resume_url",
    "license_type",
    "license_number",
    "id_passport",
)

_CANDIDATE_COLUMNS = (
    "id, user_id, name, surname, email, phone, age, gender, location, education, experience, "
    "skills, resume_url, license_type, license_number, id_passport, created_at, updated_at"
)


def normalize_skills(raw: str | Iterable[str] | None) -> List[str]:
    """
    Split a comma/newline separated skill string (or clean a list).
    Blank entries and case-insensitive duplicates are dropped; the first spelling wins.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = re.split(r"[,\n]", raw)
    else:
        parts = list(raw)

    skills: List[str] = []
    seen = set()
    for part in parts:
        skill = (part or "").strip()
        if not skill or skill.lower() in seen:
            continue
        seen.add(skill.lower())
        skills.append(skill)
    return skills


def _clean_updates(updates: Dict) -> Dict:
    cleaned = {}
    for key, value in updates.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key == "skills":
            cleaned[key] = normalize_skills(value)
        elif key == "age":
            if value in (None, ""):
                cleaned[key] = None
                continue
            try:
                age = int(value)
            except (TypeError, ValueError):
                raise ProfileError("Age must be a whole number.")
            if age < 14 or age > 100:
                raise ProfileError("Age must be between 14 and 100.")
            cleaned[key] = age
        else:
            cleaned[key] = (str(value).strip() or None) if value is not None else None
    return cleaned


def get_candidate_profile(user_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"SELECT {_CANDIDATE_COLUMNS} FROM candidates WHERE user_id = ?", (user_id,))
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def update_candidate_profile(user_id: int, updates: Dict) -> Optional[Dict]:
    """Apply whitelisted updates and return the refreshed profile."""
    cleaned = _clean_updates(updates)
    if not cleaned:
        return get_candidate_profile(user_id)

    assignments = ", ".join(f"{column} = ?" for column in cleaned)
    params = list(cleaned.values()) + [now_iso(), user_id]

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"UPDATE candidates SET {assignments}, updated_at = ? WHERE user_id = ?", params)
    conn.commit()
    conn.close()
    return get_candidate_profile(user_id)


def profile_completeness(profile: Dict | None) -> int:
    """Percentage of the key profile fields that are filled in."""
    if not profile:
        return 0
    keys = ("name", "surname", "phone", "location", "education", "experience", "skills", "resume_url")
    filled = sum(1 for k in keys if profile.get(k))
    return round(filled * 100 / len(keys))


def get_education_records(candidate_id: int) -> List[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, candidate_id, qualification_type, document_url, created_at, updated_at
        FROM candidate_education
        WHERE candidate_id = ?
        ORDER BY created_at DESC, id DESC
        """,
        (candidate_id,),
    )
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def add_education_record(candidate_id: int, qualification_type: str, document_url: str | None = None) -> int:
    if qualification_type not in QUALIFICATION_TYPES:
        raise ProfileError("Please select a qualification type.")
    now = now_iso()
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO candidate_education (candidate_id, qualification_type, document_url, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?)
        RETURNING id
        """,
        (candidate_id, qualification_type, document_url or None, now, now),
    )
    record_id = int(cur.fetchone()["id"])
    conn.commit()
    conn.close()
    return record_id


def delete_education_record(candidate_id: int, record_id: int) -> Optional[Dict]:
    """Delete a record only if it belongs to the candidate; returns the removed row or None."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        "DELETE FROM candidate_education WHERE id = ? AND candidate_id = ? RETURNING id, document_url",
        (record_id, candidate_id),
    )
    row = cur.fetchone()
    conn.commit()
    conn.close()
    return dict(row) if row else None


__all__ = [
    "QUALIFICATION_TYPES",
    "EDITABLE_FIELDS",
    "normalize_skills",
    "get_candidate_profile",
    "update_candidate_profile",
    "profile_completeness",
    "get_education_records",
    "add_education_record",
    "delete_education_record",
]
