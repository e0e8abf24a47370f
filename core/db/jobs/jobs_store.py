"""
Job posting storage, validation and browse filters.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from core.db.base import get_conn, now_iso
from core.db.profiles.candidates import normalize_skills
from core.db.settings import get_setting
from core.errors import JobPostingError

log = logging.getLogger("db.jobs")

POST_DURATIONS = {
    "7-days": 7,
    "15-days": 15,
    "30-days": 30,
    "60-days": 60,
    "90-days": 90,
}
DEFAULT_EXPIRY_DAYS = 30

EXPERIENCE_LEVELS = ("fresher", "experienced")
JOB_STATUSES = ("active", "closed", "expired")

REQUIRED_FIELDS = {
    "job_title": "Job title",
    "employer": "Employer",
    "address_line1": "Address line 1",
    "city": "City",
    "state": "State",
    "zip_code": "Zip code",
    "country": "Country",
    "qualification": "Qualification",
    "experience_level": "Experience level",
    "job_description": "Job description",
}
OPTIONAL_FIELDS = ("website", "address_line2", "notice_period")

FIELD_LIMITS = {
    "job_title": 100,
    "employer": 150,
    "website": 150,
    "address_line1": 250,
    "address_line2": 250,
    "city": 250,
    "state": 100,
    "zip_code": 20,
    "country": 100,
    "qualification": 250,
    "notice_period": 100,
    "job_description": 10000,
}

_JOB_COLUMNS = """
    j.id, j.recruiter_id, j.job_title, j.employer, j.website, j.address_line1, j.address_line2,
    j.city, j.state, j.zip_code, j.country, j.qualification, j.experience_level, j.notice_period,
    j.job_description, j.skills_required, j.post_duration, j.expires_at, j.status,
    j.created_at, j.updated_at
"""


def compute_expires_at(duration: str, now: datetime | None = None, default_days: int = DEFAULT_EXPIRY_DAYS) -> str:
    """Expiry timestamp for a posting duration; unknown durations use default_days."""
    now = now or datetime.utcnow()
    days = POST_DURATIONS.get(duration, default_days)
    return (now + timedelta(days=days)).isoformat(timespec="seconds")


def default_expiry_days() -> int:
    """The default_job_expiry_days setting, used for durations outside POST_DURATIONS."""
    try:
        return int(get_setting("default_job_expiry_days"))
    except (TypeError, ValueError):
        return DEFAULT_EXPIRY_DAYS


def validate_job_posting(data: Dict) -> Dict:
    """
    Return a cleaned copy of the posting fields or raise JobPostingError
    naming the first missing or oversized field.
    """
    cleaned: Dict = {}
    for field, label in REQUIRED_FIELDS.items():
        value = str(data.get(field) or "").strip()
        if not value:
            raise JobPostingError(f"{label} is required.")
        cleaned[field] = value
    for field in OPTIONAL_FIELDS:
        cleaned[field] = str(data.get(field) or "").strip() or None

    for field, limit in FIELD_LIMITS.items():
        value = cleaned.get(field)
        if value and len(value) > limit:
            label = REQUIRED_FIELDS.get(field, field.replace("_", " ").capitalize())
            raise JobPostingError(f"{label} must be at most {limit} characters.")

    if cleaned["experience_level"] not in EXPERIENCE_LEVELS:
        raise JobPostingError("Experience level must be fresher or experienced.")
    return cleaned


def is_job_open(job: Dict, now: datetime | None = None) -> bool:
    if job.get("status") != "active":
        return False
    try:
        expires_at = datetime.fromisoformat(job.get("expires_at") or "")
    except ValueError:
        return False
    return expires_at > (now or datetime.utcnow())


def job_location(job: Dict) -> str:
    parts = [job.get("city"), job.get("state"), job.get("country")]
    return ", ".join(p for p in parts if p)


def job_matches_filters(job: Dict, search: str = "", location: str = "", experience: str = "") -> bool:
    """
    Browse filter: search hits the title or any required skill, location is a
    substring of city/state/country, experience is an exact level or "all".
    """
    search = (search or "").strip().lower()
    if search:
        title = (job.get("job_title") or "").lower()
        skills = [s.lower() for s in (job.get("skills_required") or [])]
        if search not in title and not any(search in s for s in skills):
            return False

    location = (location or "").strip().lower()
    if location and location not in job_location(job).lower():
        return False

    experience = (experience or "").strip().lower()
    if experience and experience != "all" and job.get("experience_level") != experience:
        return False
    return True


def filter_jobs(jobs: Iterable[Dict], search: str = "", location: str = "", experience: str = "") -> List[Dict]:
    return [j for j in jobs if job_matches_filters(j, search, location, experience)]


def _recruiter_id_for_user(cur, user_id: int) -> Optional[int]:
    cur.execute("SELECT id FROM recruiters WHERE user_id = ?", (user_id,))
    row = cur.fetchone()
    return int(row["id"]) if row else None


def post_job(user_id: int, data: Dict, skills: Iterable[str] | str, duration: str) -> int:
    """Insert an active posting for the recruiter owning user_id; returns the new id."""
    cleaned = validate_job_posting(data)
    skills_list = normalize_skills(skills)

    default_days = default_expiry_days()
    if duration not in POST_DURATIONS:
        duration = f"{default_days}-days"
    now = now_iso()
    expires_at = compute_expires_at(duration, default_days=default_days)

    conn = get_conn()
    cur = conn.cursor()
    recruiter_id = _recruiter_id_for_user(cur, user_id)
    if recruiter_id is None:
        conn.close()
        raise JobPostingError("Recruiter profile not found. Please complete your profile first.")

    cur.execute(
        """
        INSERT INTO job_postings (
            recruiter_id, job_title, employer, website, address_line1, address_line2,
            city, state, zip_code, country, qualification, experience_level, notice_period,
            job_description, skills_required, post_duration, expires_at, status, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'active', ?, ?)
        RETURNING id
        """,
        (
            recruiter_id,
            cleaned["job_title"],
            cleaned["employer"],
            cleaned["website"],
            cleaned["address_line1"],
            cleaned["address_line2"],
            cleaned["city"],
            cleaned["state"],
            cleaned["zip_code"],
            cleaned["country"],
            cleaned["qualification"],
            cleaned["experience_level"],
            cleaned["notice_period"],
            cleaned["job_description"],
            skills_list,
            duration,
            expires_at,
            now,
            now,
        ),
    )
    job_id = int(cur.fetchone()["id"])
    conn.commit()
    conn.close()
    log.info("Recruiter %s posted job %s (%s)", recruiter_id, job_id, duration)
    return job_id


def get_posted_jobs(user_id: int) -> List[Dict]:
    """The recruiter's postings, newest first, with application counts."""
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {_JOB_COLUMNS}, COUNT(a.id) AS application_count
        FROM job_postings j
        JOIN recruiters r ON r.id = j.recruiter_id
        LEFT JOIN applications a ON a.job_id = j.id
        WHERE r.user_id = ?
        GROUP BY j.id
        ORDER BY j.created_at DESC, j.id DESC
        """,
        (user_id,),
    )
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_job(job_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {_JOB_COLUMNS}, r.user_id AS recruiter_user_id, r.company_name, r.logo_url
        FROM job_postings j
        JOIN recruiters r ON r.id = j.recruiter_id
        WHERE j.id = ?
        """,
        (job_id,),
    )
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def get_open_jobs(limit: Optional[int] = None) -> List[Dict]:
    """Active, unexpired postings, newest first."""
    conn = get_conn()
    cur = conn.cursor()
    sql = f"""
        SELECT {_JOB_COLUMNS}, r.company_name
        FROM job_postings j
        JOIN recruiters r ON r.id = j.recruiter_id
        WHERE j.status = 'active' AND j.expires_at > ?
        ORDER BY j.created_at DESC, j.id DESC
    """
    params: list = [now_iso()]
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))
    cur.execute(sql, params)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_all_jobs(limit: Optional[int] = None) -> List[Dict]:
    """Every posting regardless of status (admin view)."""
    conn = get_conn()
    cur = conn.cursor()
    sql = f"""
        SELECT {_JOB_COLUMNS}, r.company_name, COUNT(a.id) AS application_count
        FROM job_postings j
        JOIN recruiters r ON r.id = j.recruiter_id
        LEFT JOIN applications a ON a.job_id = j.id
        GROUP BY j.id, r.company_name
        ORDER BY j.created_at DESC, j.id DESC
    """
    if limit is not None:
        sql += " LIMIT ?"
        cur.execute(sql, (int(limit),))
    else:
        cur.execute(sql)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def _owner_clause(recruiter_user_id: Optional[int]):
    if recruiter_user_id is None:
        return "", []
    return " AND recruiter_id = (SELECT id FROM recruiters WHERE user_id = ?)", [recruiter_user_id]


def close_job(job_id: int, recruiter_user_id: Optional[int] = None) -> bool:
    """
    Mark a posting closed. With recruiter_user_id, only that recruiter's postings qualify.
    Returns whether a row changed.
    """
    clause, extra = _owner_clause(recruiter_user_id)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"UPDATE job_postings SET status = 'closed', updated_at = ? WHERE id = ?{clause}",
        [now_iso(), job_id] + extra,
    )
    changed = cur.rowcount > 0
    conn.commit()
    conn.close()
    return changed


def delete_job(job_id: int, recruiter_user_id: Optional[int] = None) -> bool:
    """Delete a posting and (via cascade) its applications."""
    clause, extra = _owner_clause(recruiter_user_id)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(f"DELETE FROM job_postings WHERE id = ?{clause}", [job_id] + extra)
    changed = cur.rowcount > 0
    conn.commit()
    conn.close()
    if changed:
        log.info("Deleted job %s", job_id)
    return changed


def expire_jobs() -> int:
    """Flip active postings past their expiry to 'expired'. Returns how many changed."""
    now = now_iso()
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        "UPDATE job_postings SET status = 'expired', updated_at = ? WHERE status = 'active' AND expires_at <= ?",
        (now, now),
    )
    count = cur.rowcount
    conn.commit()
    conn.close()
    return count


def get_stats() -> Dict:
    """Platform-wide counts for dashboards and /health."""
    conn = get_conn()
    cur = conn.cursor()
    stats: Dict = {}

    cur.execute("SELECT role, COUNT(*) AS count FROM users GROUP BY role")
    by_role = {row["role"]: int(row["count"]) for row in cur.fetchall()}
    stats["users"] = sum(by_role.values())
    for role in ("candidate", "recruiter", "admin"):
        stats[f"{role}s"] = by_role.get(role, 0)

    cur.execute("SELECT COUNT(*) AS count FROM users WHERE active = 1")
    stats["active_users"] = int(cur.fetchone()["count"])

    cur.execute("SELECT status, COUNT(*) AS count FROM job_postings GROUP BY status")
    by_status = {row["status"]: int(row["count"]) for row in cur.fetchall()}
    stats["jobs"] = sum(by_status.values())
    stats["active_jobs"] = by_status.get("active", 0)

    cur.execute("SELECT COUNT(*) AS count FROM applications")
    stats["applications"] = int(cur.fetchone()["count"])

    conn.close()
    return stats


__all__ = [
    "POST_DURATIONS",
    "DEFAULT_EXPIRY_DAYS",
    "EXPERIENCE_LEVELS",
    "JOB_STATUSES",
    "FIELD_LIMITS",
    "compute_expires_at",
    "validate_job_posting",
    "is_job_open",
    "job_location",
    "job_matches_filters",
    "filter_jobs",
    "post_job",
    "get_posted_jobs",
    "get_job",
    "get_open_jobs",
    "get_all_jobs",
    "close_job",
    "default_expiry_days",
    "delete_job",
    "expire_jobs",
    "get_stats",
]
