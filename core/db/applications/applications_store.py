"""
Job application storage, status workflow and reporting helpers.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from core.db.base import get_conn, now_iso
from core.db.jobs.jobs_store import is_job_open
from core.db.settings import get_setting
from core.errors import ApplicationError

log = logging.getLogger("db.applications")

APPLICATION_STATUSES = ("applied", "under_review", "shortlisted", "rejected", "hired")

_APPLICATION_COLUMNS = """
    a.id, a.job_id, a.candidate_id, a.status, a.cover_letter, a.resume_url, a.applied_at, a.updated_at,
    j.job_title, j.employer, j.city, j.state, j.country, j.status AS job_status
"""
_CANDIDATE_COLUMNS = """
    c.user_id AS candidate_user_id, c.name AS candidate_name, c.surname AS candidate_surname,
    c.email AS candidate_email, c.skills AS candidate_skills, c.experience AS candidate_experience
"""


def status_label(status: str) -> str:
    return (status or "").replace("_", " ").capitalize()


def apply_to_job(user_id: int, job_id: int, resume_url: str, cover_letter: str | None = None) -> int:
    """
    Record a candidate's application; returns the new application id.

    The job must be open, the candidate may apply once per job, and the job must
    be below the max_applications_per_job setting. The resume becomes the
    candidate's current resume_url.
    """
    if not resume_url:
        raise ApplicationError("Please upload a resume.")

    try:
        max_per_job = int(get_setting("max_applications_per_job"))
    except (TypeError, ValueError):
        max_per_job = 0

    conn = get_conn()
    cur = conn.cursor()
    try:
        cur.execute("SELECT id FROM candidates WHERE user_id = ?", (user_id,))
        row = cur.fetchone()
        if not row:
            raise ApplicationError("Profile not found. Please complete your profile first.")
        candidate_id = int(row["id"])

        # Row lock serialises concurrent applies so the per-job cap holds
        cur.execute("SELECT id, status, expires_at FROM job_postings WHERE id = ? FOR UPDATE", (job_id,))
        job = cur.fetchone()
        if not job or not is_job_open(dict(job)):
            raise ApplicationError("This job is no longer accepting applications.")

        cur.execute(
            "SELECT id FROM applications WHERE job_id = ? AND candidate_id = ?",
            (job_id, candidate_id),
        )
        if cur.fetchone():
            raise ApplicationError("You have already applied to this job.")

        cur.execute("SELECT COUNT(*) AS count FROM applications WHERE job_id = ?", (job_id,))
        if max_per_job and int(cur.fetchone()["count"]) >= max_per_job:
            raise ApplicationError("This job has reached its application limit.")

        now = now_iso()
        cur.execute(
            """
            INSERT INTO applications (job_id, candidate_id, status, cover_letter, resume_url, applied_at, updated_at)
            VALUES (?, ?, 'applied', ?, ?, ?, ?)
            ON CONFLICT (job_id, candidate_id) DO NOTHING
            RETURNING id
            """,
            (job_id, candidate_id, (cover_letter or "").strip() or None, resume_url, now, now),
        )
        inserted = cur.fetchone()
        if not inserted:
            raise ApplicationError("You have already applied to this job.")
        application_id = int(inserted["id"])

        cur.execute(
            "UPDATE candidates SET resume_url = ?, updated_at = ? WHERE id = ? AND resume_url IS DISTINCT FROM ?",
            (resume_url, now, candidate_id, resume_url),
        )
        conn.commit()
    finally:
        conn.close()

    log.info("Candidate %s applied to job %s (application %s)", candidate_id, job_id, application_id)
    return application_id


def get_candidate_applications(user_id: int, status: str = "all") -> List[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {_APPLICATION_COLUMNS}
        FROM applications a
        JOIN job_postings j ON j.id = a.job_id
        JOIN candidates c ON c.id = a.candidate_id
        WHERE c.user_id = ?
        ORDER BY a.applied_at DESC, a.id DESC
        """,
        (user_id,),
    )
    rows = [dict(r) for r in cur.fetchall()]
    conn.close()
    return filter_applications(rows, status=status)


def get_recruiter_applications(user_id: int, job_id: Optional[int] = None) -> List[Dict]:
    """Applications to postings owned by the recruiter, optionally for one posting."""
    sql = f"""
        SELECT {_APPLICATION_COLUMNS}, {_CANDIDATE_COLUMNS}
        FROM applications a
        JOIN job_postings j ON j.id = a.job_id
        JOIN recruiters r ON r.id = j.recruiter_id
        JOIN candidates c ON c.id = a.candidate_id
        WHERE r.user_id = ?
    """
    params: list = [user_id]
    if job_id is not None:
        sql += " AND j.id = ?"
        params.append(job_id)
    sql += " ORDER BY a.applied_at DESC, a.id DESC"

    conn = get_conn()
    cur = conn.cursor()
    cur.execute(sql, params)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_all_applications(limit: Optional[int] = None) -> List[Dict]:
    sql = f"""
        SELECT {_APPLICATION_COLUMNS}, {_CANDIDATE_COLUMNS}
        FROM applications a
        JOIN job_postings j ON j.id = a.job_id
        JOIN candidates c ON c.id = a.candidate_id
        ORDER BY a.applied_at DESC, a.id DESC
    """
    conn = get_conn()
    cur = conn.cursor()
    if limit is not None:
        cur.execute(sql + " LIMIT ?", (int(limit),))
    else:
        cur.execute(sql)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def get_application(application_id: int) -> Optional[Dict]:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        f"""
        SELECT {_APPLICATION_COLUMNS}, {_CANDIDATE_COLUMNS}, r.user_id AS recruiter_user_id
        FROM applications a
        JOIN job_postings j ON j.id = a.job_id
        JOIN recruiters r ON r.id = j.recruiter_id
        JOIN candidates c ON c.id = a.candidate_id
        WHERE a.id = ?
        """,
        (application_id,),
    )
    row = cur.fetchone()
    conn.close()
    return dict(row) if row else None


def is_resume_referenced(resume_url: str) -> bool:
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("SELECT 1 FROM applications WHERE resume_url = ? LIMIT 1", (resume_url,))
    row = cur.fetchone()
    conn.close()
    return row is not None


def job_resume_urls(job_id: int) -> List[str]:
    """
    Resumes sent to a posting that nothing else points at once the posting is gone:
    not the candidate's current resume and not used by another application.
    """
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        """
        SELECT DISTINCT a.resume_url
        FROM applications a
        JOIN candidates c ON c.id = a.candidate_id
        WHERE a.job_id = ?
          AND a.resume_url IS NOT NULL
          AND a.resume_url IS DISTINCT FROM c.resume_url
          AND NOT EXISTS (
              SELECT 1 FROM applications o WHERE o.resume_url = a.resume_url AND o.job_id <> a.job_id
          )
        """,
        (job_id,),
    )
    rows = cur.fetchall()
    conn.close()
    return [r["resume_url"] for r in rows]


def can_change_status(actor: Dict, application: Dict) -> bool:
    """Admins may change any application; recruiters only those on their postings."""
    role = actor.get("role")
    if role == "admin":
        return True
    return role == "recruiter" and application.get("recruiter_user_id") == actor.get("id")


def update_application_status(actor: Dict, application_id: int, status: str) -> Dict:
    """Change an application's status on behalf of actor; returns the updated row."""
    if status not in APPLICATION_STATUSES:
        raise ApplicationError(f"Unknown status: {status}")

    application = get_application(application_id)
    if not application or not can_change_status(actor, application):
        raise ApplicationError("Application not found.")

    if application["status"] == status:
        return application

    now = now_iso()
    conn = get_conn()
    cur = conn.cursor()
    cur.execute(
        "UPDATE applications SET status = ?, updated_at = ? WHERE id = ?",
        (status, now, application_id),
    )
    conn.commit()
    conn.close()

    log.info("Application %s: %s -> %s by user %s", application_id, application["status"], status, actor.get("id"))
    application.update({"previous_status": application["status"], "status": status, "updated_at": now})
    return application


def application_matches(application: Dict, search: str = "", status: str = "all") -> bool:
    status = (status or "all").strip().lower()
    if status != "all" and application.get("status") != status:
        return False

    search = (search or "").strip().lower()
    if search:
        haystack = " ".join(
            str(application.get(k) or "")
            for k in ("candidate_name", "candidate_surname", "candidate_email", "job_title", "employer")
        ).lower()
        if search not in haystack:
            return False
    return True


def filter_applications(applications: Iterable[Dict], search: str = "", status: str = "all") -> List[Dict]:
    return [a for a in applications if application_matches(a, search, status)]


def application_stats(applications: Iterable[Dict]) -> Dict:
    """Totals per status plus the hire rate as a rounded percentage."""
    applications = list(applications)
    counts = {s: 0 for s in APPLICATION_STATUSES}
    for a in applications:
        status = a.get("status")
        if status in counts:
            counts[status] += 1
    total = len(applications)
    return {
        "total": total,
        "by_status": counts,
        "under_review": counts["under_review"],
        "hired": counts["hired"],
        "hire_rate": round(counts["hired"] * 100 / total) if total else 0,
    }


__all__ = [
    "APPLICATION_STATUSES",
    "status_label",
    "apply_to_job",
    "get_candidate_applications",
    "get_recruiter_applications",
    "get_all_applications",
    "get_application",
    "is_resume_referenced",
    "job_resume_urls",
    "can_change_status",
    "update_application_status",
    "application_matches",
    "filter_applications",
    "application_stats",
]
