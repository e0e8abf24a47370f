"""
Application storage re-exports.
"""
from core.db.applications.applications_store import (
    APPLICATION_STATUSES,
    application_matches,
    application_stats,
    apply_to_job,
    can_change_status,
    filter_applications,
    get_all_applications,
    get_application,
    get_candidate_applications,
    get_recruiter_applications,
    is_resume_referenced,
    job_resume_urls,
    status_label,
    update_application_status,
)

__all__ = [
    "APPLICATION_STATUSES",
    "application_matches",
    "application_stats",
    "apply_to_job",
    "can_change_status",
    "filter_applications",
    "get_all_applications",
    "get_application",
    "get_candidate_applications",
    "get_recruiter_applications",
    "is_resume_referenced",
    "job_resume_urls",
    "status_label",
    "update_application_status",
]
