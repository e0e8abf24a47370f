"""
Job posting storage re-exports.
"""
from core.db.jobs.jobs_store import (
    DEFAULT_EXPIRY_DAYS,
    EXPERIENCE_LEVELS,
    FIELD_LIMITS,
    JOB_STATUSES,
    POST_DURATIONS,
    close_job,
    compute_expires_at,
    default_expiry_days,
    delete_job,
    expire_jobs,
    filter_jobs,
    get_all_jobs,
    get_job,
    get_open_jobs,
    get_posted_jobs,
    get_stats,
    is_job_open,
    job_location,
    job_matches_filters,
    post_job,
    validate_job_posting,
)

__all__ = [
    "DEFAULT_EXPIRY_DAYS",
    "EXPERIENCE_LEVELS",
    "FIELD_LIMITS",
    "JOB_STATUSES",
    "POST_DURATIONS",
    "close_job",
    "compute_expires_at",
    "default_expiry_days",
    "delete_job",
    "expire_jobs",
    "filter_jobs",
    "get_all_jobs",
    "get_job",
    "get_open_jobs",
    "get_posted_jobs",
    "get_stats",
    "is_job_open",
    "job_location",
    "job_matches_filters",
    "post_job",
    "validate_job_posting",
]
