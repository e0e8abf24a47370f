"""
Candidate and recruiter profile re-exports.
"""
from core.db.profiles.candidates import (
    QUALIFICATION_TYPES,
    add_education_record,
    delete_education_record,
    get_candidate_profile,
    get_education_records,
    normalize_skills,
    profile_completeness,
    update_candidate_profile,
)
from core.db.profiles.recruiters import (
    get_or_create_recruiter_profile,
    get_recruiter_profile,
    update_recruiter_profile,
)

__all__ = [
    "QUALIFICATION_TYPES",
    "add_education_record",
    "delete_education_record",
    "get_candidate_profile",
    "get_education_records",
    "normalize_skills",
    "profile_completeness",
    "update_candidate_profile",
    "get_or_create_recruiter_profile",
    "get_recruiter_profile",
    "update_recruiter_profile",
]
