"""
Schema and migration helpers for Postgres.
"""
from __future__ import annotations

import logging
import os

from core.db.base import get_conn, now_iso
from core.db.settings import seed_default_settings
from core.db.users import create_user_with_profile, get_user_by_email, hash_password

log = logging.getLogger("db")

_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS users(
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'candidate',
        active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT,
        email_verified_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions(
        id TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL,
        last_seen_at TEXT NOT NULL,
        expires_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS password_reset_tokens(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        token TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        used_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS email_verification_tokens(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        token TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        used_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS candidates(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        name TEXT,
        surname TEXT,
        email TEXT,
        phone TEXT,
        age INTEGER,
        gender TEXT,
        location TEXT,
        education TEXT,
        experience TEXT,
        skills TEXT[] NOT NULL DEFAULT '{}',
        resume_url TEXT,
        license_type TEXT,
        license_number TEXT,
        id_passport TEXT,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS candidate_education(
        id SERIAL PRIMARY KEY,
        candidate_id INTEGER NOT NULL REFERENCES candidates(id) ON DELETE CASCADE,
        qualification_type TEXT NOT NULL,
        document_url TEXT,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS recruiters(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL DEFAULT '',
        company_name TEXT,
        industry TEXT,
        description TEXT,
        location TEXT,
        logo_url TEXT,
        created_at TEXT,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_postings(
        id SERIAL PRIMARY KEY,
        recruiter_id INTEGER NOT NULL REFERENCES recruiters(id) ON DELETE CASCADE,
        job_title TEXT NOT NULL,
        employer TEXT NOT NULL,
        website TEXT,
        address_line1 TEXT NOT NULL,
        address_line2 TEXT,
        city TEXT NOT NULL,
        state TEXT NOT NULL,
        zip_code TEXT NOT NULL,
        country TEXT NOT NULL,
        qualification TEXT NOT NULL,
        experience_level TEXT NOT NULL,
        notice_period TEXT,
        job_description TEXT NOT NULL,
        skills_required TEXT[] NOT NULL DEFAULT '{}',
        post_duration TEXT NOT NULL,
        expires_at TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS applications(
        id SERIAL PRIMARY KEY,
        job_id INTEGER NOT NULL REFERENCES job_postings(id) ON DELETE CASCADE,
        candidate_id INTEGER NOT NULL REFERENCES candidates(id) ON DELETE CASCADE,
        status TEXT NOT NULL DEFAULT 'applied',
        cover_letter TEXT,
        resume_url TEXT,
        applied_at TEXT NOT NULL,
        updated_at TEXT,
        UNIQUE(job_id, candidate_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS platform_settings(
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS deleted_users(
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL,
        email TEXT NOT NULL,
        role TEXT NOT NULL,
        created_at TEXT,
        deleted_at TEXT NOT NULL
    )
    """,
]

ALL_TABLES = [
    "applications",
    "job_postings",
    "candidate_education",
    "candidates",
    "recruiters",
    "email_verification_tokens",
    "password_reset_tokens",
    "sessions",
    "platform_settings",
    "deleted_users",
    "users",
]


def init_db() -> None:
    """Create every table if missing, then seed settings and the env admin."""
    conn = get_conn()
    cur = conn.cursor()
    for ddl in _TABLES:
        cur.execute(ddl)
    conn.commit()
    conn.close()

    seed_default_settings()
    ensure_admin_from_env()


def ensure_admin_from_env() -> None:
    """
    Optionally seed/update an admin account from environment variables.
    Set ADMIN_EMAIL and ADMIN_PASSWORD before startup to use.
    """
    admin_email = os.getenv("ADMIN_EMAIL")
    admin_password = os.getenv("ADMIN_PASSWORD")

    if not admin_email or not admin_password:
        return

    email = admin_email.strip().lower()
    existing = get_user_by_email(email)

    if existing:
        conn = get_conn()
        cur = conn.cursor()
        cur.execute(
            "UPDATE users SET role='admin', active=1, password_hash=? WHERE email=?",
            (hash_password(admin_password), email),
        )
        cur.execute(
            "UPDATE users SET email_verified_at = ? WHERE email = ? AND (email_verified_at IS NULL OR email_verified_at = '')",
            (now_iso(), email),
        )
        conn.commit()
        conn.close()
        return

    create_user_with_profile(email, admin_password, role="admin", verified=True)
    log.info("Seeded admin account from environment: %s", email)


__all__ = ["ALL_TABLES", "init_db", "ensure_admin_from_env"]
