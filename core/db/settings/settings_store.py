"""
Admin-editable platform settings, stored as JSON values keyed by name.
"""
from __future__ import annotations

import json
from typing import Any, Dict

from core.db.base import get_conn, now_iso
from core.errors import SettingsError

DEFAULT_SETTINGS: Dict[str, Any] = {
    "site_name": "Job Portal",
    "site_description": "Connecting candidates and recruiters.",
    "max_applications_per_job": 100,
    "default_job_expiry_days": 30,
    "allow_registrations": True,
    "require_email_verification": False,
    "maintenance_mode": False,
    "notify_new_user": True,
    "notify_new_job": False,
    "notify_new_application": True,
    "notify_status_update": True,
    "notify_system_alerts": True,
    "session_timeout_minutes": 30,
    "password_min_length": 8,
    "allowed_email_domains": [],
}

NOTIFICATION_KEYS = [
    "notify_new_user",
    "notify_new_job",
    "notify_new_application",
    "notify_status_update",
    "notify_system_alerts",
]

# Lower bounds for the integer settings.
_INT_MINIMUMS = {
    "max_applications_per_job": 1,
    "default_job_expiry_days": 1,
    "session_timeout_minutes": 5,
    "password_min_length": 8,
}


def coerce_setting(key: str, raw: Any) -> Any:
    """
    Convert a submitted value to the type of the key's default.
    Raises SettingsError for unknown keys or values that cannot be converted.
    """
    if key not in DEFAULT_SETTINGS:
        raise SettingsError(f"Unknown setting: {key}")
    default = DEFAULT_SETTINGS[key]

    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        return str(raw or "").strip().lower() in ("1", "true", "yes", "on")

    if isinstance(default, int):
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            raise SettingsError(f"{key} must be a whole number")
        minimum = _INT_MINIMUMS.get(key, 0)
        if value < minimum:
            raise SettingsError(f"{key} must be at least {minimum}")
        return value

    if isinstance(default, list):
        if isinstance(raw, list):
            items = raw
        else:
            items = str(raw or "").replace(",", "\n").splitlines()
        cleaned = [i.strip().lower().lstrip("@") for i in items if i and i.strip()]
        return list(dict.fromkeys(cleaned))

    return str(raw or "").strip()


def seed_default_settings() -> None:
    """Insert any missing default settings (idempotent)."""
    conn = get_conn()
    cur = conn.cursor()
    now = now_iso()
    for key, value in DEFAULT_SETTINGS.items():
        cur.execute(
            """
            INSERT INTO platform_settings (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT (key) DO NOTHING
            """,
            (key, json.dumps(value), now),
        )
    conn.commit()
    conn.close()


def get_all_settings() -> Dict[str, Any]:
    """Return every setting, falling back to defaults for missing or corrupt rows."""
    settings = dict(DEFAULT_SETTINGS)
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("SELECT key, value FROM platform_settings")
    rows = cur.fetchall()
    conn.close()

    for row in rows:
        key = row["key"]
        if key not in DEFAULT_SETTINGS:
            continue
        try:
            settings[key] = json.loads(row["value"])
        except ValueError:
            continue
    return settings


def get_setting(key: str) -> Any:
    if key not in DEFAULT_SETTINGS:
        raise SettingsError(f"Unknown setting: {key}")
    conn = get_conn()
    cur = conn.cursor()
    cur.execute("SELECT value FROM platform_settings WHERE key = ?", (key,))
    row = cur.fetchone()
    conn.close()
    if not row:
        return DEFAULT_SETTINGS[key]
    try:
        return json.loads(row["value"])
    except ValueError:
        return DEFAULT_SETTINGS[key]


def update_settings(updates: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and persist a batch of settings. Nothing is written if any value is invalid.
    Returns the coerced values that were stored.
    """
    coerced = {key: coerce_setting(key, value) for key, value in updates.items()}

    conn = get_conn()
    cur = conn.cursor()
    now = now_iso()
    for key, value in coerced.items():
        cur.execute(
            """
            INSERT INTO platform_settings (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value, updated_at = EXCLUDED.updated_at
            """,
            (key, json.dumps(value), now),
        )
    conn.commit()
    conn.close()
    return coerced


__all__ = [
    "DEFAULT_SETTINGS",
    "NOTIFICATION_KEYS",
    "coerce_setting",
    "get_all_settings",
    "get_setting",
    "seed_default_settings",
    "update_settings",
]
