"""
Environment-driven configuration.

Values are read on access so a restarted process (or a monkeypatched test)
always sees the current environment.
"""
from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _env_bool(name: str, default: str = "") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def secure_cookies() -> bool:
    return _env_bool("COOKIE_SECURE") or os.getenv("PUBLIC_BASE_URL", "").lower().startswith("https://")


def public_base_url() -> str | None:
    return os.getenv("PUBLIC_BASE_URL") or None


def upload_dir() -> str:
    return os.getenv("UPLOAD_DIR", "uploads")


def max_upload_bytes() -> int:
    return _env_int("MAX_UPLOAD_MB", 5) * 1024 * 1024


def demo_login_enabled() -> bool:
    return _env_bool("DEMO_LOGIN_ENABLED", "true")


def expiry_check_interval() -> int:
    return _env_int("EXPIRY_CHECK_INTERVAL", 300)


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format=LOG_FORMAT,
    )


__all__ = [
    "LOG_FORMAT",
    "configure_logging",
    "demo_login_enabled",
    "expiry_check_interval",
    "max_upload_bytes",
    "public_base_url",
    "secure_cookies",
    "upload_dir",
]
