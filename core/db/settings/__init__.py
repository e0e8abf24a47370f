"""
Platform settings re-exports.
"""
from core.db.settings.settings_store import (
    DEFAULT_SETTINGS,
    NOTIFICATION_KEYS,
    coerce_setting,
    get_all_settings,
    get_setting,
    seed_default_settings,
    update_settings,
)

__all__ = [
    "DEFAULT_SETTINGS",
    "NOTIFICATION_KEYS",
    "coerce_setting",
    "get_all_settings",
    "get_setting",
    "seed_default_settings",
    "update_settings",
]
