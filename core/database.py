"""
Single import point for the storage layer used by routes, the worker and scripts.
"""
from core.db.applications import *  # noqa: F401,F403
from core.db.applications import __all__ as _applications_all
from core.db.base import get_conn, now_iso
from core.db.jobs import *  # noqa: F401,F403
from core.db.jobs import __all__ as _jobs_all
from core.db.profiles import *  # noqa: F401,F403
from core.db.profiles import __all__ as _profiles_all
from core.db.schema import ALL_TABLES, ensure_admin_from_env, init_db
from core.db.settings import *  # noqa: F401,F403
from core.db.settings import __all__ as _settings_all
from core.db.users import *  # noqa: F401,F403
from core.db.users import __all__ as _users_all

__all__ = (
    ["get_conn", "now_iso", "ALL_TABLES", "ensure_admin_from_env", "init_db"]
    + list(_applications_all)
    + list(_jobs_all)
    + list(_profiles_all)
    + list(_settings_all)
    + list(_users_all)
)
