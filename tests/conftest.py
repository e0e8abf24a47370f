import os

import pytest

import app.api as api_module
from app import security


@pytest.fixture(autouse=True)
def _app_state(monkeypatch):
    # Route tests run without a database; maintenance mode reads platform_settings
    monkeypatch.setattr(api_module, "maintenance_enabled", lambda: False)
    security.reset_rate_limits()
    yield
    security.reset_rate_limits()


@pytest.fixture
def db():
    """Clean Postgres schema; skipped unless DATABASE_URL is set."""
    if not os.getenv("DATABASE_URL"):
        pytest.skip("DATABASE_URL must be set for Postgres-backed tests.")

    from core.db.base import get_conn
    from core.db.schema import ALL_TABLES, init_db
    from core.db.settings import seed_default_settings

    def _truncate_all():
        conn = get_conn()
        cur = conn.cursor()
        cur.execute("TRUNCATE " + ", ".join(ALL_TABLES) + " RESTART IDENTITY CASCADE")
        conn.commit()
        conn.close()

    init_db()
    _truncate_all()
    seed_default_settings()
    yield
    _truncate_all()
