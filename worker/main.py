import asyncio
import logging
import os

from dotenv import load_dotenv

from app.email_utils import notify_system_alert
from core.config import configure_logging, expiry_check_interval
from core.database import DEFAULT_SETTINGS, expire_jobs, get_all_settings, init_db

# Load `.env` for local/dev runs (override=True so updates take effect after restart).
load_dotenv(override=True)
configure_logging()

log = logging.getLogger("worker")


def run_once_only() -> bool:
    """WORKER_RUN_ONCE=true makes the worker do a single pass and exit (cron style)."""
    return os.getenv("WORKER_RUN_ONCE", "false").lower() == "true"


async def run_once() -> int:
    """
    One pass: mark active postings past their expiry as expired.
    Returns the number of postings changed.
    """
    log.info("Checking for expired job postings...")
    expired = await asyncio.to_thread(expire_jobs)
    if expired:
        log.info("Expired %s job posting(s)", expired)
    else:
        log.info("No postings expired this cycle.")
    return expired


def _alert_settings() -> dict:
    """Settings for the failure alert; defaults when the database is unreachable too."""
    try:
        return get_all_settings()
    except Exception as e:
        log.warning("Could not read settings for the alert, using defaults: %s", e)
        return dict(DEFAULT_SETTINGS)


async def main():
    init_db()
    interval = expiry_check_interval()
    while True:
        try:
            await run_once()
        except Exception as e:
            log.exception("Error during run: %s", e)
            notify_system_alert(
                os.getenv("ADMIN_EMAIL"),
                "Job expiry worker error",
                f"The job expiry worker failed: {e}",
                await asyncio.to_thread(_alert_settings),
            )
        if run_once_only():
            break
        log.info("Sleeping %s seconds", interval)
        await asyncio.sleep(interval)


if __name__ == "__main__":
    asyncio.run(main())
