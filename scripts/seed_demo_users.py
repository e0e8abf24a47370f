"""
Create (or check) the demo candidate, recruiter and admin accounts.

Usage:
  DATABASE_URL=... python -m scripts.seed_demo_users
"""
from __future__ import annotations

import sys

from dotenv import load_dotenv

from core.config import configure_logging
from core.database import init_db
from core.errors import RegistrationError
from core.registration import DEMO_PASSWORD, DEMO_USERS, ensure_demo_user


def main() -> int:
    load_dotenv(override=True)
    configure_logging()
    init_db()

    failures = 0
    for role in DEMO_USERS:
        try:
            user = ensure_demo_user(role)
        except RegistrationError as exc:
            print(f"{role}: {exc}", file=sys.stderr)
            failures += 1
            continue
        print(f"{role}: {user['email']} (id={user['id']})")

    print(f"Demo password: {DEMO_PASSWORD}")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
