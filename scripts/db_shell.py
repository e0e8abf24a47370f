"""
Quick helper to run a query against the job portal database (DATABASE_URL required).

Usage:
  DATABASE_URL=... python -m scripts.db_shell                                  # row counts per table
  DATABASE_URL=... python -m scripts.db_shell "SELECT id,email,role FROM users"  # run a custom query
"""
from __future__ import annotations

import sys

import psycopg
from dotenv import load_dotenv
from psycopg.rows import dict_row

from core.db.base import resolve_database_url
from core.db.schema import ALL_TABLES


def table_counts_query() -> str:
    return " UNION ALL ".join(
        f"SELECT '{table}' AS name, COUNT(*) AS rows FROM {table}" for table in ALL_TABLES
    )


def main() -> None:
    load_dotenv(override=True)
    try:
        database_url = resolve_database_url()
    except RuntimeError as exc:
        raise SystemExit(str(exc)) from exc

    query = " ".join(sys.argv[1:]).strip() or table_counts_query()
    print("Using DB: postgres (DATABASE_URL)", file=sys.stderr)

    try:
        with psycopg.connect(database_url, row_factory=dict_row) as conn:
            cur = conn.cursor()
            cur.execute(query)
            if cur.description is not None:
                for row in cur.fetchall():
                    print(dict(row))
            else:
                conn.commit()
                print(f"OK ({cur.rowcount} row(s) affected)")
    except psycopg.Error as exc:
        raise SystemExit(f"Error running query: {exc}") from exc


if __name__ == "__main__":
    main()
