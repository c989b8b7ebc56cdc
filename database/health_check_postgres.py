from __future__ import annotations

import os
import sys

import psycopg2


DASHBOARD_TABLES = ("departments", "vendors", "requests", "rfqs", "purchase_orders")


def main() -> None:
    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        raise RuntimeError("Set DATABASE_URL to the Postgres instance.")

    conn = psycopg2.connect(db_url)
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
            cur.execute(
                """
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public'
                ORDER BY table_name
                """
            )
            tables = {row[0] for row in cur.fetchall()}
            missing = [name for name in DASHBOARD_TABLES if name not in tables]
            if missing:
                raise RuntimeError(f"Missing dashboard tables: {', '.join(missing)}")
            cur.execute("SELECT COUNT(*) FROM purchase_orders")
            (orders,) = cur.fetchone()
            print(f"Postgres OK. {orders} purchase orders.")
    finally:
        conn.close()


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:
        print(f"Health check failed: {exc}")
        sys.exit(1)
