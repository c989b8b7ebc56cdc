import sqlite3
from typing import Iterable

try:
    import psycopg2
    import psycopg2.extras
except ImportError:  # pragma: no cover - postgres driver is an optional extra
    psycopg2 = None

from flask import current_app, g


SCHEMA_TABLES = (
    "departments",
    "vendors",
    "requests",
    "rfqs",
    "purchase_orders",
)

_COLUMN_TYPES = {
    "sqlite": {"pk": "INTEGER PRIMARY KEY AUTOINCREMENT", "ts": "TEXT", "money": "NUMERIC"},
    "postgres": {"pk": "SERIAL PRIMARY KEY", "ts": "TIMESTAMP", "money": "NUMERIC(18, 2)"},
}

# Same layout as the alembic baseline revision; {pk}/{ts}/{money} vary per backend.
_SCHEMA_DDL = (
    """
    CREATE TABLE IF NOT EXISTS departments (
        id {pk},
        name TEXT NOT NULL UNIQUE,
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS vendors (
        id {pk},
        name_en TEXT NOT NULL UNIQUE,
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS requests (
        id {pk},
        number TEXT,
        department_id INTEGER REFERENCES departments(id),
        needed_by {ts},
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rfqs (
        id {pk},
        request_id INTEGER REFERENCES requests(id),
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS purchase_orders (
        id {pk},
        number TEXT,
        rfq_id INTEGER NOT NULL REFERENCES rfqs(id),
        vendor_id INTEGER REFERENCES vendors(id),
        priority TEXT NOT NULL DEFAULT 'Normal',
        status TEXT NOT NULL DEFAULT 'OPEN',
        total {money} NOT NULL DEFAULT 0,
        created_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at {ts} NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_purchase_orders_priority_created ON purchase_orders (priority, created_at)",
    "CREATE INDEX IF NOT EXISTS ix_purchase_orders_status ON purchase_orders (status)",
)


class Database:
    """Thin connection wrapper; SQL is always written with ``?`` placeholders."""

    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection

    def execute(self, sql: str, params: Iterable | None = None):
        if self.backend != "postgres":
            return self._conn.execute(sql, tuple(params or ()))
        cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        if params:
            cursor.execute(_qmark_to_pyformat(sql), list(params))
        else:
            cursor.execute(sql)
        return cursor

    def commit(self):
        self._conn.commit()

    def close(self):
        self._conn.close()


def _qmark_to_pyformat(sql: str) -> str:
    return sql.replace("?", "%s")


def driver_errors() -> tuple:
    """Exception classes raised by the installed database drivers."""
    if psycopg2 is None:
        return (sqlite3.Error,)
    return (sqlite3.Error, psycopg2.Error)


def connect(db_url: str) -> Database:
    if db_url.lower().startswith("postgres"):
        if psycopg2 is None:
            raise RuntimeError("psycopg2 is not installed; install the 'postgres' extra.")
        conn = psycopg2.connect(db_url)
        conn.autocommit = True
        return Database("postgres", conn)

    conn = sqlite3.connect(db_url)
    conn.row_factory = sqlite3.Row
    return Database("sqlite", conn)


def get_db() -> Database:
    if "db" not in g:
        g.db = connect(current_app.config["DB_PATH"])
    return g.db


def get_read_db() -> Database:
    """Connection for dashboard reads; uses DATABASE_READ_URL when a replica is configured."""
    if "db_read" not in g:
        g.db_read = connect(current_app.config.get("DATABASE_READ_URL") or current_app.config["DB_PATH"])
    return g.db_read


def close_db(_error=None):
    for key in ("db", "db_read"):
        conn = g.pop(key, None)
        if conn is not None:
            conn.close()


def init_db():
    db = get_db()
    column_types = _COLUMN_TYPES[db.backend]
    for statement in _SCHEMA_DDL:
        db.execute(statement.format(**column_types))
    db.commit()
