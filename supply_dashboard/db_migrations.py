"""Alembic wiring for the Flask CLI: ``flask db upgrade|downgrade|current`` and ``flask seed-demo``."""

from __future__ import annotations

from pathlib import Path

import click
from alembic import command
from alembic.config import Config as AlembicConfig
from flask import Flask

from supply_dashboard.ui_strings import success_message


PROJECT_ROOT = Path(__file__).resolve().parents[1]


def to_sqlalchemy_url(raw_db_path: str | None) -> str:
    raw = (raw_db_path or "").strip()
    if not raw:
        raise RuntimeError("DB_PATH is not set; nothing to migrate.")
    if raw.startswith("postgres://"):
        # SQLAlchemy only accepts the postgresql:// scheme.
        return "postgresql://" + raw[len("postgres://") :]
    if "://" in raw:
        return raw
    return f"sqlite:///{Path(raw).expanduser().resolve().as_posix()}"


def build_alembic_config(app: Flask) -> AlembicConfig:
    alembic_ini = PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise RuntimeError(f"alembic.ini not found in {PROJECT_ROOT}.")

    cfg = AlembicConfig(str(alembic_ini))
    cfg.set_main_option("script_location", (PROJECT_ROOT / "migrations").as_posix())
    cfg.set_main_option("sqlalchemy.url", to_sqlalchemy_url(app.config.get("DB_PATH")))
    return cfg


def register_db_cli(app: Flask) -> None:
    @app.cli.group("db")
    def db_group() -> None:
        """Dashboard schema migrations."""

    @db_group.command("upgrade")
    @click.argument("revision", required=False, default="head")
    def db_upgrade(revision: str) -> None:
        command.upgrade(build_alembic_config(app), revision)
        click.echo(f"Schema upgraded to {revision}.")

    @db_group.command("downgrade")
    @click.argument("revision", required=False, default="-1")
    def db_downgrade(revision: str) -> None:
        command.downgrade(build_alembic_config(app), revision)
        click.echo(f"Schema downgraded to {revision}.")

    @db_group.command("current")
    def db_current() -> None:
        command.current(build_alembic_config(app), verbose=True)

    @app.cli.command("seed-demo")
    def seed_demo() -> None:
        """Create the schema if missing and load demo purchase orders."""
        from supply_dashboard.db import get_db, init_db
        from supply_dashboard.demo_data import seed_demo_data

        init_db()
        counts = seed_demo_data(get_db())
        click.echo(f"{success_message('demo_seeded')} {counts}")
