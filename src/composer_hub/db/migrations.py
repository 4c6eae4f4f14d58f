"""Helpers to apply Alembic migrations programmatically."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from .session import DATABASE_URL

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def upgrade_database() -> None:
    """Run Alembic migrations up to the latest revision."""

    alembic_cfg = Config()
    # Prevent Alembic from overriding the application's logging configuration.
    alembic_cfg.attributes["configure_logger"] = False
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))
    command.upgrade(alembic_cfg, "head")


__all__ = ["upgrade_database"]
