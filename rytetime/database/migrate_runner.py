"""Database migration runner.

Runs `alembic upgrade head`. When the upgrade fails because the tables
already exist (created earlier by `create_all()`), the schema is checked
against what the runtime needs and, if it matches, Alembic is stamped at
head instead.

Usage: python -m rytetime.database.migrate_runner
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Dict, List, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from rytetime.database.database import DATABASE_URL, build_engine

logger = logging.getLogger(__name__)

# Tables and the columns the runtime reads from them.
REQUIRED_SCHEMA: Dict[str, List[str]] = {
    "users": ["id", "email", "phone", "push_token", "timezone"],
    "tasks": ["id", "user_id", "origin_datetime", "origin_timezone", "local_datetime", "local_timezone", "version"],
    "reminders": ["id", "task_id", "notify_offset_minutes", "notify_type", "scheduled_at", "sent", "sent_at"],
}


def _alembic_cfg(database_url: str) -> Config:
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def missing_requirements(engine) -> List[str]:
    """List schema elements required by the runtime that the database lacks."""
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    missing: List[str] = []
    for table, columns in REQUIRED_SCHEMA.items():
        if table not in tables:
            missing.append(f"missing table: {table}")
            continue
        present = {col["name"] for col in inspector.get_columns(table)}
        for column in columns:
            if column not in present:
                missing.append(f"missing column: {table}.{column}")
    return missing


def run_migrations_to_head(database_url: Optional[str] = None) -> None:
    database_url = database_url or DATABASE_URL
    cfg = _alembic_cfg(database_url)
    try:
        command.upgrade(cfg, "head")
        return
    except SQLAlchemyError as e:
        msg = str(e).lower()
        if "already exists" not in msg and "duplicate" not in msg:
            raise

        engine = build_engine(database_url)
        try:
            missing = missing_requirements(engine)
        finally:
            engine.dispose()
        if missing:
            raise RuntimeError(
                "Alembic upgrade failed and schema is not at expected baseline; refusing to stamp head. "
                + "; ".join(missing)
            ) from e

        logger.warning("Schema already present; stamping Alembic head")
        command.stamp(cfg, "head")


def main() -> int:
    logging.basicConfig(level=logging.INFO)
    run_migrations_to_head()
    return 0


if __name__ == "__main__":
    sys.exit(main())
