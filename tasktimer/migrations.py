# PURPOSE: idempotent schema step executed once at startup (after metadata.create_all).
# - ensure tasks.position exists; older databases were created without it
# - backfill NULL positions in creation order so every ordered read sees a total order
# Safe to call multiple times. Alembic revisions under migrations/ cover managed deployments.

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .store_db import backfill_positions

logger = logging.getLogger(__name__)


def _table_exists(engine: Engine, table: str) -> bool:
    return inspect(engine).has_table(table)


def _column_exists(engine: Engine, table: str, column: str) -> bool:
    """Return True if `column` exists in `table`."""
    return any(col["name"] == column for col in inspect(engine).get_columns(table))


def _index_exists(engine: Engine, table: str, index: str) -> bool:
    return any(ix["name"] == index for ix in inspect(engine).get_indexes(table))


def run_startup_migrations(engine: Engine) -> None:
    """Run lightweight, idempotent migrations on app startup."""
    # If tasks table doesn't exist yet, metadata.create_all will build the current shape
    if not _table_exists(engine, "tasks"):
        return

    # 1) tasks.position (nullable; legacy rows are filled below)
    if not _column_exists(engine, "tasks", "position"):
        with engine.begin() as conn:
            conn.execute(text("ALTER TABLE tasks ADD COLUMN position INTEGER"))
        logger.info("migration applied column=tasks.position")

    if not _index_exists(engine, "tasks", "ix_tasks_position_created"):
        with engine.begin() as conn:
            conn.execute(
                text("CREATE INDEX ix_tasks_position_created ON tasks (position, created_at)")
            )

    # 2) one-time backfill of positions
    with Session(bind=engine) as db:
        backfill_positions(db)
