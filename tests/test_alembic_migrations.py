# tests/test_alembic_migrations.py
# PURPOSE: run the Alembic revisions against a temp SQLite file, legacy rows included.

import os

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _alembic_config(url):
    # No ini file: keeps alembic from reconfiguring the test run's logging
    cfg = Config()
    cfg.set_main_option("script_location", os.path.join(PROJECT_ROOT, "migrations"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_upgrade_head_adds_position_and_backfills_by_creation(tmp_path):
    url = f"sqlite:///{tmp_path / 'alembic.db'}"
    cfg = _alembic_config(url)

    command.upgrade(cfg, "0001_init_schema")
    engine = create_engine(url)
    with engine.begin() as conn:
        for tid, created in ((1, "2024-03-02"), (2, "2024-03-03"), (3, "2024-03-01")):
            conn.execute(
                text("INSERT INTO tasks (id, title, created_at, updated_at) VALUES (:id, :t, :c, :c)"),
                {"id": tid, "t": f"task {tid}", "c": f"{created} 08:00:00.000000"},
            )

    command.upgrade(cfg, "head")

    insp = inspect(engine)
    assert "position" in {col["name"] for col in insp.get_columns("tasks")}
    assert "ix_tasks_position_created" in {ix["name"] for ix in insp.get_indexes("tasks")}
    with engine.connect() as conn:
        rows = conn.execute(text("SELECT id, position FROM tasks ORDER BY position")).all()
        version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar()
    assert [(r.id, r.position) for r in rows] == [(3, 0), (1, 1), (2, 2)]
    assert version == "0002_task_position"
    engine.dispose()


def test_upgrade_head_on_empty_database(tmp_path):
    url = f"sqlite:///{tmp_path / 'fresh.db'}"
    command.upgrade(_alembic_config(url), "head")

    engine = create_engine(url)
    with engine.connect() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM tasks")).scalar() == 0
    engine.dispose()
