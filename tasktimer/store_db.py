# PURPOSE: the ordering store. SQLAlchemy session functions over TaskDB.
# Canonical order is (position ASC, created_at ASC, id ASC); every list read uses it.
# Multi-row position writes run in one transaction and roll back as a unit.

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db_models import TaskDB, now_utc
from .exceptions import InvalidInput, TransactionFailure
from .models import NON_NULLABLE_UPDATE_FIELDS

logger = logging.getLogger(__name__)


# --- Session dependency ----------------------------------------------------


def get_db():
    """Yield a SQLAlchemy session (used as a FastAPI dependency)."""
    from .db import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Helpers ---------------------------------------------------------------


def _apply_canonical_order(query):
    """Order by (position, created_at) with id as the last deterministic key."""
    return query.order_by(TaskDB.position.asc(), TaskDB.created_at.asc(), TaskDB.id.asc())


def _before(task: TaskDB):
    """SQL condition: row sorts strictly before `task` in canonical order."""
    return or_(
        TaskDB.position < task.position,
        and_(
            TaskDB.position == task.position,
            or_(
                TaskDB.created_at < task.created_at,
                and_(TaskDB.created_at == task.created_at, TaskDB.id < task.id),
            ),
        ),
    )


def _after(task: TaskDB):
    """SQL condition: row sorts strictly after `task` in canonical order."""
    return or_(
        TaskDB.position > task.position,
        and_(
            TaskDB.position == task.position,
            or_(
                TaskDB.created_at > task.created_at,
                and_(TaskDB.created_at == task.created_at, TaskDB.id > task.id),
            ),
        ),
    )


def _commit_or_fail(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("transaction failed action=%s error=%s", action, exc)
        raise TransactionFailure() from exc


# --- Reads -----------------------------------------------------------------


def list_tasks(db: Session) -> List[TaskDB]:
    """Return every task in canonical order."""
    return _apply_canonical_order(db.query(TaskDB)).all()


def get_task(db: Session, task_id: int) -> Optional[TaskDB]:
    return db.query(TaskDB).filter(TaskDB.id == task_id).one_or_none()


def next_insert_position(db: Session) -> int:
    """Return max(position) + 1, or 0 for an empty table."""
    current = db.query(func.max(TaskDB.position)).scalar()
    return 0 if current is None else int(current) + 1


def count_at_positions(db: Session, positions) -> int:
    """Number of rows whose position is one of `positions`."""
    return db.query(func.count(TaskDB.id)).filter(TaskDB.position.in_(list(positions))).scalar()


def find_neighbor(db: Session, task: TaskDB, direction: str) -> Optional[TaskDB]:
    """Return the immediate predecessor ("up") or successor ("down") of `task`.

    Comparison is lexicographic on (position, created_at, id), so rows sharing
    a position value still yield a single well-defined neighbor.
    """
    query = db.query(TaskDB).filter(TaskDB.id != task.id)
    if direction == "up":
        query = query.filter(_before(task)).order_by(
            TaskDB.position.desc(), TaskDB.created_at.desc(), TaskDB.id.desc()
        )
    else:
        query = _apply_canonical_order(query.filter(_after(task)))
    return query.first()


# --- CRUD: Tasks -----------------------------------------------------------


def create_task(db: Session, data) -> TaskDB:
    """Create a task at the end of the list."""
    now = now_utc()
    row = TaskDB(
        title=data.title,
        timer_enabled=data.timer_enabled,
        hours=data.hours,
        minutes=data.minutes,
        seconds=data.seconds,
        position=next_insert_position(db),
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    _commit_or_fail(db, "create")
    db.refresh(row)
    logger.info("task created id=%s position=%s", row.id, row.position)
    return row


def update_task(db: Session, task_id: int, data) -> Optional[TaskDB]:
    """Partial update. Returns updated row or None if not found.

    Only fields explicitly present in `data` are touched; an explicit null on
    a non-nullable field raises InvalidInput.
    """
    changes = data.provided()
    for field in NON_NULLABLE_UPDATE_FIELDS:
        if field in changes and changes[field] is None:
            raise InvalidInput(f"Field '{field}' cannot be null")

    row = get_task(db, task_id)
    if not row:
        return None
    for field, value in changes.items():
        setattr(row, field, value)
    row.updated_at = now_utc()
    db.add(row)
    _commit_or_fail(db, "update")
    db.refresh(row)
    return row


def delete_task(db: Session, task_id: int) -> bool:
    """Delete a task; returns True if deleted, False if not found.

    Positions of the remaining rows are left alone; gaps are fine.
    """
    row = get_task(db, task_id)
    if not row:
        return False
    db.delete(row)
    _commit_or_fail(db, "delete")
    logger.info("task deleted id=%s", task_id)
    return True


# --- Position writes ---------------------------------------------------------


def swap_positions(
    db: Session,
    task_a: TaskDB,
    position_a: int,
    task_b: TaskDB,
    position_b: int,
) -> None:
    """Give A the old position of B and B the old position of A, atomically."""
    now = now_utc()
    try:
        task_a.position = position_b
        task_a.updated_at = now
        task_b.position = position_a
        task_b.updated_at = now
        db.add_all([task_a, task_b])
        db.flush()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("swap failed a=%s b=%s error=%s", task_a.id, task_b.id, exc)
        raise TransactionFailure() from exc
    _commit_or_fail(db, "swap")
    logger.info(
        "positions swapped a=%s:%s b=%s:%s", task_a.id, position_b, task_b.id, position_a
    )


def bulk_set_positions(db: Session, pairs: Sequence[Tuple[int, int]]) -> int:
    """Apply every (id, position) pair in one transaction.

    Unknown ids match zero rows and are skipped. Returns how many rows matched.
    An empty list is rejected rather than treated as a no-op.
    """
    if not pairs:
        raise InvalidInput("taskOrders must be a non-empty array")

    now = now_utc()
    matched = 0
    try:
        for task_id, position in pairs:
            result = db.execute(
                update(TaskDB)
                .where(TaskDB.id == task_id)
                .values(position=position, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            matched += result.rowcount or 0
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("bulk reorder failed pairs=%s error=%s", len(pairs), exc)
        raise TransactionFailure() from exc
    _commit_or_fail(db, "bulk_reorder")
    logger.info("bulk reorder applied pairs=%s matched=%s", len(pairs), matched)
    return matched


def backfill_positions(db: Session) -> int:
    """Give rows with a NULL position a place after every positioned row.

    Legacy rows are numbered in ascending creation order. Returns the count.
    """
    legacy = (
        db.query(TaskDB)
        .filter(TaskDB.position.is_(None))
        .order_by(TaskDB.created_at.asc(), TaskDB.id.asc())
        .all()
    )
    if not legacy:
        return 0
    start = next_insert_position(db)
    for offset, row in enumerate(legacy):
        row.position = start + offset
    _commit_or_fail(db, "backfill")
    logger.info("backfilled positions rows=%s start=%s", len(legacy), start)
    return len(legacy)
