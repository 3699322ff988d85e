# PURPOSE: reorder service. Turns "move up/down" and "here is the new order"
# into ordering-store writes and returns the canonical list afterwards.
# Bodies are validated here (not by Pydantic) so malformed input is a 400 InvalidInput.

from __future__ import annotations

import logging
from typing import Any, List, Tuple

from sqlalchemy.orm import Session

from . import store_db
from .db_models import TaskDB
from .exceptions import AlreadyAtBoundary, InvalidInput, NotFound

logger = logging.getLogger(__name__)

DIRECTIONS = ("up", "down")


def parse_task_id(raw: Any) -> int:
    """Path ids arrive as strings; anything but a plain integer is InvalidInput."""
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError) as err:
        raise InvalidInput("Invalid task id") from err


def parse_direction(body: Any) -> str:
    direction = body.get("direction") if isinstance(body, dict) else None
    if direction not in DIRECTIONS:
        raise InvalidInput('Invalid direction. Must be "up" or "down"')
    return direction


def _as_number(value: Any) -> int | None:
    # bool is an int subclass but never a valid id/position
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_task_orders(body: Any) -> List[Tuple[int, int]]:
    """Validate a bulk reorder body and return its (id, position) pairs.

    Rejects a missing or non-array `taskOrders`, an empty array, and any entry
    that is not an object with numeric `id` and `position`.
    """
    orders = body.get("taskOrders") if isinstance(body, dict) else None
    if not isinstance(orders, list):
        raise InvalidInput("taskOrders must be an array")
    if not orders:
        raise InvalidInput("taskOrders must be a non-empty array")

    pairs: List[Tuple[int, int]] = []
    for index, entry in enumerate(orders):
        if not isinstance(entry, dict) or "id" not in entry or "position" not in entry:
            raise InvalidInput(f"taskOrders[{index}] must have id and position")
        task_id = _as_number(entry["id"])
        position = _as_number(entry["position"])
        if task_id is None or position is None:
            raise InvalidInput(f"taskOrders[{index}] id and position must be numbers")
        pairs.append((task_id, position))
    return pairs


def move_task(db: Session, task_id: int, direction: str) -> List[TaskDB]:
    """Swap a task with its immediate neighbor and return the canonical list."""
    if direction not in DIRECTIONS:
        raise InvalidInput('Invalid direction. Must be "up" or "down"')

    task = store_db.get_task(db, task_id)
    if task is None:
        raise NotFound()

    neighbor = store_db.find_neighbor(db, task, direction)
    if neighbor is None:
        edge = "first" if direction == "up" else "last"
        raise AlreadyAtBoundary(f"Task is already {edge}")

    if _swap_needs_renumber(db, task, neighbor):
        _renumber_with_swap(db, task, neighbor)
    else:
        store_db.swap_positions(db, task, task.position, neighbor, neighbor.position)

    logger.info("task moved id=%s direction=%s neighbor=%s", task_id, direction, neighbor.id)
    return store_db.list_tasks(db)


def _swap_needs_renumber(db: Session, task: TaskDB, neighbor: TaskDB) -> bool:
    # A value swap moves exactly one step only when both values are unique.
    # Otherwise the task lands in a tie and re-sorts by created_at.
    if neighbor.position == task.position:
        return True
    return store_db.count_at_positions(db, (task.position, neighbor.position)) > 2


def _renumber_with_swap(db: Session, task: TaskDB, neighbor: TaskDB) -> None:
    ordered = [row.id for row in store_db.list_tasks(db)]
    i, j = ordered.index(task.id), ordered.index(neighbor.id)
    ordered[i], ordered[j] = ordered[j], ordered[i]
    store_db.bulk_set_positions(db, [(tid, pos) for pos, tid in enumerate(ordered)])


def bulk_reorder(db: Session, body: Any) -> List[TaskDB]:
    """Apply a client-supplied order atomically and return the canonical list."""
    pairs = parse_task_orders(body)
    matched = store_db.bulk_set_positions(db, pairs)
    if matched < len(pairs):
        logger.info("bulk reorder skipped unknown ids count=%s", len(pairs) - matched)
    return store_db.list_tasks(db)
