# PURPOSE: /tasks JSON endpoints (CRUD plus the two reorder operations).
# Reorder routes are declared before /{task_id} so "reorder" is never read as an id.

import json
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..config import settings
from ..exceptions import InvalidInput
from ..models import Task, TaskCreate, TaskUpdate
from ..rate_limit import limiter
from ..reorder import bulk_reorder, move_task, parse_direction, parse_task_id
from ..store_db import (
    get_db,
    list_tasks as db_list_tasks,
    create_task as db_create_task,
    get_task as db_get_task,
    update_task as db_update_task,
    delete_task as db_delete_task,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


async def _json_body(request: Request) -> Any:
    """Reorder bodies are parsed here so bad JSON is a 400 like any other bad body."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as err:
        raise InvalidInput("Request body must be valid JSON") from err


@router.get("", response_model=List[Task])
async def list_tasks(db: Session = Depends(get_db)):
    """All tasks in canonical order (position, then creation time)."""
    return db_list_tasks(db)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    item: TaskCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    task = db_create_task(db, item)
    response.headers["Location"] = f"{request.url.path.rstrip('/')}/{task.id}"
    return task


@router.put("/reorder", response_model=List[Task])
@limiter.limit(settings.RATE_LIMIT_REORDER)
async def reorder_tasks(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Apply a full new order; unknown ids are ignored, an empty list is a 400."""
    return bulk_reorder(db, await _json_body(request))


@router.put("/{task_id}/reorder", response_model=List[Task])
@limiter.limit(settings.RATE_LIMIT_REORDER)
async def reorder_task(
    task_id: str,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    """Move one task up or down by swapping it with its neighbor."""
    return move_task(db, parse_task_id(task_id), parse_direction(await _json_body(request)))


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: int, db: Session = Depends(get_db)):
    task = db_get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.put("/{task_id}", response_model=Task)
@router.patch("/{task_id}", response_model=Task)
async def update_task(task_id: int, item: TaskUpdate, db: Session = Depends(get_db)):
    """Partial update: only fields present in the body change."""
    updated = db_update_task(db, task_id, item)
    if not updated:
        raise HTTPException(status_code=404, detail="Task not found")
    return updated


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, db: Session = Depends(get_db)):
    ok = db_delete_task(db, task_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Task not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
