"""
HTTP client for the task API plus an optimistic local copy of the task list.

OptimisticTaskList is what a UI (or the playback engine's task provider)
reads from: reorders are applied locally first, then replaced by the server's
canonical order, or rolled back to the last known-good list when the request
fails.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Sequence, Tuple

import httpx

from .config import settings
from .models import Task

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx answer (or transport failure, status 0) from the task API."""

    def __init__(self, status_code: int, message: str, code: str | None = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"{status_code}: {message}")


class TaskApiClient:
    def __init__(self, http: httpx.Client | None = None, *, base_url: str | None = None) -> None:
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url or settings.API_BASE_URL, timeout=10.0)

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "TaskApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("request failed method=%s path=%s error=%s", method, path, exc)
            raise ApiError(0, str(exc)) from exc
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("error") if isinstance(body, dict) else None
            code = body.get("code") if isinstance(body, dict) else None
            raise ApiError(response.status_code, message or response.reason_phrase, code)
        return response

    @staticmethod
    def _tasks(response: httpx.Response) -> List[Task]:
        return [Task.model_validate(item) for item in response.json()]

    # --- CRUD ---

    def list_tasks(self) -> List[Task]:
        return self._tasks(self._request("GET", "/tasks"))

    def get_task(self, task_id: int) -> Task:
        return Task.model_validate(self._request("GET", f"/tasks/{task_id}").json())

    def create_task(
        self,
        title: str,
        *,
        timer_enabled: bool = False,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
    ) -> Task:
        payload = {
            "title": title,
            "timerEnabled": timer_enabled,
            "hours": hours,
            "minutes": minutes,
            "seconds": seconds,
        }
        return Task.model_validate(self._request("POST", "/tasks", json=payload).json())

    def update_task(self, task_id: int, **changes: Any) -> Task:
        """Send only the given fields (snake_case names are sent camelCased)."""
        payload = {_camel(name): value for name, value in changes.items()}
        return Task.model_validate(self._request("PATCH", f"/tasks/{task_id}", json=payload).json())

    def delete_task(self, task_id: int) -> None:
        self._request("DELETE", f"/tasks/{task_id}")

    # --- reorder ---

    def move_task(self, task_id: int, direction: str) -> List[Task]:
        return self._tasks(
            self._request("PUT", f"/tasks/{task_id}/reorder", json={"direction": direction})
        )

    def reorder_tasks(self, pairs: Iterable[Tuple[int, int]]) -> List[Task]:
        payload = {"taskOrders": [{"id": tid, "position": pos} for tid, pos in pairs]}
        return self._tasks(self._request("PUT", "/tasks/reorder", json=payload))


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class OptimisticTaskList:
    """Local ordered task list kept in step with the server."""

    def __init__(self, api: TaskApiClient) -> None:
        self._api = api
        self._tasks: List[Task] = []

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def refresh(self) -> List[Task]:
        self._tasks = self._api.list_tasks()
        return self.tasks

    def move(self, task_id: int, direction: str) -> List[Task]:
        """Swap with the neighbor locally, then adopt the server's order."""
        ids = [t.id for t in self._tasks]
        if task_id in ids:
            i = ids.index(task_id)
            j = i - 1 if direction == "up" else i + 1
            if 0 <= j < len(ids):
                ids[i], ids[j] = ids[j], ids[i]
        return self._apply(ids, lambda: self._api.move_task(task_id, direction))

    def reorder(self, ordered_ids: Sequence[int]) -> List[Task]:
        """Send a full new order (drag and drop); positions become 0..n-1."""
        pairs = [(tid, pos) for pos, tid in enumerate(ordered_ids)]
        return self._apply(list(ordered_ids), lambda: self._api.reorder_tasks(pairs))

    def _apply(self, optimistic_ids: List[int], send) -> List[Task]:
        known_good = self._tasks
        by_id = {t.id: t for t in known_good}
        self._tasks = [by_id[tid] for tid in optimistic_ids if tid in by_id]
        try:
            self._tasks = send()
        except ApiError as exc:
            self._tasks = known_good
            logger.warning("reorder reverted status=%s error=%s", exc.status_code, exc.message)
            raise
        return self.tasks
