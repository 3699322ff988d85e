# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass(slots=True)
class FakeTask:
    id: int
    title: str = ""
    timer_enabled: bool = False
    hours: int = 0
    minutes: int = 0
    seconds: int = 0


def timed(task_id: int, seconds: int, *, minutes: int = 0, hours: int = 0) -> FakeTask:
    return FakeTask(
        id=task_id,
        title=f"T{task_id}",
        timer_enabled=True,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
    )


def untimed(task_id: int) -> FakeTask:
    return FakeTask(id=task_id, title=f"T{task_id}")


class _Handle:
    def __init__(self, when: float, seq: int, callback: Callable[[], None]) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Deterministic Scheduler for playback tests.

    Nothing runs until advance() moves the fake clock; callbacks fire in
    (due time, scheduling order) and may schedule further callbacks.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._seq = 0
        self._queue: list[_Handle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(self.now + delay, self._seq, callback)
        self._seq += 1
        self._queue.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self._queue if not h.cancelled and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._queue.remove(handle)
            self.now = handle.when
            handle.callback()
        self.now = target
        self._queue = [h for h in self._queue if not h.cancelled]

    @property
    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.cancelled)
