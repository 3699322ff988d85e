"""
Sequential playback engine.

Walks the ordered task list running one countdown at a time:

- idle     nothing active
- running  countdown ticking once per tick interval
- paused   countdown frozen, resumable
- waiting  the sequence reached a task that needs a manual advance, or a timed
           task sits in its grace window before starting on its own

The engine never caches the order: every "what comes next" question calls the
task provider, so reordering while a timer runs only changes what follows.

Time is injected through a Scheduler (call_later + cancellable handle), which
keeps the engine single-threaded and lets tests drive the clock by hand.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Protocol, Sequence

from .config import settings

logger = logging.getLogger(__name__)

# Completion alert: three ascending tones (C5, E5, G5), in Hz
ALERT_TONES: tuple[float, ...] = (523.25, 659.25, 783.99)


class Phase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    WAITING = "waiting"


class TaskLike(Protocol):
    id: int
    timer_enabled: bool
    hours: int
    minutes: int
    seconds: int


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs `callback` once after `delay` seconds; the handle cancels it."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass(slots=True, frozen=True)
class PlaybackSession:
    """Snapshot of the engine state. Replaced, never mutated."""

    phase: Phase = Phase.IDLE
    task_id: int | None = None
    remaining_seconds: int = 0
    # Only in WAITING: the grace delay for task_id is scheduled
    auto_start_pending: bool = False

    @property
    def active_task_id(self) -> int | None:
        return self.task_id if self.phase in (Phase.RUNNING, Phase.PAUSED) else None

    @property
    def waiting_task_id(self) -> int | None:
        return self.task_id if self.phase is Phase.WAITING else None

    @property
    def is_paused(self) -> bool:
        return self.phase is Phase.PAUSED


IDLE = PlaybackSession()


def duration_of(task: TaskLike) -> int:
    return task.hours * 3600 + task.minutes * 60 + task.seconds


def has_timer(task: TaskLike) -> bool:
    """A task can be played only with its timer on and a positive duration."""
    return bool(task.timer_enabled) and duration_of(task) > 0


def format_clock(total_seconds: int) -> str:
    hours, rest = divmod(max(0, total_seconds), 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class PlaybackEngine:
    def __init__(
        self,
        tasks: Callable[[], Sequence[TaskLike]],
        scheduler: Scheduler,
        *,
        tick_seconds: float | None = None,
        grace_seconds: float | None = None,
        on_alert: Callable[[tuple[float, ...]], None] | None = None,
        on_change: Callable[[PlaybackSession], None] | None = None,
    ) -> None:
        self._tasks = tasks
        self._scheduler = scheduler
        self._tick_seconds = settings.PLAYBACK_TICK_SECONDS if tick_seconds is None else tick_seconds
        self._grace_seconds = settings.PLAYBACK_GRACE_SECONDS if grace_seconds is None else grace_seconds
        self._on_alert = on_alert
        self._on_change = on_change
        self._session = IDLE
        self._tick_handle: TimerHandle | None = None
        self._grace_handle: TimerHandle | None = None

    @property
    def session(self) -> PlaybackSession:
        return self._session

    def remaining_display(self) -> str:
        return format_clock(self._session.remaining_seconds)

    # --- user actions ---------------------------------------------------

    def start(self, task_id: int) -> bool:
        """Start the countdown of `task_id`, replacing whatever was running.

        Tasks without a timer or with a zero duration are ignored (returns False).
        """
        task = self._find(task_id)
        if task is None or not has_timer(task):
            logger.debug("start ignored task_id=%s reason=no_timer", task_id)
            return False
        self._cancel_grace()
        self._run(task, duration_of(task))
        return True

    def pause(self) -> None:
        if self._session.phase is not Phase.RUNNING:
            return
        self._cancel_tick()
        self._set(replace(self._session, phase=Phase.PAUSED))
        logger.info("playback paused task_id=%s remaining=%s",
                    self._session.task_id, self._session.remaining_seconds)

    def resume(self) -> None:
        if self._session.phase is not Phase.PAUSED:
            return
        self._set(replace(self._session, phase=Phase.RUNNING))
        self._schedule_tick()
        logger.info("playback resumed task_id=%s remaining=%s",
                    self._session.task_id, self._session.remaining_seconds)

    def skip_to_next(self) -> None:
        """Leave the current or waiting task and move to the one after it."""
        current = self._session.task_id
        if self._session.phase is Phase.IDLE or current is None:
            return
        self._cancel_tick()
        self._cancel_grace()
        logger.info("playback skip from task_id=%s", current)
        self._advance(self._next_after(current), auto_start=False)

    def stop(self) -> None:
        self._cancel_tick()
        self._cancel_grace()
        if self._session is not IDLE:
            logger.info("playback stopped task_id=%s", self._session.task_id)
        self._set(IDLE)

    # --- task list notifications ----------------------------------------

    def task_updated(self, task: TaskLike) -> None:
        """React to an edit of a task; turning its timer off cancels its countdown."""
        session = self._session
        if session.task_id != task.id or has_timer(task):
            return
        if session.phase in (Phase.RUNNING, Phase.PAUSED):
            self.stop()
        elif session.auto_start_pending:
            self._cancel_grace()
            self._set(replace(session, auto_start_pending=False))

    def task_removed(self, task_id: int) -> None:
        if self._session.task_id == task_id:
            self.stop()

    # --- clock callbacks ------------------------------------------------

    def _tick(self) -> None:
        self._tick_handle = None
        session = self._session
        if session.phase is not Phase.RUNNING:
            return
        remaining = session.remaining_seconds - 1
        if remaining > 0:
            self._set(replace(session, remaining_seconds=remaining))
            self._schedule_tick()
            return
        self._set(replace(session, remaining_seconds=0))
        self._complete(session.task_id)

    def _complete(self, task_id: int) -> None:
        logger.info("playback completed task_id=%s", task_id)
        if self._on_alert is not None:
            self._on_alert(ALERT_TONES)
        self._advance(self._next_after(task_id), auto_start=True)

    def _auto_start(self, task_id: int) -> None:
        self._grace_handle = None
        session = self._session
        if session.waiting_task_id != task_id or not session.auto_start_pending:
            return
        task = self._find(task_id)
        if task is None:
            self._set(IDLE)
        elif has_timer(task):
            logger.info("playback auto-start task_id=%s", task_id)
            self._run(task, duration_of(task))
        else:
            # Timer was switched off during the grace window
            self._set(replace(session, auto_start_pending=False))

    # --- transitions ----------------------------------------------------

    def _advance(self, task: TaskLike | None, *, auto_start: bool) -> None:
        if task is None:
            self._set(IDLE)
        elif not has_timer(task):
            self._set(PlaybackSession(phase=Phase.WAITING, task_id=task.id))
        elif auto_start:
            self._set(PlaybackSession(phase=Phase.WAITING, task_id=task.id, auto_start_pending=True))
            self._grace_handle = self._scheduler.call_later(
                self._grace_seconds, lambda: self._auto_start(task.id)
            )
        else:
            self._run(task, duration_of(task))

    def _run(self, task: TaskLike, remaining: int) -> None:
        # Clear the old tick source before installing a new one
        self._cancel_tick()
        self._set(PlaybackSession(phase=Phase.RUNNING, task_id=task.id, remaining_seconds=remaining))
        self._schedule_tick()
        logger.info("playback running task_id=%s remaining=%s", task.id, remaining)

    def _schedule_tick(self) -> None:
        self._tick_handle = self._scheduler.call_later(self._tick_seconds, self._tick)

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _cancel_grace(self) -> None:
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None

    def _set(self, session: PlaybackSession) -> None:
        self._session = session
        if self._on_change is not None:
            self._on_change(session)

    # --- order lookups (always against the current list) ----------------

    def _find(self, task_id: int) -> TaskLike | None:
        for task in self._tasks():
            if task.id == task_id:
                return task
        return None

    def _next_after(self, task_id: int) -> TaskLike | None:
        tasks = list(self._tasks())
        for index, task in enumerate(tasks):
            if task.id == task_id:
                return tasks[index + 1] if index + 1 < len(tasks) else None
        # The reference task is gone from the list; there is no well-defined next
        return None
