"""Tick-driven task scheduler.

The host calls `tick(now)` once per frame; due callbacks run synchronously inside that call.

- One-shot tasks fire once when `now - created_at >= delay`, never inside `schedule_once`.
- Repeating tasks fire once per elapsed interval, measured from the previous firing.
  Expiry is checked before the pause flag, so a paused task still expires.
- Callback exceptions are not caught. Bookkeeping for the failing task (retire/re-arm)
  happens first, then the exception leaves `tick` and the remaining tasks wait for the
  next tick.
- Handles are generation-checked; pause/resume/cancel on a stale handle is a no-op.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from pydantic import BaseModel

from quiet.config import DebugFlag
from quiet.core.handles import HandleAllocator, SlotArena, TaskHandle
from quiet.task_fsm import TaskLifecycle

logger = logging.getLogger(__name__)

# Firing counters are 32-bit unsigned and wrap to 0.
FIRED_COUNT_MASK = 0xFFFFFFFF

Callback = Callable[[], object]


class TaskKind(StrEnum):
    once = "once"
    repeating = "repeating"


class TaskInfo(BaseModel):
    """Read-only view of a live task, used by introspection and the devtools API."""

    handle: str
    kind: TaskKind
    state: str
    created_at: float
    delay: float | None = None
    interval: float | None = None
    last_fired: float | None = None
    expires_at: float | None = None
    paused: bool = False
    fired_count: int = 0


@dataclass(slots=True, eq=False)
class DelayedTask:
    handle: TaskHandle
    created_at: float
    delay: float
    callback: Callback
    lifecycle: TaskLifecycle = field(default_factory=TaskLifecycle)
    cancel_requested: bool = False

    def is_due(self, now: float) -> bool:
        return now - self.created_at >= self.delay

    def info(self) -> TaskInfo:
        return TaskInfo(
            handle=str(self.handle),
            kind=TaskKind.once,
            state=self.lifecycle.state_name,
            created_at=self.created_at,
            delay=self.delay,
        )


@dataclass(slots=True, eq=False)
class PeriodicTask:
    handle: TaskHandle
    created_at: float
    interval: float
    callback: Callback
    expires_at: float | None = None
    paused: bool = False
    fired_count: int = 0
    last_fired: float = field(init=False)
    lifecycle: TaskLifecycle = field(default_factory=TaskLifecycle)
    cancel_requested: bool = False

    def __post_init__(self) -> None:
        self.last_fired = self.created_at

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def is_due(self, now: float) -> bool:
        return now - self.last_fired >= self.interval

    def record_firing(self, now: float) -> None:
        self.fired_count = (self.fired_count + 1) & FIRED_COUNT_MASK
        self.last_fired += self.interval
        # Still a full interval behind after a stall or a long pause: realign instead of bursting.
        if now - self.last_fired >= self.interval:
            self.last_fired = now

    def info(self) -> TaskInfo:
        return TaskInfo(
            handle=str(self.handle),
            kind=TaskKind.repeating,
            state=self.lifecycle.state_name,
            created_at=self.created_at,
            interval=self.interval,
            last_fired=self.last_fired,
            expires_at=self.expires_at,
            paused=self.paused,
            fired_count=self.fired_count,
        )


ScheduledTask = DelayedTask | PeriodicTask


def _require_callable(callback: object) -> None:
    if not callable(callback):
        raise TypeError(f"callback must be callable, got {type(callback).__name__}")


class TaskScheduler:
    """Owns the active tasks and advances them on each tick.

    Single-threaded and cooperative: no locking. `created_at` is the frame time of the
    most recent tick (`start_time` before the first one).
    """

    def __init__(
        self,
        *,
        allocator: HandleAllocator | None = None,
        debug: DebugFlag | bool = False,
        start_time: float = 0.0,
    ):
        self._allocator: HandleAllocator = allocator if allocator is not None else SlotArena()
        self._debug = debug
        self._now = float(start_time)
        # Insertion order gives a stable per-tick iteration order.
        self._tasks: dict[TaskHandle, ScheduledTask] = {}

    @property
    def now(self) -> float:
        return self._now

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, handle: object) -> bool:
        return handle in self._tasks

    def schedule_once(self, callback: Callback, delay: float) -> TaskHandle:
        _require_callable(callback)
        if delay < 0:
            raise ValueError("delay must be >= 0")

        handle = self._allocator.allocate()
        self._tasks[handle] = DelayedTask(handle=handle, created_at=self._now, delay=float(delay), callback=callback)
        self._trace("Scheduled one-shot task %s (delay=%s)", handle, delay)
        return handle

    def schedule_repeating(
        self,
        callback: Callback,
        interval: float,
        expire_after: float | None = None,
    ) -> TaskHandle:
        _require_callable(callback)
        if interval <= 0:
            raise ValueError("interval must be > 0")
        if expire_after is not None and expire_after <= 0:
            raise ValueError("expire_after must be > 0")

        handle = self._allocator.allocate()
        expires_at = None if expire_after is None else self._now + float(expire_after)
        self._tasks[handle] = PeriodicTask(
            handle=handle,
            created_at=self._now,
            interval=float(interval),
            callback=callback,
            expires_at=expires_at,
        )
        self._trace("Scheduled repeating task %s (interval=%s, expires_at=%s)", handle, interval, expires_at)
        return handle

    def pause(self, handle: TaskHandle) -> None:
        task = self._tasks.get(handle)
        if isinstance(task, PeriodicTask):
            task.paused = True

    def resume(self, handle: TaskHandle) -> None:
        task = self._tasks.get(handle)
        if isinstance(task, PeriodicTask):
            task.paused = False

    def cancel(self, handle: TaskHandle) -> None:
        task = self._tasks.pop(handle, None)
        if task is None:
            return

        self._allocator.release(handle)
        if task.lifecycle.is_firing:
            # Cancelled from inside its own callback; the lifecycle settles once the firing ends.
            task.cancel_requested = True
        else:
            task.lifecycle.cancel()
        self._trace("Cancelled task %s", handle)

    def cancel_all(self) -> None:
        for handle in list(self._tasks):
            self.cancel(handle)

    def info(self, handle: TaskHandle) -> TaskInfo | None:
        task = self._tasks.get(handle)
        return None if task is None else task.info()

    def snapshot(self) -> list[TaskInfo]:
        return [task.info() for task in self._tasks.values()]

    def tick(self, now: float) -> None:
        if now < self._now:
            raise ValueError(f"tick time went backwards ({now} < {self._now})")
        self._now = now

        # Snapshot first: callbacks may schedule or cancel tasks while we iterate.
        for handle, task in list(self._tasks.items()):
            if self._tasks.get(handle) is not task:
                # Cancelled earlier in this tick.
                continue
            if task.lifecycle.is_firing:
                # Re-entrant tick from inside this task's own callback.
                continue

            if isinstance(task, PeriodicTask):
                self._advance_repeating(task, now)
            else:
                self._advance_once(task, now)

    def _advance_once(self, task: DelayedTask, now: float) -> None:
        if not task.is_due(now):
            return

        task.lifecycle.fire()
        try:
            task.callback()
        finally:
            task.lifecycle.retire()
            self._discard(task)
            self._trace("Retired one-shot task %s", task.handle)

    def _advance_repeating(self, task: PeriodicTask, now: float) -> None:
        if task.is_expired(now):
            task.lifecycle.expire()
            self._discard(task)
            self._trace("Expired repeating task %s after %s firings", task.handle, task.fired_count)
            return

        if task.paused or not task.is_due(now):
            return

        task.lifecycle.fire()
        try:
            task.callback()
        finally:
            task.record_firing(now)
            task.lifecycle.rearm()
            if task.cancel_requested:
                task.lifecycle.cancel()
            self._trace("Fired repeating task %s (count=%s)", task.handle, task.fired_count)

    def _discard(self, task: ScheduledTask) -> None:
        if self._tasks.get(task.handle) is task:
            del self._tasks[task.handle]
            self._allocator.release(task.handle)

    def _trace(self, msg: str, *args: object) -> None:
        if bool(self._debug):
            logger.debug(msg, *args)
