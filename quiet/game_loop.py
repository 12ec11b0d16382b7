from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from quiet.scheduler import TaskScheduler

logger = logging.getLogger(__name__)


class FrameLoop:
    """Drives a scheduler with one tick per frame.

    Frame time is `clock() - origin`, where origin is the clock reading at construction, so
    a fresh scheduler (start_time=0) and the loop share a time base.
    """

    def __init__(self, scheduler: TaskScheduler, *, clock: Callable[[], float] = time.monotonic):
        self.scheduler = scheduler
        self._clock = clock
        self._origin = clock() - scheduler.now
        self.frames = 0
        self.failed_frames = 0

    def step(self) -> float:
        """Tick once. Callback exceptions propagate to the caller; the frame still counts."""
        now = self._clock() - self._origin
        self.frames += 1
        self.scheduler.tick(now)
        return now

    def run_frames(self, n: int) -> None:
        for _ in range(n):
            self.step()

    async def run(self, *, frame_interval: float, stop: asyncio.Event) -> None:
        """Step once per frame until `stop` is set.

        A frame whose callback raises is logged and the loop keeps going: the scheduler has
        already retired or re-armed the failing task, and the remaining tasks run next frame.
        """

        if frame_interval <= 0:
            raise ValueError("frame_interval must be > 0")

        logger.info("Frame loop started (interval=%ss)", frame_interval)
        try:
            while not stop.is_set():
                try:
                    self.step()
                except Exception:
                    self.failed_frames += 1
                    logger.exception("Frame %d failed", self.frames)
                try:
                    await asyncio.wait_for(stop.wait(), timeout=frame_interval)
                except TimeoutError:
                    pass
        finally:
            logger.info("Frame loop stopped after %d frames (%d failed)", self.frames, self.failed_frames)
