from __future__ import annotations

from dataclasses import dataclass

from quiet.config import DebugToggle, Settings
from quiet.game_loop import FrameLoop
from quiet.scheduler import TaskScheduler


@dataclass(slots=True)
class Runtime:
    settings: Settings
    debug: DebugToggle
    scheduler: TaskScheduler
    frame_loop: FrameLoop


_RUNTIME: Runtime | None = None


def init_runtime(*, settings: Settings) -> Runtime:
    """Build the process-wide scheduler once.

    Safe to call multiple times; subsequent calls return the existing instance.
    """

    global _RUNTIME
    if _RUNTIME is None:
        debug = DebugToggle(enabled=settings.debug)
        scheduler = TaskScheduler(debug=debug)
        _RUNTIME = Runtime(settings=settings, debug=debug, scheduler=scheduler, frame_loop=FrameLoop(scheduler))
    return _RUNTIME


def reset_runtime_for_tests() -> None:
    global _RUNTIME
    if _RUNTIME is not None:
        _RUNTIME.scheduler.cancel_all()
    _RUNTIME = None


def get_runtime() -> Runtime:
    if _RUNTIME is None:
        raise RuntimeError("Runtime not initialized. Call init_runtime() at startup.")
    return _RUNTIME
