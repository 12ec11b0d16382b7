from __future__ import annotations

import logging

import pytest

from quiet.config import DebugToggle
from quiet.core.handles import SlotArena, TaskHandle
from quiet.scheduler import TaskScheduler


def test_callback_cancelling_a_later_task_skips_it_this_tick() -> None:
    s = TaskScheduler()
    fired: list[str] = []
    handles: dict[str, TaskHandle] = {}

    def first() -> None:
        fired.append("first")
        s.cancel(handles["second"])

    handles["first"] = s.schedule_once(first, 0)
    handles["second"] = s.schedule_once(lambda: fired.append("second"), 0)

    s.tick(1.0)
    s.tick(2.0)
    assert fired == ["first"]
    assert len(s) == 0


def test_repeating_task_cancels_itself_from_its_callback() -> None:
    s = TaskScheduler()
    fired: list[float] = []
    box: dict[str, TaskHandle] = {}

    def once_then_stop() -> None:
        fired.append(s.now)
        s.cancel(box["h"])

    box["h"] = s.schedule_repeating(once_then_stop, interval=1.0)

    s.tick(1.0)
    assert box["h"] not in s
    s.tick(2.0)
    s.tick(3.0)
    assert fired == [1.0]


def test_one_shot_cancelling_itself_is_safe() -> None:
    s = TaskScheduler()
    box: dict[str, TaskHandle] = {}
    fired: list[float] = []

    def cb() -> None:
        fired.append(s.now)
        s.cancel(box["h"])

    box["h"] = s.schedule_once(cb, 0.5)
    s.tick(1.0)
    s.tick(2.0)
    assert fired == [1.0]
    assert len(s) == 0


def test_task_scheduled_during_tick_waits_for_next_tick() -> None:
    s = TaskScheduler()
    fired: list[str] = []

    def spawner() -> None:
        fired.append("spawner")
        s.schedule_once(lambda: fired.append("child"), 0)

    s.schedule_once(spawner, 0)

    s.tick(1.0)
    assert fired == ["spawner"]

    s.tick(1.0)
    assert fired == ["spawner", "child"]


def test_reentrant_tick_from_callback_does_not_refire_current_task() -> None:
    s = TaskScheduler()
    calls: list[float] = []

    def cb() -> None:
        calls.append(s.now)
        if len(calls) == 1:
            s.tick(s.now)

    s.schedule_repeating(cb, interval=1.0)
    s.tick(1.0)
    assert calls == [1.0]


def test_iteration_order_is_stable_insertion_order() -> None:
    s = TaskScheduler()
    fired: list[int] = []
    for i in range(5):
        s.schedule_once(lambda i=i: fired.append(i), 0)

    s.tick(0.0)
    assert fired == [0, 1, 2, 3, 4]


def test_released_slots_are_reused_with_new_generation() -> None:
    arena = SlotArena()
    s = TaskScheduler(allocator=arena)
    fired: list[str] = []

    old = s.schedule_once(lambda: fired.append("old"), 0)
    s.cancel(old)
    new = s.schedule_once(lambda: fired.append("new"), 0)

    assert new.index == old.index
    assert new.generation == old.generation + 1

    # The stale handle must not reach the new occupant.
    s.cancel(old)
    s.tick(0.0)
    assert fired == ["new"]
    assert len(arena) == 0


def test_handles_are_released_on_retire_and_expire() -> None:
    arena = SlotArena()
    s = TaskScheduler(allocator=arena)
    once = s.schedule_once(lambda: None, 1.0)
    rep = s.schedule_repeating(lambda: None, interval=1.0, expire_after=1.5)
    assert arena.is_live(once) and arena.is_live(rep)

    s.tick(1.0)
    assert not arena.is_live(once)
    assert arena.is_live(rep)

    s.tick(1.5)
    assert not arena.is_live(rep)


def test_cancel_all() -> None:
    s = TaskScheduler()
    fired: list[int] = []
    s.schedule_once(lambda: fired.append(1), 0)
    s.schedule_repeating(lambda: fired.append(2), interval=1.0)

    s.cancel_all()
    s.tick(5.0)
    assert fired == []
    assert s.snapshot() == []


@pytest.mark.parametrize("enabled", [True, False])
def test_debug_toggle_gates_scheduler_trace(enabled: bool, caplog: pytest.LogCaptureFixture) -> None:
    toggle = DebugToggle(enabled=enabled)
    s = TaskScheduler(debug=toggle)

    with caplog.at_level(logging.DEBUG, logger="quiet.scheduler"):
        s.schedule_once(lambda: None, 0)
        s.tick(0.0)

    traced = [r.getMessage() for r in caplog.records if r.name == "quiet.scheduler"]
    if enabled:
        assert any("Retired one-shot task" in m for m in traced)
    else:
        assert traced == []
