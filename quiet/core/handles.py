from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TaskHandle:
    """Opaque reference to a scheduled task.

    Carries no state of its own; the scheduler decides whether it is still live.
    """

    index: int
    generation: int

    def __str__(self) -> str:
        return f"{self.index}:{self.generation}"

    @staticmethod
    def parse(text: str) -> "TaskHandle":
        index, sep, generation = text.partition(":")
        if not sep:
            raise ValueError(f"Malformed task handle: {text!r}")
        try:
            return TaskHandle(index=int(index), generation=int(generation))
        except ValueError as e:
            raise ValueError(f"Malformed task handle: {text!r}") from e


class HandleAllocator(Protocol):
    """Host lifecycle collaborator: hands out and takes back opaque handles."""

    def allocate(self) -> TaskHandle: ...

    def release(self, handle: TaskHandle) -> None: ...

    def is_live(self, handle: TaskHandle) -> bool: ...


class SlotArena:
    """Index + generation allocator.

    Released slots go on a free list and are reused; the slot generation is bumped on
    release so a handle to the previous occupant never matches again.
    """

    def __init__(self) -> None:
        self._generations: list[int] = []
        self._live: list[bool] = []
        self._free: list[int] = []

    def allocate(self) -> TaskHandle:
        if self._free:
            index = self._free.pop()
        else:
            index = len(self._generations)
            self._generations.append(0)
            self._live.append(False)
        self._live[index] = True
        return TaskHandle(index=index, generation=self._generations[index])

    def release(self, handle: TaskHandle) -> None:
        # Stale or foreign handles are ignored.
        if not self.is_live(handle):
            return
        self._live[handle.index] = False
        self._generations[handle.index] += 1
        self._free.append(handle.index)

    def is_live(self, handle: TaskHandle) -> bool:
        i = handle.index
        return 0 <= i < len(self._generations) and self._live[i] and self._generations[i] == handle.generation

    def __len__(self) -> int:
        return sum(self._live)
