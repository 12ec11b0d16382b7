from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Generic, TypeVar

from quiet.config import DebugFlag
from quiet.core.events import StateTransition

logger = logging.getLogger(__name__)

S = TypeVar("S")


class InvalidStateError(ValueError):
    """Raised when a value outside the closed state set is requested."""

    def __init__(self, state: object, valid: Iterable[object]):
        self.state = state
        allowed = ",".join(sorted(str(v) for v in valid))
        super().__init__(f"{state!r} is not a valid state (allowed: {allowed})")


def _closed_set(initial: object, states: Iterable[S] | None) -> frozenset[S]:
    if states is not None:
        valid = frozenset(states)
        if not valid:
            raise ValueError("Closed state set must not be empty")
        return valid
    if isinstance(initial, Enum):
        # __members__ keeps composite Flag members and zero values that iteration skips.
        return frozenset(type(initial).__members__.values())  # type: ignore[arg-type]
    raise TypeError("states= is required unless the initial state is an Enum member")


class StateContainer(Generic[S]):
    """Holds one value from a closed, statically known set of states.

    - `states` is computed once; when omitted, an Enum initial value contributes every
      member of its class.
    - The initial value is not validated (a warning is logged if it is out of range).
    - Self-transitions are a no-op: no trace, no transition counted.
    - Traces are gated by the injected `debug` flag, read once per transition.
    """

    def __init__(
        self,
        initial: S,
        *,
        states: Iterable[S] | None = None,
        debug: DebugFlag | bool = False,
        on_transition: Callable[[StateTransition[S]], None] | None = None,
    ):
        self._valid: frozenset[S] = _closed_set(initial, states)
        # Equal-but-foreign values (e.g. 2 for an IntEnum member) resolve to the declared member.
        self._canonical: dict[S, S] = {s: s for s in self._valid}
        self._state: S = initial
        self._debug = debug
        self._on_transition = on_transition
        self._transitions = 0

        if initial not in self._valid:
            logger.warning("Initial state %r is outside the closed state set", initial)

    @property
    def state(self) -> S:
        return self._state

    @property
    def valid_states(self) -> frozenset[S]:
        return self._valid

    @property
    def transitions(self) -> int:
        return self._transitions

    def is_valid(self, candidate: object) -> bool:
        try:
            return candidate in self._valid
        except TypeError:
            # Unhashable values can never be members.
            return False

    def swap_state(self, new_state: S) -> None:
        if not self.is_valid(new_state):
            raise InvalidStateError(new_state, self._valid)
        new_state = self._canonical[new_state]
        if new_state == self._state:
            return

        previous = self._state
        self._state = new_state
        self._transitions += 1

        if bool(self._debug):
            logger.info("Swapping states from %s to %s", previous, new_state)
            if self._on_transition is not None:
                self._on_transition(StateTransition.now(from_state=previous, to_state=new_state))

    def __repr__(self) -> str:
        return f"StateContainer(state={self._state!r})"
