from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, TypeVar

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class StateTransition(Generic[S]):
    """Trace record emitted when a state container changes value."""

    from_state: S
    to_state: S
    ts: datetime

    @staticmethod
    def now(*, from_state: S, to_state: S) -> "StateTransition[S]":
        return StateTransition(from_state=from_state, to_state=to_state, ts=datetime.now(timezone.utc))
