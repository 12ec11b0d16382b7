from __future__ import annotations

from statemachine import State, StateMachine


class TaskLifecycle(StateMachine):
    """Lifecycle guard for one scheduled task.

    scheduled -> firing -> {retired (one-shot), scheduled (repeating)}; expired and
    cancelled are only reachable from scheduled, so a firing always completes first.
    The scheduler owns all bookkeeping; this machine only refuses illegal moves.
    """

    scheduled = State("Scheduled", value="scheduled", initial=True)
    firing = State("Firing", value="firing")
    retired = State("Retired", value="retired", final=True)
    expired = State("Expired", value="expired", final=True)
    cancelled = State("Cancelled", value="cancelled", final=True)

    fire = scheduled.to(firing)
    rearm = firing.to(scheduled)
    retire = firing.to(retired)
    expire = scheduled.to(expired)
    cancel = scheduled.to(cancelled)

    @property
    def state_name(self) -> str:
        return str(self.current_state.value)

    @property
    def is_firing(self) -> bool:
        return self.current_state.id == "firing"

    @property
    def is_terminal(self) -> bool:
        return self.current_state.final
