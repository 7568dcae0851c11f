"""Enum-based workflow state machine pattern.

Defines the price-update workflow states as a Python enum with explicit
transition validation. The state definitions are independent of whatever
drives them (an HTTP handler, a CLI, a test).

Lifecycle: idle -> simulating -> preview_ready -> applying -> idle, with a
discard path from preview_ready back to idle.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# State definitions
# ---------------------------------------------------------------------------

class SimulationState(str, Enum):
    """Simulate-then-commit workflow states."""

    IDLE = "idle"
    SIMULATING = "simulating"
    PREVIEW_READY = "preview_ready"
    APPLYING = "applying"


# ---------------------------------------------------------------------------
# Transition rules
# ---------------------------------------------------------------------------

# Allowed transitions: {current_state: [allowed_next_states]}
_SIMULATION_TRANSITIONS: dict[SimulationState, list[SimulationState]] = {
    SimulationState.IDLE: [SimulationState.SIMULATING, SimulationState.APPLYING],
    SimulationState.SIMULATING: [SimulationState.PREVIEW_READY, SimulationState.IDLE],
    SimulationState.PREVIEW_READY: [
        SimulationState.SIMULATING,
        SimulationState.APPLYING,
        SimulationState.IDLE,
    ],
    # preview_ready when the user declines the confirmation
    SimulationState.APPLYING: [SimulationState.IDLE, SimulationState.PREVIEW_READY],
}


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

@dataclass
class WorkflowTransition:
    """Record of a single state transition."""

    from_state: str
    to_state: str
    timestamp: datetime
    actor: str = "system"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkflowInstance:
    """A running workflow instance with state tracking.

    Usage::

        wf = WorkflowInstance(workflow_id="tenant-a")
        wf.transition(SimulationState.SIMULATING, actor="api")
        wf.transition(SimulationState.PREVIEW_READY, metadata={"changed": 12})
    """

    workflow_id: str
    current_state: SimulationState = SimulationState.IDLE
    history: list[WorkflowTransition] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    max_history: int = 100

    def can_transition(self, to_state: SimulationState) -> bool:
        """Check if a transition is allowed from the current state."""
        allowed = _SIMULATION_TRANSITIONS.get(self.current_state, [])
        return to_state in allowed

    def transition(
        self,
        to_state: SimulationState,
        actor: str = "system",
        metadata: dict[str, Any] | None = None,
    ) -> WorkflowTransition:
        """Execute a state transition.

        Raises ValueError if the transition is not allowed.
        """
        if not self.can_transition(to_state):
            allowed = _SIMULATION_TRANSITIONS.get(self.current_state, [])
            allowed_names = [s.value for s in allowed]
            raise ValueError(
                f"Cannot transition from {self.current_state.value} to {to_state.value}. "
                f"Allowed: {allowed_names}"
            )

        record = WorkflowTransition(
            from_state=self.current_state.value,
            to_state=to_state.value,
            timestamp=datetime.now(timezone.utc),
            actor=actor,
            metadata=metadata or {},
        )
        self.history.append(record)
        if len(self.history) > self.max_history:
            self.history = self.history[-self.max_history:]
        self.current_state = to_state
        return record

    @property
    def is_busy(self) -> bool:
        """True while a simulation or an apply is running."""
        return self.current_state in (SimulationState.SIMULATING, SimulationState.APPLYING)

    @property
    def transition_count(self) -> int:
        """Number of transitions kept in history."""
        return len(self.history)
