"""Test the simulate/apply state machine."""
import pytest

from patterns.workflow_states import SimulationState, WorkflowInstance


def test_happy_path():
    wf = WorkflowInstance(workflow_id="acme")
    assert wf.current_state == SimulationState.IDLE
    wf.transition(SimulationState.SIMULATING)
    wf.transition(SimulationState.PREVIEW_READY, metadata={"changed": 3})
    wf.transition(SimulationState.APPLYING, actor="api")
    wf.transition(SimulationState.IDLE)

    assert wf.transition_count == 4
    assert wf.history[1].metadata == {"changed": 3}
    assert wf.history[2].actor == "api"


def test_declined_confirmation_returns_to_preview():
    wf = WorkflowInstance(workflow_id="acme", current_state=SimulationState.APPLYING)
    assert wf.can_transition(SimulationState.PREVIEW_READY)


@pytest.mark.parametrize("start, target", [
    (SimulationState.IDLE, SimulationState.PREVIEW_READY),
    (SimulationState.SIMULATING, SimulationState.APPLYING),
    (SimulationState.APPLYING, SimulationState.SIMULATING),
])
def test_invalid_transitions(start, target):
    wf = WorkflowInstance(workflow_id="acme", current_state=start)
    with pytest.raises(ValueError, match="Cannot transition"):
        wf.transition(target)
    assert wf.current_state == start


def test_is_busy():
    wf = WorkflowInstance(workflow_id="acme")
    assert not wf.is_busy
    wf.transition(SimulationState.SIMULATING)
    assert wf.is_busy


def test_history_is_capped():
    wf = WorkflowInstance(workflow_id="acme", max_history=3)
    for _ in range(3):
        wf.transition(SimulationState.SIMULATING)
        wf.transition(SimulationState.IDLE)
    assert wf.transition_count == 3
