"""Tests for the workflow state machine — proves one-way phase progression."""

import pytest

from ballotbox.engine.state_machine import WorkflowStateMachine
from ballotbox.errors import PhaseError
from ballotbox.models.election import ElectionState, WorkflowStatus


ORDER = list(WorkflowStatus)


def _machine(phase: WorkflowStatus) -> WorkflowStateMachine:
    return WorkflowStateMachine(ElectionState(phase=phase))


class TestValidTransitions:
    def test_each_phase_to_its_successor(self) -> None:
        for current, target in zip(ORDER, ORDER[1:]):
            errors = _machine(current).validate_transition(target)
            assert errors == [], f"{current.name} → {target.name} should be valid"

    def test_advance_returns_old_and_new(self) -> None:
        machine = _machine(WorkflowStatus.REGISTERING_VOTERS)
        old, new = machine.advance(WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)
        assert (int(old), int(new)) == (0, 1)
        assert machine.phase == WorkflowStatus.PROPOSALS_REGISTRATION_STARTED


class TestInvalidTransitions:
    def test_skip_rejected(self) -> None:
        machine = _machine(WorkflowStatus.REGISTERING_VOTERS)
        errors = machine.validate_transition(WorkflowStatus.VOTING_SESSION_STARTED)
        assert errors == ["Registering proposals phase is not finished"]

    def test_reverse_rejected(self) -> None:
        machine = _machine(WorkflowStatus.VOTING_SESSION_STARTED)
        assert machine.validate_transition(WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)

    def test_nothing_enters_registering_voters(self) -> None:
        for phase in WorkflowStatus:
            errors = _machine(phase).validate_transition(WorkflowStatus.REGISTERING_VOTERS)
            assert len(errors) == 1

    def test_terminal_has_no_outgoing(self) -> None:
        machine = _machine(WorkflowStatus.VOTES_TALLIED)
        for target in WorkflowStatus:
            assert machine.validate_transition(target), target.name

    def test_repeat_transition_rejected(self) -> None:
        machine = _machine(WorkflowStatus.REGISTERING_VOTERS)
        machine.advance(WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)
        with pytest.raises(PhaseError, match="can't be started now"):
            machine.advance(WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)

    def test_invalid_advance_does_not_mutate(self) -> None:
        machine = _machine(WorkflowStatus.PROPOSALS_REGISTRATION_ENDED)
        with pytest.raises(PhaseError):
            machine.advance(WorkflowStatus.VOTES_TALLIED)
        assert machine.phase == WorkflowStatus.PROPOSALS_REGISTRATION_ENDED

    def test_messages_are_transition_specific(self) -> None:
        messages = {
            _machine(WorkflowStatus.VOTES_TALLIED).validate_transition(target)[0]
            for target in ORDER[1:]
        }
        assert len(messages) == len(ORDER) - 1


class TestRequirePhase:
    def test_require_phase(self) -> None:
        machine = _machine(WorkflowStatus.REGISTERING_VOTERS)
        machine.require_phase(WorkflowStatus.REGISTERING_VOTERS, "unused")
        with pytest.raises(PhaseError, match="not open"):
            machine.require_phase(WorkflowStatus.VOTING_SESSION_STARTED, "not open")
