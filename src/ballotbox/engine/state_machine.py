"""Workflow state machine — enforces the election phase order.

    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_STARTED →
    PROPOSALS_REGISTRATION_ENDED → VOTING_SESSION_STARTED →
    VOTING_SESSION_ENDED → VOTES_TALLIED

Each phase is reachable only from its immediate predecessor. There is no
reverse transition, no skip and no reset. Fail-closed: any transition not
listed below is rejected.
"""

from __future__ import annotations

from ballotbox.errors import PhaseError
from ballotbox.models.election import ElectionState, WorkflowStatus


# target phase: (required source phase, rejection reason)
_TRANSITIONS: dict[WorkflowStatus, tuple[WorkflowStatus, str]] = {
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED: (
        WorkflowStatus.REGISTERING_VOTERS,
        "Registering proposals can't be started now",
    ),
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED: (
        WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
        "Registering proposals hasn't started yet",
    ),
    WorkflowStatus.VOTING_SESSION_STARTED: (
        WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
        "Registering proposals phase is not finished",
    ),
    WorkflowStatus.VOTING_SESSION_ENDED: (
        WorkflowStatus.VOTING_SESSION_STARTED,
        "Voting session hasn't started yet",
    ),
    WorkflowStatus.VOTES_TALLIED: (
        WorkflowStatus.VOTING_SESSION_ENDED,
        "Current status is not voting session ended",
    ),
}


class WorkflowStateMachine:
    """Holds no state of its own; reads and writes ``state.phase``."""

    def __init__(self, state: ElectionState) -> None:
        self._state = state

    @property
    def phase(self) -> WorkflowStatus:
        return self._state.phase

    def require_phase(self, phase: WorkflowStatus, reason: str) -> None:
        """Raise PhaseError(reason) unless the election is in *phase*."""
        if self._state.phase != phase:
            raise PhaseError(reason)

    def validate_transition(self, target: WorkflowStatus) -> list[str]:
        """Check if a transition is valid. Returns errors (empty = OK)."""
        rule = _TRANSITIONS.get(target)
        if rule is None:
            return [f"No transition leads to {target.name}"]
        source, reason = rule
        if self._state.phase != source:
            return [reason]
        return []

    def advance(self, target: WorkflowStatus) -> tuple[WorkflowStatus, WorkflowStatus]:
        """Move to *target*. Returns (old, new); raises PhaseError if invalid."""
        errors = self.validate_transition(target)
        if errors:
            raise PhaseError(errors[0])
        old = self._state.phase
        self._state.phase = target
        return old, target
