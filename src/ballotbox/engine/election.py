"""Election core — the operation surface of one election.

Every mutating operation checks authorization (identity gate) and phase
(workflow state machine) first, then any registry precondition, and only
then writes. A rejected operation raises an ElectionError and leaves the
state untouched.

Notifications are delivered to subscribed listeners after the state has
been written. The core never reads them back.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from ballotbox.errors import PhaseError
from ballotbox.engine.state_machine import WorkflowStateMachine
from ballotbox.engine.tally import TallyEngine
from ballotbox.identity.gate import IdentityGate
from ballotbox.models.election import ElectionState, Proposal, Voter, WorkflowStatus
from ballotbox.persistence.event_log import EventKind
from ballotbox.registry.proposals import ProposalRegistry
from ballotbox.registry.voters import VoterRegistry, voter_key


Listener = Callable[[EventKind, str, dict[str, Any]], None]


class Election:
    """One election run over an explicitly owned ElectionState.

    Thread-safety: this class is not thread-safe. Use ElectionService,
    which serialises every call.
    """

    def __init__(
        self,
        gate: IdentityGate,
        state: Optional[ElectionState] = None,
    ) -> None:
        self._gate = gate
        self._state = state if state is not None else ElectionState()
        self._voters = VoterRegistry(self._state)
        self._proposals = ProposalRegistry(self._state)
        self._machine = WorkflowStateMachine(self._state)
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _notify(self, kind: EventKind, actor_id: str, payload: dict[str, Any]) -> None:
        for listener in list(self._listeners):
            listener(kind, actor_id, payload)

    def announce_administrator(self) -> None:
        """Emit the administrator assignment for a freshly created election."""
        self._notify(
            EventKind.ADMINISTRATOR_ASSIGNED,
            self._gate.administrator,
            {"previous": "", "administrator": self._gate.administrator},
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def gate(self) -> IdentityGate:
        return self._gate

    @property
    def state(self) -> ElectionState:
        return self._state

    @property
    def phase(self) -> WorkflowStatus:
        return self._machine.phase

    @property
    def proposal_count(self) -> int:
        return len(self._proposals)

    @property
    def voter_count(self) -> int:
        return len(self._voters)

    def get_voter(self, caller: str, target: str) -> Voter:
        """Voters may look up any voter, including themselves.

        *target* is matched the way register_voter stores it.
        """
        self._voters.require_voter(caller)
        return self._voters.get(target)

    def get_proposal(self, caller: str, proposal_id: int) -> Proposal:
        self._voters.require_voter(caller)
        return self._proposals.get(proposal_id)

    def get_winner(self) -> int:
        """Winning proposal id. 0 (GENESIS) until the votes are tallied."""
        return self._state.winning_proposal_id

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_voter(self, caller: str, target: str) -> None:
        self._gate.require_administrator(caller)
        self._machine.require_phase(
            WorkflowStatus.REGISTERING_VOTERS, "Voters registration is not open yet",
        )
        target = voter_key(target)
        self._voters.register(target)
        self._notify(EventKind.VOTER_REGISTERED, caller, {"address": target})

    def add_proposal(self, caller: str, description: str) -> int:
        """Append a proposal and return its id."""
        self._voters.require_voter(caller)
        self._machine.require_phase(
            WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
            "Proposals are not allowed yet",
        )
        proposal_id = self._proposals.append(description)
        self._notify(
            EventKind.PROPOSAL_REGISTERED,
            caller,
            {"proposal_id": proposal_id, "description": description},
        )
        return proposal_id

    def set_vote(self, caller: str, proposal_id: int) -> None:
        self._voters.require_voter(caller)
        self._machine.require_phase(
            WorkflowStatus.VOTING_SESSION_STARTED, "Voting session hasn't started yet",
        )
        self._voters.check_can_vote(caller)
        self._proposals.require_exists(proposal_id)

        self._proposals.record_vote(proposal_id)
        self._voters.mark_voted(caller, proposal_id)
        self._notify(
            EventKind.VOTED, caller, {"address": caller, "proposal_id": proposal_id},
        )

    # ------------------------------------------------------------------
    # Workflow transitions
    # ------------------------------------------------------------------

    def start_proposals_registering(self, caller: str) -> None:
        self._transition(caller, WorkflowStatus.PROPOSALS_REGISTRATION_STARTED)

    def end_proposals_registering(self, caller: str) -> None:
        self._transition(caller, WorkflowStatus.PROPOSALS_REGISTRATION_ENDED)

    def start_voting_session(self, caller: str) -> None:
        self._transition(caller, WorkflowStatus.VOTING_SESSION_STARTED)

    def end_voting_session(self, caller: str) -> None:
        self._transition(caller, WorkflowStatus.VOTING_SESSION_ENDED)

    def tally_votes(self, caller: str) -> int:
        """Compute and store the winner. Returns the winning proposal id."""
        self._transition(caller, WorkflowStatus.VOTES_TALLIED)
        return self._state.winning_proposal_id

    def transition_to(self, caller: str, target: WorkflowStatus) -> None:
        """Dispatch to the transition operation that enters *target*."""
        self._transition(caller, target)

    def _transition(self, caller: str, target: WorkflowStatus) -> None:
        self._gate.require_administrator(caller)
        errors = self._machine.validate_transition(target)
        if errors:
            raise PhaseError(errors[0])

        if target == WorkflowStatus.PROPOSALS_REGISTRATION_STARTED:
            self._proposals.append_genesis()
        elif target == WorkflowStatus.VOTES_TALLIED:
            self._state.winning_proposal_id = TallyEngine.winner(self._proposals)

        old, new = self._machine.advance(target)
        self._notify(
            EventKind.WORKFLOW_STATUS_CHANGE,
            caller,
            {"old_status": int(old), "new_status": int(new)},
        )
