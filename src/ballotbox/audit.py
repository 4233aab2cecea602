"""Election invariant audit — checks a state against its event log.

Returns a list of violations; an empty list means the election is
consistent. Nothing here mutates the state or the log.
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from ballotbox.engine.tally import TallyEngine
from ballotbox.models.election import GENESIS_DESCRIPTION, ElectionState, WorkflowStatus
from ballotbox.persistence.event_log import EventKind, EventRecord


def check_invariants(state: ElectionState, events: Iterable[EventRecord]) -> list[str]:
    errors: list[str] = []
    events = list(events)

    errors.extend(_check_phase_chain(state, events))
    errors.extend(_check_votes(state, events))
    errors.extend(_check_proposals(state))
    errors.extend(_check_winner(state))
    return errors


def _check_phase_chain(state: ElectionState, events: list[EventRecord]) -> list[str]:
    errors: list[str] = []
    expected = WorkflowStatus.REGISTERING_VOTERS
    for event in events:
        if event.event_kind != EventKind.WORKFLOW_STATUS_CHANGE:
            continue
        old = event.payload["old_status"]
        new = event.payload["new_status"]
        if old != expected or new != expected + 1:
            errors.append(
                f"{event.event_id}: status change {old} → {new}, "
                f"expected {int(expected)} → {int(expected) + 1}"
            )
            return errors
        expected = WorkflowStatus(new)
    if state.phase != expected:
        errors.append(
            f"State phase {state.phase.name} does not match logged phase {expected.name}"
        )
    return errors


def _check_votes(state: ElectionState, events: list[EventRecord]) -> list[str]:
    errors: list[str] = []
    registered: set[str] = set()
    voted: dict[str, int] = {}
    tally: Counter[int] = Counter()
    phase = WorkflowStatus.REGISTERING_VOTERS

    for event in events:
        kind = event.event_kind
        if kind == EventKind.WORKFLOW_STATUS_CHANGE:
            phase = WorkflowStatus(event.payload["new_status"])
        elif kind == EventKind.VOTER_REGISTERED:
            registered.add(event.payload["address"])
        elif kind == EventKind.VOTED:
            voter = event.payload["address"]
            proposal_id = event.payload["proposal_id"]
            if phase != WorkflowStatus.VOTING_SESSION_STARTED:
                errors.append(f"{event.event_id}: vote cast during {phase.name}")
            if voter not in registered:
                errors.append(f"{event.event_id}: vote by unregistered {voter}")
            if voter in voted:
                errors.append(f"{event.event_id}: {voter} voted more than once")
                continue
            voted[voter] = proposal_id
            tally[proposal_id] += 1

    for proposal_id, proposal in enumerate(state.proposals):
        if proposal.vote_count != tally.get(proposal_id, 0):
            errors.append(
                f"Proposal {proposal_id}: vote_count {proposal.vote_count} "
                f"!= {tally.get(proposal_id, 0)} logged votes"
            )

    for identity, voter in state.voters.items():
        if not voter.is_registered:
            errors.append(f"Voter {identity} is not registered")
        if voter.has_voted != (identity in voted):
            errors.append(f"Voter {identity}: has_voted disagrees with the log")
        elif voter.has_voted and voter.voted_proposal_id != voted[identity]:
            errors.append(
                f"Voter {identity}: voted_proposal_id {voter.voted_proposal_id} "
                f"!= logged {voted[identity]}"
            )
    if set(state.voters) != registered:
        errors.append("Registered voters disagree with the log")
    return errors


def _check_proposals(state: ElectionState) -> list[str]:
    opened = state.phase >= WorkflowStatus.PROPOSALS_REGISTRATION_STARTED
    if not opened:
        if state.proposals:
            return ["Proposals exist before proposal registration opened"]
        return []
    if not state.proposals or state.proposals[0].description != GENESIS_DESCRIPTION:
        return ["Proposal 0 is not the GENESIS proposal"]
    return []


def _check_winner(state: ElectionState) -> list[str]:
    if state.phase != WorkflowStatus.VOTES_TALLIED:
        if state.winning_proposal_id != 0:
            return ["Winner set before votes were tallied"]
        return []
    expected = TallyEngine.winner(state.proposals)
    if state.winning_proposal_id != expected:
        return [
            f"Winner {state.winning_proposal_id} is not the first maximum ({expected})"
        ]
    return []
