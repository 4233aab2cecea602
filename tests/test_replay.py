"""Tests for election restoration from the event log."""

import dataclasses

import pytest

from ballotbox.errors import AlreadyVoted, PhaseError
from ballotbox.models.election import WorkflowStatus
from ballotbox.persistence.event_log import EventKind, EventRecord
from ballotbox.persistence.replay import restore_election
from ballotbox.service import ElectionService


ADMIN = "0xadmin"
ALICE = "0xalice"


def _run_election(tally: bool = True) -> ElectionService:
    service = ElectionService(administrator=ADMIN)
    service.register_voter(ALICE, caller=ADMIN)
    service.start_proposals_registering(caller=ADMIN)
    service.add_proposal("Proposal 1", caller=ALICE)
    service.add_proposal("Proposal 2", caller=ALICE)
    service.end_proposals_registering(caller=ADMIN)
    service.start_voting_session(caller=ADMIN)
    service.set_vote(2, caller=ALICE)
    service.end_voting_session(caller=ADMIN)
    if tally:
        service.tally_votes(caller=ADMIN)
    return service


def _forged(event: EventRecord, **changes) -> EventRecord:
    return EventRecord.create(
        event_id=changes.get("event_id", event.event_id),
        event_kind=changes.get("event_kind", event.event_kind),
        actor_id=changes.get("actor_id", event.actor_id),
        payload=changes.get("payload", event.payload),
    )


class TestRestore:
    def test_rebuilds_identical_state(self) -> None:
        service = _run_election()
        election = restore_election(service.event_log.events())
        assert election.state == service.election.state
        assert election.phase == WorkflowStatus.VOTES_TALLIED
        assert election.get_winner() == 2

    def test_rebuilds_mid_election(self) -> None:
        service = _run_election(tally=False)
        election = restore_election(service.event_log.events())
        assert election.phase == WorkflowStatus.VOTING_SESSION_ENDED
        assert election.get_winner() == 0

    def test_administrator_recovered_from_log(self) -> None:
        service = _run_election()
        election = restore_election(service.event_log.events())
        assert election.gate.administrator == ADMIN

    def test_matching_administrator_accepted(self) -> None:
        service = _run_election()
        restore_election(service.event_log.events(), administrator=ADMIN)

    def test_mismatched_administrator_rejected(self) -> None:
        service = _run_election()
        with pytest.raises(ValueError, match="does not match"):
            restore_election(service.event_log.events(), administrator="0xmallory")

    def test_replay_emits_nothing(self) -> None:
        service = _run_election()
        before = service.event_log.count
        restore_election(service.event_log.events())
        assert service.event_log.count == before


class TestRejectsInvalidLogs:
    def test_empty_log(self) -> None:
        with pytest.raises(ValueError, match="administrator assignment"):
            restore_election([])

    def test_missing_administrator_assignment(self) -> None:
        events = _run_election().event_log.events()
        with pytest.raises(ValueError):
            restore_election(events[1:])

    def test_second_administrator_assignment(self) -> None:
        events = _run_election().event_log.events()
        with pytest.raises(ValueError, match="unexpected"):
            restore_election(events + [events[0]])

    def test_duplicated_vote(self) -> None:
        events = _run_election(tally=False).event_log.events()
        vote = next(e for e in events if e.event_kind == EventKind.VOTED)
        idx = events.index(vote)
        events.insert(idx + 1, dataclasses.replace(vote, event_id="EV-dup"))
        with pytest.raises(AlreadyVoted):
            restore_election(events)

    def test_out_of_order_transition(self) -> None:
        events = _run_election().event_log.events()
        skipped = _forged(events[-1], payload={"old_status": 3, "new_status": 5})
        with pytest.raises(PhaseError):
            restore_election(events[:-2] + [skipped])

    def test_status_change_with_wrong_old_status(self) -> None:
        events = _run_election().event_log.events()
        forged = _forged(events[-1], payload={"old_status": 3, "new_status": 5})
        with pytest.raises(ValueError, match="old status"):
            restore_election(events[:-1] + [forged])

    def test_vote_attributed_to_other_actor(self) -> None:
        events = _run_election(tally=False).event_log.events()
        idx = next(i for i, e in enumerate(events) if e.event_kind == EventKind.VOTED)
        events[idx] = _forged(events[idx], actor_id=ADMIN)
        with pytest.raises(ValueError, match="another actor"):
            restore_election(events)

    def test_proposal_id_mismatch(self) -> None:
        events = _run_election().event_log.events()
        idx = next(
            i for i, e in enumerate(events)
            if e.event_kind == EventKind.PROPOSAL_REGISTERED
        )
        events[idx] = _forged(
            events[idx], payload={"proposal_id": 7, "description": "Proposal 1"},
        )
        with pytest.raises(ValueError, match="replayed as"):
            restore_election(events)
