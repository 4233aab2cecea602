"""Election restoration — rebuild an election from its event log.

Events are replayed through the same validated operations that produced
them, so a log that describes an impossible election (a vote before the
voting session, a second tally, ...) is rejected with the ordinary
ElectionError taxonomy. Structural problems with the log itself raise
ValueError.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from ballotbox.engine.election import Election
from ballotbox.identity.gate import IdentityGate
from ballotbox.models.election import WorkflowStatus
from ballotbox.persistence.event_log import EventKind, EventRecord


def restore_election(
    events: Iterable[EventRecord],
    administrator: Optional[str] = None,
    caller_source: Optional[Callable[[], Optional[str]]] = None,
) -> Election:
    """Replay *events* into a fresh Election.

    The first event must be the administrator assignment. If
    *administrator* is given it must agree with the log.
    """
    events = list(events)
    if not events or events[0].event_kind != EventKind.ADMINISTRATOR_ASSIGNED:
        raise ValueError("Event log does not start with an administrator assignment")

    logged_admin = events[0].payload["administrator"]
    if administrator is not None and administrator.strip() != logged_admin:
        raise ValueError(
            f"Configured administrator {administrator!r} does not match "
            f"logged administrator {logged_admin!r}"
        )

    election = Election(IdentityGate(logged_admin, caller_source))
    for event in events[1:]:
        _apply(election, event)
    return election


def _apply(election: Election, event: EventRecord) -> None:
    payload = event.payload
    kind = event.event_kind

    if kind == EventKind.VOTER_REGISTERED:
        election.register_voter(event.actor_id, payload["address"])

    elif kind == EventKind.PROPOSAL_REGISTERED:
        proposal_id = election.add_proposal(event.actor_id, payload["description"])
        if proposal_id != payload["proposal_id"]:
            raise ValueError(
                f"{event.event_id}: proposal id {payload['proposal_id']} "
                f"replayed as {proposal_id}"
            )

    elif kind == EventKind.VOTED:
        if payload["address"] != event.actor_id:
            raise ValueError(f"{event.event_id}: vote recorded for another actor")
        election.set_vote(event.actor_id, payload["proposal_id"])

    elif kind == EventKind.WORKFLOW_STATUS_CHANGE:
        if payload["old_status"] != int(election.phase):
            raise ValueError(
                f"{event.event_id}: logged old status {payload['old_status']} "
                f"!= replayed status {int(election.phase)}"
            )
        election.transition_to(event.actor_id, WorkflowStatus(payload["new_status"]))

    else:
        raise ValueError(f"{event.event_id}: unexpected {kind.value} event")
