"""Election service — unified facade over one election.

This is the primary interface for programmatic access to ballotbox. It
owns:
- The election core (identity gate, registries, workflow state machine).
- The event log every notification is written to.
- The lock that serialises operations, so a phase check and the mutation
  it guards are atomic together.

A file-backed log may be shared by several services, one per process.
Every operation runs under the log's writer lock; if another writer has
appended since, the election is rebuilt from the log before the operation
is checked.

All operations return a ServiceResult. Rejections carry the reason string
in ``errors`` and the stable error code in ``data["error"]``; they are
never raised to the caller and never leave a partial mutation behind. A
failure after validation (the log could not be written) is re-raised once
the election has been rebuilt from the log.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, Optional

from ballotbox.audit import check_invariants
from ballotbox.config import ElectionConfig
from ballotbox.engine.election import Election
from ballotbox.errors import ElectionError
from ballotbox.identity.gate import IdentityGate
from ballotbox.models.election import WorkflowStatus
from ballotbox.persistence.event_log import EventKind, EventLog, EventRecord
from ballotbox.persistence.replay import restore_election


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class ElectionService:
    """Election facade.

    Usage:
        service = ElectionService(administrator="admin")
        service.register_voter("alice", caller="admin")
        service.start_proposals_registering(caller="admin")
        service.add_proposal("Plant more trees", caller="alice")
        service.end_proposals_registering(caller="admin")
        service.start_voting_session(caller="admin")
        service.set_vote(1, caller="alice")
        service.end_voting_session(caller="admin")
        service.tally_votes(caller="admin")

    Persistence (optional):
        service = ElectionService(administrator="admin",
                                  event_log=EventLog(Path("data/events.jsonl")))
        # A log that already holds events is replayed on construction.

    When ``caller`` is omitted, the identity gate's caller source is used.
    """

    def __init__(
        self,
        administrator: Optional[str] = None,
        event_log: Optional[EventLog] = None,
        caller_source: Optional[Callable[[], Optional[str]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._event_log = event_log if event_log is not None else EventLog()
        self._caller_source = caller_source
        self._clock = clock
        self._lock = threading.RLock()

        with self._lock, self._event_log.locked():
            if self._event_log.count:
                self._election = restore_election(
                    self._event_log.events(), administrator, caller_source,
                )
                self._election.subscribe(self._record_event)
                logger.info(
                    "Restored election from %d events (phase %s)",
                    self._event_log.count, self._election.phase.name,
                )
            else:
                if not administrator:
                    raise ValueError("An administrator is required to start a new election")
                self._election = Election(IdentityGate(administrator, caller_source))
                self._election.subscribe(self._record_event)
                self._election.announce_administrator()
                logger.info(
                    "New election administered by %s", self._election.gate.administrator,
                )

    @classmethod
    def from_config(cls, config: ElectionConfig) -> ElectionService:
        """Create a service persisted under ``config.data_dir``."""
        return cls(
            administrator=config.administrator,
            event_log=EventLog(storage_path=config.events_path),
            caller_source=lambda: config.caller,
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_voter(self, target: str, caller: Optional[str] = None) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            self._election.register_voter(actor, target)
            return {"address": target.strip()}
        return self._execute("register_voter", caller, op)

    def add_proposal(self, description: str, caller: Optional[str] = None) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            return {"proposal_id": self._election.add_proposal(actor, description)}
        return self._execute("add_proposal", caller, op)

    def set_vote(self, proposal_id: int, caller: Optional[str] = None) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            self._election.set_vote(actor, proposal_id)
            return {"address": actor, "proposal_id": proposal_id}
        return self._execute("set_vote", caller, op)

    # ------------------------------------------------------------------
    # Workflow transitions
    # ------------------------------------------------------------------

    def start_proposals_registering(self, caller: Optional[str] = None) -> ServiceResult:
        return self._transition(
            "start_proposals_registering", caller,
            WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
        )

    def end_proposals_registering(self, caller: Optional[str] = None) -> ServiceResult:
        return self._transition(
            "end_proposals_registering", caller,
            WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
        )

    def start_voting_session(self, caller: Optional[str] = None) -> ServiceResult:
        return self._transition(
            "start_voting_session", caller, WorkflowStatus.VOTING_SESSION_STARTED,
        )

    def end_voting_session(self, caller: Optional[str] = None) -> ServiceResult:
        return self._transition(
            "end_voting_session", caller, WorkflowStatus.VOTING_SESSION_ENDED,
        )

    def tally_votes(self, caller: Optional[str] = None) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            old = self._election.phase
            winner = self._election.tally_votes(actor)
            return {
                "old_status": int(old),
                "new_status": int(self._election.phase),
                "phase": self._election.phase.name,
                "winning_proposal_id": winner,
            }
        return self._execute("tally_votes", caller, op)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_voter(self, target: str, caller: Optional[str] = None) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            voter = self._election.get_voter(actor, target)
            return {"address": target.strip(), **dataclasses.asdict(voter)}
        return self._execute("get_voter", caller, op, mutating=False)

    def get_proposal(self, proposal_id: int, caller: Optional[str] = None) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            proposal = self._election.get_proposal(actor, proposal_id)
            return {"proposal_id": proposal_id, **dataclasses.asdict(proposal)}
        return self._execute("get_proposal", caller, op, mutating=False)

    def get_winner(self) -> ServiceResult:
        """Winning proposal id; ``tallied`` is False while it is still the default 0."""
        with self._synced():
            return ServiceResult(
                success=True,
                data={
                    "winning_proposal_id": self._election.get_winner(),
                    "tallied": self._election.phase == WorkflowStatus.VOTES_TALLIED,
                },
            )

    @property
    def phase(self) -> WorkflowStatus:
        with self._synced():
            return self._election.phase

    @property
    def election(self) -> Election:
        """The current election; replaced whenever it is rebuilt from the log."""
        return self._election

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    def status(self) -> dict[str, Any]:
        with self._synced():
            phase = self._election.phase
            return {
                "administrator": self._election.gate.administrator,
                "phase": phase.name,
                "phase_value": int(phase),
                "voters": self._election.voter_count,
                "proposals": self._election.proposal_count,
                "winning_proposal_id": self._election.get_winner(),
                "tallied": phase == WorkflowStatus.VOTES_TALLIED,
                "events": self._event_log.count,
            }

    def check_invariants(self) -> list[str]:
        with self._synced():
            return check_invariants(self._election.state, self._event_log.events())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(
        self,
        action: str,
        caller: Optional[str],
        target: WorkflowStatus,
    ) -> ServiceResult:
        def op(actor: str) -> dict[str, Any]:
            old = self._election.phase
            self._election.transition_to(actor, target)
            new = self._election.phase
            return {"old_status": int(old), "new_status": int(new), "phase": new.name}
        return self._execute(action, caller, op)

    def _execute(
        self,
        action: str,
        caller: Optional[str],
        op: Callable[[str], dict[str, Any]],
        mutating: bool = True,
    ) -> ServiceResult:
        with self._synced():
            try:
                actor = caller.strip() if caller is not None else self._election.gate.current_caller()
                data = op(actor)
            except ElectionError as exc:
                logger.warning("%s rejected (%s): %s", action, exc.code, exc.reason)
                return ServiceResult(
                    success=False, errors=[exc.reason], data={"error": exc.code},
                )
            except Exception:
                # The core may have written state the log never recorded.
                logger.exception("%s failed after validation; rebuilding from the log", action)
                self._rebuild()
                raise
            if mutating:
                logger.info("%s by %s: %s", action, actor, data)
            return ServiceResult(success=True, data=data)

    @contextmanager
    def _synced(self) -> Iterator[None]:
        """Serialise against this process and every other writer of the log."""
        with self._lock, self._event_log.locked() as pulled:
            if pulled:
                logger.info("%d events appended elsewhere; rebuilding election", pulled)
                self._rebuild()
            yield

    def _rebuild(self) -> None:
        self._election = restore_election(
            self._event_log.events(), caller_source=self._caller_source,
        )
        self._election.subscribe(self._record_event)

    def _record_event(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> None:
        event = EventRecord.create(
            event_id=f"EV-{self._event_log.count + 1:06d}",
            event_kind=kind,
            actor_id=actor_id,
            payload=dict(payload),
            timestamp_utc=self._clock() if self._clock else None,
        )
        self._event_log.append(event)
