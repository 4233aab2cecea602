"""Election data models.

One election moves through six ordered workflow phases:
    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_STARTED →
    PROPOSALS_REGISTRATION_ENDED → VOTING_SESSION_STARTED →
    VOTING_SESSION_ENDED → VOTES_TALLIED

Progression is one-way. The numeric value of each phase is part of the
external interface (WorkflowStatusChange carries old and new values).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


# Description of the sentinel proposal appended at id 0.
GENESIS_DESCRIPTION = "GENESIS"


class WorkflowStatus(enum.IntEnum):
    """Election workflow phases, in lifecycle order."""
    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5


@dataclass
class Voter:
    """A voter record.

    Invariants:
    - is_registered never goes back to False once set.
    - has_voted flips False → True at most once.
    - voted_proposal_id is 0 until the voter has voted.
    """
    is_registered: bool = False
    has_voted: bool = False
    voted_proposal_id: int = 0


@dataclass
class Proposal:
    """A proposal. Its id is its position in the proposal sequence."""
    description: str
    vote_count: int = 0


@dataclass
class ElectionState:
    """Single-owner state of one election run.

    Components receive a reference to this object; nothing else holds
    election state.
    """
    phase: WorkflowStatus = WorkflowStatus.REGISTERING_VOTERS
    winning_proposal_id: int = 0
    voters: dict[str, Voter] = field(default_factory=dict)
    proposals: list[Proposal] = field(default_factory=list)
