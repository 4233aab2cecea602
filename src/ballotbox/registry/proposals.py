"""Proposal registry — append-only, index-stable sequence of proposals.

A proposal's id is its position. Ids are assigned at append time, start
at 0, and are never reused or compacted. Id 0 is always the GENESIS
sentinel, appended when proposal registration opens.
"""

from __future__ import annotations

import dataclasses
from typing import Iterator

from ballotbox.errors import EmptyProposal, NotFound
from ballotbox.models.election import GENESIS_DESCRIPTION, ElectionState, Proposal


class ProposalRegistry:
    """Operates on ``state.proposals``."""

    def __init__(self, state: ElectionState) -> None:
        self._state = state

    def append(self, description: str) -> int:
        """Append a proposal and return its id.

        Raises EmptyProposal if *description* is empty.
        """
        if not description:
            raise EmptyProposal("You cannot submit an empty proposal")
        self._state.proposals.append(Proposal(description=description))
        return len(self._state.proposals) - 1

    def append_genesis(self) -> int:
        return self.append(GENESIS_DESCRIPTION)

    def require_exists(self, proposal_id: int) -> None:
        if not 0 <= proposal_id < len(self._state.proposals):
            raise NotFound("Proposal not found")

    def get(self, proposal_id: int) -> Proposal:
        """Return a copy of the proposal. Raises NotFound if out of bounds."""
        self.require_exists(proposal_id)
        return dataclasses.replace(self._state.proposals[proposal_id])

    def record_vote(self, proposal_id: int) -> None:
        self.require_exists(proposal_id)
        self._state.proposals[proposal_id].vote_count += 1

    def __len__(self) -> int:
        return len(self._state.proposals)

    def __iter__(self) -> Iterator[Proposal]:
        return (dataclasses.replace(p) for p in self._state.proposals)
