"""Tally engine — picks the winning proposal.

Single linear scan, strictly-greater comparison: among proposals tied on
the highest vote count, the one with the lowest id wins. With no votes at
all the GENESIS sentinel (id 0) wins.
"""

from __future__ import annotations

from typing import Iterable

from ballotbox.models.election import Proposal


class TallyEngine:
    """Pure computation over a proposal sequence."""

    @staticmethod
    def winner(proposals: Iterable[Proposal]) -> int:
        winning_id = 0
        winning_count = 0
        for proposal_id, proposal in enumerate(proposals):
            if proposal.vote_count > winning_count:
                winning_count = proposal.vote_count
                winning_id = proposal_id
        return winning_id
