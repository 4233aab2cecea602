"""Voter registry — identity → voter record.

Records are created once and never deleted. Phase and administrator
checks are the caller's job (see ballotbox.engine.election); the registry
only enforces uniqueness and the one-vote rule.
"""

from __future__ import annotations

import dataclasses

from ballotbox.errors import AlreadyRegistered, AlreadyVoted, Unauthorized
from ballotbox.models.election import ElectionState, Voter


NOT_A_VOTER = "You're not a voter"
BLANK_VOTER = "A blank identity cannot be a voter"


def voter_key(identity: str) -> str:
    """Identity as stored in the registry: surrounding whitespace removed."""
    return identity.strip() if identity else ""


class VoterRegistry:
    """Operates on ``state.voters``.

    Thread-safety: this class is not thread-safe. The service facade
    serialises access.
    """

    def __init__(self, state: ElectionState) -> None:
        self._state = state

    def register(self, identity: str) -> Voter:
        """Create a voter record.

        Raises Unauthorized for a blank identity, AlreadyRegistered on a
        duplicate.
        """
        identity = voter_key(identity)
        if not identity:
            raise Unauthorized(BLANK_VOTER)
        if identity in self._state.voters:
            raise AlreadyRegistered("Already registered")
        voter = Voter(is_registered=True)
        self._state.voters[identity] = voter
        return dataclasses.replace(voter)

    def is_registered(self, identity: str) -> bool:
        voter = self._state.voters.get(identity)
        return voter is not None and voter.is_registered

    def require_voter(self, identity: str) -> None:
        if not self.is_registered(identity):
            raise Unauthorized(NOT_A_VOTER)

    def get(self, identity: str) -> Voter:
        """Return a copy of the record, or an unregistered default."""
        voter = self._state.voters.get(voter_key(identity))
        if voter is None:
            return Voter()
        return dataclasses.replace(voter)

    def check_can_vote(self, identity: str) -> None:
        if self._state.voters[identity].has_voted:
            raise AlreadyVoted("You have already voted")

    def mark_voted(self, identity: str, proposal_id: int) -> None:
        self.check_can_vote(identity)
        voter = self._state.voters[identity]
        voter.has_voted = True
        voter.voted_proposal_id = proposal_id

    def __len__(self) -> int:
        return len(self._state.voters)
