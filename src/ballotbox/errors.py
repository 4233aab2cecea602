"""Election error taxonomy.

Every rejected operation raises exactly one of these before any state is
written. The message is the human-readable reason; ``code`` is stable and
safe to branch on.
"""

from __future__ import annotations


class ElectionError(Exception):
    """Base class for all rejected election operations."""
    code = "election_error"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class Unauthorized(ElectionError):
    """Caller lacks the required role or registration."""
    code = "unauthorized"


class PhaseError(ElectionError):
    """Operation is not valid in the current workflow phase."""
    code = "phase_error"


class AlreadyRegistered(ElectionError):
    code = "already_registered"


class AlreadyVoted(ElectionError):
    code = "already_voted"


class EmptyProposal(ElectionError):
    code = "empty_proposal"


class NotFound(ElectionError):
    """Proposal id outside the registry bounds."""
    code = "not_found"
