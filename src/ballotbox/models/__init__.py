"""Core data models for ballotbox."""

from ballotbox.models.election import (
    GENESIS_DESCRIPTION,
    ElectionState,
    Proposal,
    Voter,
    WorkflowStatus,
)

__all__ = [
    "GENESIS_DESCRIPTION",
    "ElectionState",
    "Proposal",
    "Voter",
    "WorkflowStatus",
]
