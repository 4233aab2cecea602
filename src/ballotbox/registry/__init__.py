"""Voter and proposal registries."""

from ballotbox.registry.proposals import ProposalRegistry
from ballotbox.registry.voters import VoterRegistry

__all__ = ["ProposalRegistry", "VoterRegistry"]
