"""Caller identity and administrator checks."""

from ballotbox.identity.gate import IdentityGate, canonical_identity, is_administrator

__all__ = ["IdentityGate", "canonical_identity", "is_administrator"]
