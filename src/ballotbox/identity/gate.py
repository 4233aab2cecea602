"""Identity gate — who is calling, and are they the administrator.

The administrator is fixed when the election is initialized and never
changes. Authorization is an explicit predicate over (caller,
administrator); there is no ownership base class.

The gate does not authenticate anyone. Resolving the caller is delegated
to a caller source supplied by the host (the CLI reads it from config).
"""

from __future__ import annotations

from typing import Callable, Optional

from ballotbox.errors import Unauthorized


NOT_ADMINISTRATOR = "Caller is not the administrator"


def canonical_identity(identity: str) -> str:
    """Normalise an identity string. Raises ValueError if blank."""
    canonical = identity.strip() if identity else ""
    if not canonical:
        raise ValueError("Identity must not be blank")
    return canonical


def is_administrator(caller: str, administrator: str) -> bool:
    """Pure capability check: is *caller* the administrator?"""
    return bool(caller) and caller == administrator


class IdentityGate:
    """Resolves the acting caller and checks administrator rights."""

    def __init__(
        self,
        administrator: str,
        caller_source: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self._administrator = canonical_identity(administrator)
        self._caller_source = caller_source

    @property
    def administrator(self) -> str:
        return self._administrator

    def is_administrator(self, caller: str) -> bool:
        return is_administrator(caller, self._administrator)

    def require_administrator(self, caller: str) -> None:
        """Raise Unauthorized unless *caller* is the administrator."""
        if not self.is_administrator(caller):
            raise Unauthorized(NOT_ADMINISTRATOR)

    def current_caller(self) -> str:
        """Return the identity of the acting caller.

        Raises Unauthorized if no caller source is configured or the source
        yields nothing: an anonymous caller holds no rights.
        """
        caller = self._caller_source() if self._caller_source else None
        if not caller or not caller.strip():
            raise Unauthorized("No caller identity available")
        return caller.strip()
