"""Exception hierarchy shared by every trustctl subsystem.

All errors derive from :class:`TrustctlError` so that the command-line layer
can tell usage problems (show help, exit 2) apart from runtime failures
(exit 1) with a single ``except`` clause per category.
"""
from __future__ import annotations


class TrustctlError(Exception):
    """Base class for all trustctl errors."""


class UsageError(TrustctlError):
    """Raised when required parameters are missing or contradictory.

    Usage errors are detected before any mutation happens; the command line
    reacts by printing the command usage text.
    """


class KeyMismatchError(TrustctlError):
    """Raised when a resolved key is not of the expected kind."""

    def __init__(self, expected: str, actual: str = "", detail: str = "") -> None:
        self.expected = expected
        self.actual = actual
        message = f"specified key is not a valid {expected} key"
        if actual:
            message += f" (got {actual} key)"
        if detail:
            message += f" - {detail}"
        super().__init__(message)


class MissingKeyError(TrustctlError):
    """Raised when no key can be resolved outside an interactive flow."""


class StoreError(TrustctlError):
    """Raised on filesystem read/write failures and duplicate names."""


class TransportError(TrustctlError):
    """Raised when fetching a remote token fails."""


class DecodeError(TrustctlError):
    """Raised when a key or token is malformed or of an unknown type."""


class ClaimTypeError(DecodeError):
    """Raised when an editor is applied to the wrong claim variant."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"unable to cast {actual} claim to {expected} claim")


class ConflictError(TrustctlError):
    """Raised when a local claim is newer than the remote one."""


class ActionError(TrustctlError):
    """Wraps a failure raised by a lifecycle phase.

    Parameters
    ----------
    phase:
        Name of the phase that failed (``"run"``, ``"load"``, ...).
    cause:
        The original exception.
    """

    def __init__(self, phase: str, cause: BaseException) -> None:
        self.phase = phase
        self.cause = cause
        super().__init__(str(cause))


__all__ = [
    "ActionError",
    "ClaimTypeError",
    "ConflictError",
    "DecodeError",
    "KeyMismatchError",
    "MissingKeyError",
    "StoreError",
    "TransportError",
    "TrustctlError",
    "UsageError",
]
