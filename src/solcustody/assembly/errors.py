"""Errors raised while assembling and broadcasting a transaction."""

from typing import Optional, Sequence

from solcustody.errors import ErrorKind, SolcustodyError

# Node messages that mean "rebuild with a fresh blockhash and try again"
STALE_BLOCKHASH_MARKERS = (
    "blockhash not found",
    "block height exceeded",
    "transaction expired",
)


class AssemblyError(SolcustodyError):
    """Base class for transaction assembly failures."""

    kind = ErrorKind.INVALID_INPUT


class UnsupportedTemplateShape(AssemblyError):
    """Template is neither a versioned nor a legacy transaction."""


class ImmutableTemplateError(AssemblyError):
    """Template arrived in final wire form and cannot take a new blockhash."""


class MissingSignerError(AssemblyError):
    """A required signer has no valid signature (or cannot provide one)."""

    def __init__(self, message: str, missing: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])


class BroadcastRejected(SolcustodyError):
    """The node refused the transaction.

    ``reason`` is the node's message, unmodified.
    """

    def __init__(self, reason: str):
        super().__init__(f"Broadcast rejected: {reason}")
        self.reason = reason

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        lowered = self.reason.lower()
        if any(marker in lowered for marker in STALE_BLOCKHASH_MARKERS):
            return ErrorKind.TRANSIENT
        return ErrorKind.TERMINAL


class BroadcastTimeoutError(BroadcastRejected):
    """No answer from the node in time; the transaction may still land."""

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        return ErrorKind.TRANSIENT
