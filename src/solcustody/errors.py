"""Base exception types shared across the package.

Every error carries a ``kind`` so callers can tell "fix your input" from
"transient, retry" from "terminal" without matching on messages.
"""

from enum import Enum
from typing import Sequence


class ErrorKind(str, Enum):
    """How a caller should react to an error."""
    INVALID_INPUT = "invalid_input"   # fix the request, do not retry as-is
    TRANSIENT = "transient"           # safe to retry the whole operation
    TERMINAL = "terminal"             # retrying will not help


class SolcustodyError(Exception):
    """Base class for all package errors.

    ``completed`` lists the signatures that already landed when the error
    interrupted a multi-transaction operation.
    """

    kind: ErrorKind = ErrorKind.TERMINAL
    completed: Sequence[str] = ()

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.TRANSIENT


class StorageError(SolcustodyError):
    """Raised when the wallet mapping store cannot be read or written."""

    kind = ErrorKind.TERMINAL
