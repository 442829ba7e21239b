"""Command argument parsing and error replies for bot handlers."""

import logging
from typing import Optional

from solcustody.assembly.errors import BroadcastRejected, MissingSignerError
from solcustody.errors import ErrorKind, SolcustodyError
from solcustody.routing.base import SlippageExceededError
from solcustody.services.errors import InsufficientBalanceError, WalletNotRegisteredError

logger = logging.getLogger(__name__)


class UsageError(ValueError):
    """Command was called with the wrong number of arguments."""

    def __init__(self, usage: str):
        super().__init__(usage)
        self.usage = usage


def split_args(
    args: Optional[str],
    required: int,
    usage: str,
    optional: int = 0,
) -> list[str]:
    """Split command arguments on whitespace.

    Returns ``required`` values followed by up to ``optional`` more.

    Raises:
        UsageError: If too few or too many arguments were given
    """
    parts = (args or "").split()
    if len(parts) < required or len(parts) > required + optional:
        raise UsageError(usage)
    return parts


def usage_reply(error: UsageError) -> str:
    return f"❌ Missing or extra parameters. Usage:\n{error.usage}"


def error_reply(error: Exception, action: str) -> str:
    """User-facing reply for a failed operation.

    Input problems say what to fix, transient ones suggest retrying, and
    terminal ones do neither.
    """
    if isinstance(error, WalletNotRegisteredError):
        return "❌ Please use /start first to create a wallet."
    if isinstance(error, InsufficientBalanceError):
        return f"❌ Insufficient balance.\nYou have {error.have} but need {error.need}."
    if isinstance(error, SlippageExceededError):
        return "❌ Swap failed due to price movement. Try a smaller amount or wait a moment."
    if isinstance(error, MissingSignerError):
        return f"❌ Could not {action}: transaction could not be fully signed."

    if isinstance(error, SolcustodyError):
        if error.kind == ErrorKind.INVALID_INPUT:
            return f"❌ {error}"
        if error.kind == ErrorKind.TRANSIENT:
            detail = error.reason if isinstance(error, BroadcastRejected) else str(error)
            return f"⚠️ Could not {action} right now ({detail}). Please try again."
        return f"❌ Could not {action}: {error}"

    logger.exception(f"Unexpected error while trying to {action}")
    return f"❌ Sorry, something went wrong while trying to {action}. Please try again later."
