"""Per-user locking.

Serializes operations that must not interleave for one user, such as
creating the user's custodial wallet.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional, Union

from solcustody.errors import ErrorKind, SolcustodyError

logger = logging.getLogger(__name__)

UserKey = Union[int, str]

# Global lock registry: user id -> asyncio.Lock
_user_locks: dict[str, asyncio.Lock] = {}
_registry_lock = asyncio.Lock()


class LockTimeoutError(SolcustodyError):
    """Raised when a lock cannot be acquired within the timeout period."""

    kind = ErrorKind.TRANSIENT


async def get_user_lock(user_id: UserKey) -> asyncio.Lock:
    """Get or create a lock for a specific user.

    Args:
        user_id: Telegram user id (ints and their string form share a lock)

    Returns:
        asyncio.Lock for the user
    """
    key = str(user_id)
    async with _registry_lock:
        if key not in _user_locks:
            _user_locks[key] = asyncio.Lock()
        return _user_locks[key]


@asynccontextmanager
async def user_lock(
    user_id: UserKey,
    timeout: Optional[float] = 30.0,
    operation: str = "wallet_operation",
):
    """Hold the user's lock for the duration of the block.

    Example:
        async with user_lock(user_id, operation="create_wallet"):
            ...
    """
    lock = await get_user_lock(user_id)

    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout for user {user_id} after {timeout}s: {operation}")
        raise LockTimeoutError(
            f"Could not acquire lock for user {user_id} within {timeout}s"
        )

    logger.debug(f"Lock acquired for user {user_id}: {operation}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released for user {user_id}: {operation}")


def clear_user_locks() -> None:
    """Clear all user locks (useful for testing)."""
    _user_locks.clear()
