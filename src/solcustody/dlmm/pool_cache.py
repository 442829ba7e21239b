"""Explicit cache for static pool data, keyed by pool address."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from solcustody.dlmm.models import PoolInfo

logger = logging.getLogger(__name__)

PoolLoader = Callable[[str], Awaitable[PoolInfo]]


class PoolCache:
    """Pool info cache.

    Filled on first use per address. Concurrent misses for the same
    address share one load. Active bins are never stored here.
    """

    def __init__(self):
        self._pools: dict[str, PoolInfo] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, address: str) -> bool:
        return address in self._pools

    def __len__(self) -> int:
        return len(self._pools)

    def peek(self, address: str) -> Optional[PoolInfo]:
        return self._pools.get(address)

    async def get(self, address: str, loader: PoolLoader) -> PoolInfo:
        """Return the cached pool, loading it with ``loader`` on a miss."""
        if address in self._pools:
            return self._pools[address]

        lock = self._locks.setdefault(address, asyncio.Lock())
        async with lock:
            if address not in self._pools:
                logger.debug(f"Pool cache miss: {address}")
                self._pools[address] = await loader(address)
        return self._pools[address]

    def invalidate(self, address: str):
        """Drop one pool; the next ``get`` reloads it."""
        self._pools.pop(address, None)
        self._locks.pop(address, None)

    def clear(self):
        self._pools.clear()
        self._locks.clear()
