"""Per-key mutual exclusion for appends to the same entry."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

from common.logging_config import get_logger

logger = get_logger(__name__)


class _KeyedLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLockRegistry:
    """
    Registry of asyncio locks keyed by entry id.

    A lock exists only while some task holds or waits for it, so the registry
    does not grow with the number of entries ever written. Tasks using
    different keys never wait on each other.
    """

    def __init__(self):
        self._locks: Dict[str, _KeyedLock] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for key for the duration of the block."""
        slot = self._locks.get(key)
        if slot is None:
            slot = _KeyedLock()
            self._locks[key] = slot
        slot.users += 1
        try:
            if slot.lock.locked():
                logger.debug(f"Waiting for append lock [entry_id={key}]")
            async with slot.lock:
                yield
        finally:
            slot.users -= 1
            if slot.users == 0 and self._locks.get(key) is slot:
                del self._locks[key]

    def active_keys(self) -> int:
        """Number of keys currently held or awaited."""
        return len(self._locks)
