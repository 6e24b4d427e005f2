"""Per-resource asyncio locks shared by every processing attempt in this process."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class ResourceLockRegistry:
    """Hands out one asyncio.Lock per resource id and forgets it when unused.

    Two attempts on the same resource run one after the other; attempts on
    different resources never wait on each other.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, resource_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(resource_id, asyncio.Lock())
        self._holders[resource_id] = self._holders.get(resource_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[resource_id] -= 1
            if self._holders[resource_id] == 0:
                del self._holders[resource_id]
                del self._locks[resource_id]

    def is_locked(self, resource_id: str) -> bool:
        lock = self._locks.get(resource_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
