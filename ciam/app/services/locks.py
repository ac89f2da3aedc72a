"""
Per-key asyncio locks.

Serializes work on one login context or one refresh token inside a single
process. Cross-process exclusion comes from the database (partial unique
index, conditional UPDATEs).
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class KeyedLock:
    """A lazily created asyncio.Lock per key, dropped when nobody holds or waits on it"""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


context_locks = KeyedLock()
refresh_token_locks = KeyedLock()
