"""Per-conversation turn serialization.

Two messages for the same conversation must not be processed at the
same time, or both would read the same starting step and race to write
the next one.  :class:`ConversationLocks` hands out one ``asyncio.Lock``
per conversation id and forgets it once nobody holds or waits on it.

Across processes, and until the turn's transaction commits, the
conversation store's row lock (``get_for_update``) does the same job.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ConversationLocks:
    """Keyed ``asyncio.Lock`` registry."""

    def __init__(self) -> None:
        self._locks: dict[int, asyncio.Lock] = {}
        # Holders + waiters per key, so idle locks can be dropped
        self._users: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, conversation_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        self._users[conversation_id] = self._users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[conversation_id] -= 1
            if self._users[conversation_id] == 0:
                del self._users[conversation_id]
                del self._locks[conversation_id]
