"""Test doubles shared across the suite.

The in-memory stores from ``votebot_chains.memory`` cover storage; this
module adds fake lookups, a store that yields to the event loop (to
expose interleaving), a message store that always fails, a helper
for building small chains inline and a database double whose sessions
stage writes until commit.
"""

import asyncio
from typing import Any

from votebot_chains.catalog import Chain, ChainStore
from votebot_chains.errors import LookupNotFoundError, TransportError
from votebot_chains.interfaces import (
    ConversationStore,
    MessageStore,
    PlaceLookup,
    Stores,
    UserStore,
)
from votebot_chains.memory import InMemoryUserStore, memory_stores
from votebot_chains.models.conversation import Conversation, ConversationStatus, User
from votebot_chains.models.lookup import Place, PostalCode

# zip -> [(city, state), ...]
SAMPLE_PLACES: dict[str, list[tuple[str, str]]] = {
    "90210": [("Beverly Hills", "CA")],
    "94110": [("San Francisco", "CA")],
    "19103": [("Philadelphia", "PA")],
    "80202": [("Denver", "CO")],
    # Straddles a state line
    "42223": [("Fort Campbell", "KY"), ("Fort Campbell", "TN")],
}


class FakeLookup(PlaceLookup):
    """Answers from a fixed table and records every code asked for."""

    def __init__(self, places: dict[str, list[tuple[str, str]]] | None = None):
        self.places = SAMPLE_PLACES if places is None else places
        self.calls: list[str] = []

    async def find(self, code: str) -> PostalCode:
        self.calls.append(code)
        if code not in self.places:
            raise LookupNotFoundError(f"Zip code not found: {code}")
        return PostalCode(
            code=code,
            places=[Place(city=city, state=state) for city, state in self.places[code]],
        )


class FailingLookup(PlaceLookup):
    """Lookup whose service is always down."""

    async def find(self, code: str) -> PostalCode:
        raise TransportError("connection refused")


class YieldingUserStore(InMemoryUserStore):
    """In-memory user store that suspends on every call, like a real DB."""

    async def get(self, user_id):
        await asyncio.sleep(0)
        return await super().get(user_id)

    async def update(self, user_id, data):
        await asyncio.sleep(0)
        return await super().update(user_id, data)


class BrokenMessageStore(MessageStore):
    """Message store whose transport is down."""

    def __init__(self):
        self.attempts = 0

    async def create(self, user_id, conversation_id, body):
        self.attempts += 1
        raise TransportError("SMS gateway unavailable")


def make_chain(steps: list[dict[str, Any]], **fields: Any) -> Chain:
    """Validate and load a chain built from plain dicts."""
    raw = {"name": "test_chain", "start": steps[0]["name"], "steps": steps, **fields}
    return ChainStore().add(raw)


class TransactionalDatabase:
    """Shared committed state plus per-row locks, like a Postgres database.

    Each :meth:`session` stages its updates until :meth:`StagedSession.commit`,
    and ``get_for_update`` holds the conversation's row lock until then.
    Sessions only see committed data and their own writes.
    """

    def __init__(self):
        self.committed = memory_stores()
        self.row_locks: dict[int, asyncio.Lock] = {}

    def session(self) -> "StagedSession":
        return StagedSession(self)


class StagedSession:
    def __init__(self, db: TransactionalDatabase):
        self._db = db
        self.users: dict[int, User] = {}
        self.conversations: dict[int, Conversation] = {}
        self.locked: list[int] = []
        self.stores = Stores(
            users=_StagedUserStore(self),
            conversations=_StagedConversationStore(self),
            messages=db.committed.messages,
        )

    async def lock(self, conversation_id: int) -> None:
        if conversation_id in self.locked:
            return
        row_lock = self._db.row_locks.setdefault(conversation_id, asyncio.Lock())
        await row_lock.acquire()
        self.locked.append(conversation_id)

    async def commit(self) -> None:
        await asyncio.sleep(0)
        self._db.committed.users.users.update(self.users)
        self._db.committed.conversations.conversations.update(self.conversations)
        self.users.clear()
        self.conversations.clear()
        for conversation_id in self.locked:
            self._db.row_locks[conversation_id].release()
        self.locked.clear()


class _StagedUserStore(UserStore):
    def __init__(self, session: StagedSession):
        self._session = session
        self._committed = session._db.committed.users

    async def get(self, user_id):
        await asyncio.sleep(0)
        if user_id in self._session.users:
            return self._session.users[user_id].model_copy(deep=True)
        return await self._committed.get(user_id)

    async def get_by_username(self, username):
        return await self._committed.get_by_username(username)

    async def create(self, username, **fields):
        return await self._committed.create(username, **fields)

    async def update(self, user_id, data):
        current = await self.get(user_id)
        updated = User.model_validate({**current.model_dump(), **data})
        self._session.users[user_id] = updated
        return updated.model_copy(deep=True)


class _StagedConversationStore(ConversationStore):
    def __init__(self, session: StagedSession):
        self._session = session
        self._committed = session._db.committed.conversations

    async def get(self, conversation_id):
        await asyncio.sleep(0)
        if conversation_id in self._session.conversations:
            return self._session.conversations[conversation_id].model_copy(deep=True)
        return await self._committed.get(conversation_id)

    async def get_for_update(self, conversation_id):
        await self._session.lock(conversation_id)
        return await self.get(conversation_id)

    async def create(self, *, user_id, chain, step, recipients):
        return await self._committed.create(
            user_id=user_id, chain=chain, step=step, recipients=recipients,
        )

    async def update(self, conversation_id, data):
        current = await self.get(conversation_id)
        updated = Conversation.model_validate({**current.model_dump(), **data})
        self._session.conversations[conversation_id] = updated
        return updated.model_copy(deep=True)

    async def close(self, conversation_id):
        return await self.update(conversation_id, {"status": ConversationStatus.CLOSED})

    async def get_recent_by_user(self, user_id):
        return await self._committed.get_recent_by_user(user_id)
