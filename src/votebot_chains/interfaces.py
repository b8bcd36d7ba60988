"""Abstract interfaces for the engine's external collaborators.

These ABCs define the contract that storage and lookup implementations
must fulfil.  The SDK ships two families of implementations:

  - ``votebot_chains.memory`` — in-process dict-backed stores (tests, demos)
  - ``votebot_db.repository`` — async SQLAlchemy stores (production)

Typical integration flow::

    store = ChainStore()
    store.load()
    engine = ConversationEngine(store, lookup=ZippopotamLookup())

    stores = Stores(users=..., conversations=..., messages=...)
    conversation = await engine.start(stores, chain="vote_1", user_id=42)
    reply = await engine.advance(
        stores, user_id=42, conversation=conversation, body="Ada",
    )

Collaborators are expected to retry or fail fast on their own; the engine
never retries a collaborator call.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from votebot_chains.models.conversation import Conversation, Message, User
from votebot_chains.models.lookup import PostalCode


class UserStore(ABC):
    """Read/write access to user records."""

    @abstractmethod
    async def get(self, user_id: int) -> User | None:
        """Return the user, or ``None`` if there is no such user."""
        ...

    @abstractmethod
    async def get_by_username(self, username: str) -> User | None:
        """Look a user up by username (e.g. a normalized phone number)."""
        ...

    @abstractmethod
    async def create(self, username: str, **fields: Any) -> User:
        """Insert a new user and return it."""
        ...

    @abstractmethod
    async def update(self, user_id: int, data: dict[str, Any]) -> User:
        """Apply a partial record and return the updated user.

        Top-level keys replace the stored values; ``settings`` is written
        as a whole, so callers pass the merged mapping.
        """
        ...


class ConversationStore(ABC):
    """Read/write access to conversation records."""

    @abstractmethod
    async def get(self, conversation_id: int) -> Conversation | None:
        ...

    async def get_for_update(self, conversation_id: int) -> Conversation | None:
        """Read a conversation a turn is about to change.

        Database-backed stores lock the row until the caller's transaction
        ends, so a second turn on the same conversation waits for the
        first one's commit and then reads its result.  Stores with no
        transactions just read.
        """
        return await self.get(conversation_id)

    @abstractmethod
    async def create(
        self,
        *,
        user_id: int,
        chain: str,
        step: str,
        recipients: list[int],
    ) -> Conversation:
        """Insert a new active conversation positioned at ``step``."""
        ...

    @abstractmethod
    async def update(self, conversation_id: int, data: dict[str, Any]) -> Conversation:
        """Apply a partial record and return the updated conversation."""
        ...

    @abstractmethod
    async def close(self, conversation_id: int) -> Conversation:
        """Mark the conversation closed.  Later turns are discarded."""
        ...

    @abstractmethod
    async def get_recent_by_user(self, user_id: int) -> Conversation | None:
        """Return the most recent conversation the user takes part in."""
        ...


class MessageStore(ABC):
    """Message persistence.  Creating a message is also how it is sent."""

    @abstractmethod
    async def create(self, user_id: int, conversation_id: int, body: str) -> Message:
        ...


class PlaceLookup(ABC):
    """Postal code → places lookup service."""

    @abstractmethod
    async def find(self, code: str) -> PostalCode:
        """Resolve a postal code.

        Raises:
            LookupNotFoundError: if the code is unknown.
            TransportError: if the service could not be reached.
        """
        ...


@dataclass(frozen=True)
class Stores:
    """The storage collaborators one turn works against.

    Built per request (the SQL stores share one ``AsyncSession``), so the
    engine itself stays a process-wide singleton.
    """

    users: UserStore
    conversations: ConversationStore
    messages: MessageStore
