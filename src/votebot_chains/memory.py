"""In-memory store implementations.

Dict-backed versions of the store interfaces for tests, demos and the
``scripts/simulate_chain.py`` driver.  Records are copied on the way in
and out, so callers never share state with the store.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any

from votebot_chains.constants import BOT_USER_ID
from votebot_chains.interfaces import ConversationStore, MessageStore, Stores, UserStore
from votebot_chains.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    User,
)


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self.users: dict[int, User] = {}
        # Ids below the bot's are never handed out
        self._ids = itertools.count(BOT_USER_ID + 1)

    async def get(self, user_id: int) -> User | None:
        user = self.users.get(user_id)
        return user.model_copy(deep=True) if user is not None else None

    async def get_by_username(self, username: str) -> User | None:
        for user in self.users.values():
            if user.username == username:
                return user.model_copy(deep=True)
        return None

    async def create(self, username: str, **fields: Any) -> User:
        user = User(id=next(self._ids), username=username, **fields)
        self.users[user.id] = user
        return user.model_copy(deep=True)

    async def update(self, user_id: int, data: dict[str, Any]) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise ValueError(f"User not found: {user_id}")
        updated = User.model_validate({**user.model_dump(), **data})
        self.users[user_id] = updated
        return updated.model_copy(deep=True)


class InMemoryConversationStore(ConversationStore):
    def __init__(self) -> None:
        self.conversations: dict[int, Conversation] = {}
        self._ids = itertools.count(1)

    async def get(self, conversation_id: int) -> Conversation | None:
        conversation = self.conversations.get(conversation_id)
        return conversation.model_copy(deep=True) if conversation is not None else None

    async def create(
        self,
        *,
        user_id: int,
        chain: str,
        step: str,
        recipients: list[int],
    ) -> Conversation:
        conversation = Conversation(
            id=next(self._ids),
            user_id=user_id,
            chain=chain,
            step=step,
            recipients=list(recipients),
        )
        self.conversations[conversation.id] = conversation
        return conversation.model_copy(deep=True)

    async def update(self, conversation_id: int, data: dict[str, Any]) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise ValueError(f"Conversation not found: {conversation_id}")
        updated = Conversation.model_validate({
            **conversation.model_dump(),
            **data,
            "updated_at": datetime.now(timezone.utc),
        })
        self.conversations[conversation_id] = updated
        return updated.model_copy(deep=True)

    async def close(self, conversation_id: int) -> Conversation:
        return await self.update(conversation_id, {"status": ConversationStatus.CLOSED})

    async def get_recent_by_user(self, user_id: int) -> Conversation | None:
        # Recipients only, like the SQL store; highest id is the newest
        mine = [c for c in self.conversations.values() if user_id in c.recipients]
        if not mine:
            return None
        return max(mine, key=lambda c: c.id).model_copy(deep=True)


class InMemoryMessageStore(MessageStore):
    def __init__(self) -> None:
        self.messages: list[Message] = []
        self._ids = itertools.count(1)

    async def create(self, user_id: int, conversation_id: int, body: str) -> Message:
        message = Message(
            id=next(self._ids),
            user_id=user_id,
            conversation_id=conversation_id,
            body=body,
        )
        self.messages.append(message)
        return message.model_copy(deep=True)

    def for_conversation(self, conversation_id: int) -> list[Message]:
        return [m for m in self.messages if m.conversation_id == conversation_id]


def memory_stores() -> Stores:
    """Build a fresh, empty in-memory :class:`Stores` bundle."""
    return Stores(
        users=InMemoryUserStore(),
        conversations=InMemoryConversationStore(),
        messages=InMemoryMessageStore(),
    )
