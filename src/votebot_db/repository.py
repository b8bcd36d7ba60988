"""Async SQLAlchemy implementations of the chain SDK's store interfaces.

Each store wraps the ``AsyncSession`` of the current request, so the
caller controls transaction boundaries: stores ``flush()`` to populate
ids and defaults but never commit.

ORM rows are converted to the SDK's pydantic records on the way out; the
engine never sees ORM objects.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from votebot_chains.interfaces import ConversationStore, MessageStore, Stores, UserStore
from votebot_chains.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    User,
)
from votebot_db.models.conversation import (
    ConversationRecipient,
    ConversationRecord,
    MessageRecord,
)
from votebot_db.models.user import UserRecord

# Columns a partial update may touch
_USER_COLUMNS = frozenset({"first_name", "last_name", "settings", "active"})
_CONVERSATION_COLUMNS = frozenset({"chain", "step", "status", "data"})


def _to_user(row: UserRecord) -> User:
    return User.model_validate(row, from_attributes=True)


class SqlUserStore(UserStore):
    """Read/write operations on the ``users`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get(self, user_id: int) -> User | None:
        row = await self._db.get(UserRecord, user_id)
        return _to_user(row) if row is not None else None

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(UserRecord).where(UserRecord.username == username)
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        return _to_user(row) if row is not None else None

    async def create(self, username: str, **fields: Any) -> User:
        """Insert a new user row.  The caller must commit to persist."""
        row = UserRecord(username=username, settings=fields.pop("settings", {}), **fields)
        self._db.add(row)
        await self._db.flush()  # Populate id and timestamps
        return _to_user(row)

    async def update(self, user_id: int, data: dict[str, Any]) -> User:
        row = await self._db.get(UserRecord, user_id)
        if row is None:
            raise ValueError(f"User not found: {user_id}")
        for key, value in data.items():
            if key not in _USER_COLUMNS:
                raise ValueError(f"Cannot update user field: {key}")
            # JSONB columns are replaced wholesale so the change is detected
            setattr(row, key, dict(value) if isinstance(value, dict) else value)
        row.updated_at = datetime.now(timezone.utc)
        await self._db.flush()
        return _to_user(row)


class SqlConversationStore(ConversationStore):
    """Read/write operations on ``conversations`` and their recipients."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def _to_conversation(self, row: ConversationRecord) -> Conversation:
        stmt = select(ConversationRecipient.user_id).where(
            ConversationRecipient.conversation_id == row.id,
        )
        result = await self._db.execute(stmt)
        return Conversation(
            id=row.id,
            user_id=row.user_id,
            chain=row.chain,
            step=row.step,
            status=ConversationStatus(row.status),
            recipients=list(result.scalars().all()),
            data=row.data or {},
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def get(self, conversation_id: int) -> Conversation | None:
        row = await self._db.get(ConversationRecord, conversation_id)
        return await self._to_conversation(row) if row is not None else None

    async def get_for_update(self, conversation_id: int) -> Conversation | None:
        """SELECT ... FOR UPDATE: the row stays locked until commit/rollback.

        ``populate_existing`` refreshes a row already in the identity map,
        so the caller sees what the previous lock holder committed.
        """
        stmt = (
            select(ConversationRecord)
            .where(ConversationRecord.id == conversation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        return await self._to_conversation(row) if row is not None else None

    async def create(
        self,
        *,
        user_id: int,
        chain: str,
        step: str,
        recipients: list[int],
    ) -> Conversation:
        """Insert a conversation plus its recipient rows.

        The caller must ``await db.commit()`` to persist.
        """
        row = ConversationRecord(
            user_id=user_id,
            chain=chain,
            step=step,
            status=ConversationStatus.ACTIVE.value,
            data={},
        )
        self._db.add(row)
        await self._db.flush()
        for recipient in recipients:
            self._db.add(ConversationRecipient(conversation_id=row.id, user_id=recipient))
        await self._db.flush()
        return await self._to_conversation(row)

    async def update(self, conversation_id: int, data: dict[str, Any]) -> Conversation:
        row = await self._db.get(ConversationRecord, conversation_id)
        if row is None:
            raise ValueError(f"Conversation not found: {conversation_id}")
        for key, value in data.items():
            if key not in _CONVERSATION_COLUMNS:
                raise ValueError(f"Cannot update conversation field: {key}")
            if key == "status":
                value = ConversationStatus(value).value
            elif isinstance(value, dict):
                value = dict(value)
            setattr(row, key, value)
        row.updated_at = datetime.now(timezone.utc)
        await self._db.flush()
        return await self._to_conversation(row)

    async def close(self, conversation_id: int) -> Conversation:
        return await self.update(conversation_id, {"status": ConversationStatus.CLOSED})

    async def get_recent_by_user(self, user_id: int) -> Conversation | None:
        """Most recent conversation the user was added to."""
        stmt = (
            select(ConversationRecord)
            .join(
                ConversationRecipient,
                ConversationRecipient.conversation_id == ConversationRecord.id,
            )
            .where(ConversationRecipient.user_id == user_id)
            .order_by(ConversationRecipient.created_at.desc(), ConversationRecord.id.desc())
            .limit(1)
        )
        result = await self._db.execute(stmt)
        row = result.scalar_one_or_none()
        return await self._to_conversation(row) if row is not None else None


class SqlMessageStore(MessageStore):
    """Inserts into the ``messages`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def create(self, user_id: int, conversation_id: int, body: str) -> Message:
        row = MessageRecord(user_id=user_id, conversation_id=conversation_id, body=body)
        self._db.add(row)
        await self._db.flush()
        return Message.model_validate(row, from_attributes=True)


def build_stores(db: AsyncSession) -> Stores:
    """Bundle the SQL stores around one request's session."""
    return Stores(
        users=SqlUserStore(db),
        conversations=SqlConversationStore(db),
        messages=SqlMessageStore(db),
    )
