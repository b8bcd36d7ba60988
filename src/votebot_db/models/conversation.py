"""Conversation, recipient and message ORM models."""

from datetime import datetime

from sqlalchemy import BigInteger, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column

from votebot_chains.models.conversation import ConversationStatus
from votebot_db.models.base import Base, utcnow


class ConversationRecord(Base):
    """One running dialogue: chain name, current step and status."""

    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    # Starter of the conversation (the bot user for bot-initiated ones)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False, index=True,
    )
    chain: Mapped[str] = mapped_column(String(64), nullable=False)
    step: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(
        # Store as the lowercase string value, not the Python name
        String(20),
        nullable=False,
        default=ConversationStatus.ACTIVE.value,
        index=True,
    )
    # Values written by chains through "conversation.data.*" targets
    data: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationRecord(id={self.id}, chain={self.chain!r}, "
            f"step={self.step!r}, status={self.status!r})>"
        )


class ConversationRecipient(Base):
    """Membership of a user in a conversation."""

    __tablename__ = "conversations_recipients"

    conversation_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("conversations.id"), primary_key=True,
    )
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow,
    )

    __table_args__ = (
        # "Most recent conversation of a user" lookups
        Index("ix_recipients_user_created", "user_id", "created_at"),
    )


class MessageRecord(Base):
    """A message sent into a conversation, by the bot or a user."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False,
    )
    conversation_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("conversations.id"), nullable=False, index=True,
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow,
    )
