"""Record models — the contract between the engine and its collaborators.

These models are what the user / conversation / message stores hand back.
They are intentionally decoupled from the ORM models in ``votebot_db`` so
that the engine never sees database internals and can run against the
in-memory stores in tests.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationStatus(str, enum.Enum):
    """Lifecycle states for a conversation.

    Transitions:
        active -> completed  (a final step was reached)
        active -> closed     (user cancelled, or a terminal data error)
        completed/closed -> active  (goto_step jumped to a non-final step)
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    CLOSED = "closed"


class User(BaseModel):
    """A dialogue participant.

    ``settings`` is a free-form mapping; chain steps write their answers
    into ``settings.<step name>`` by default.
    """

    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    settings: dict[str, Any] = Field(default_factory=dict)
    active: bool = True


class Conversation(BaseModel):
    """One running dialogue: which chain, and where in it we are."""

    id: int
    # User who started the conversation (the bot for bot-initiated ones)
    user_id: int
    chain: str
    step: str
    status: ConversationStatus = ConversationStatus.ACTIVE
    recipients: list[int] = Field(default_factory=list)
    # Free-form values chains may write via "conversation.data.*" targets
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def active(self) -> bool:
        return self.status == ConversationStatus.ACTIVE


class Message(BaseModel):
    """A single message in a conversation, inbound or outbound."""

    id: int
    user_id: int
    conversation_id: int
    body: str
    created_at: datetime = Field(default_factory=_now)
