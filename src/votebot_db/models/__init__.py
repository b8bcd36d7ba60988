"""ORM models for votebot_db."""

from votebot_db.models.base import Base
from votebot_db.models.conversation import (
    ConversationRecipient,
    ConversationRecord,
    MessageRecord,
)
from votebot_db.models.user import UserRecord

__all__ = [
    "Base",
    "ConversationRecipient",
    "ConversationRecord",
    "MessageRecord",
    "UserRecord",
]
