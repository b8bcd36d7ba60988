"""votebot_db — PostgreSQL persistence layer for the voter-registration bot.

This package provides the ORM models, the async engine factory, and SQL
implementations of the chain SDK's user / conversation / message stores.
It is designed to be consumed by the FastAPI server.
"""

from votebot_db.config import DatabaseSettings, load_database_settings
from votebot_db.engine import dispose_engine, get_engine, get_session_factory
from votebot_db.models import (
    ConversationRecipient,
    ConversationRecord,
    MessageRecord,
    UserRecord,
)
from votebot_db.repository import (
    SqlConversationStore,
    SqlMessageStore,
    SqlUserStore,
    build_stores,
)

__all__ = [
    "DatabaseSettings",
    "load_database_settings",
    "ConversationRecipient",
    "ConversationRecord",
    "MessageRecord",
    "UserRecord",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "SqlConversationStore",
    "SqlMessageStore",
    "SqlUserStore",
    "build_stores",
]
