"""votebot_chains — conversation chain SDK for the voter-registration bot.

Public API:
    ConversationEngine — runs dialogue turns (start / advance / goto_step / receive)
    ChainStore         — loads chain YAML files into validated, typed chains
    Chain              — one loaded chain with its bound hooks
    StepResolver       — follows pre-transition redirects to a concrete step
    QuestionScheduler  — picks the next jurisdiction-specific question
    MessageRenderer    — renders step messages against a user record
    ZippopotamLookup   — postal-code lookup client (httpx)

Collaborator interfaces:
    UserStore, ConversationStore, MessageStore, PlaceLookup, Stores

Errors:
    ChainError, DataError, RecoverableDataError, TerminalDataError,
    ConfigurationError, TransportError, LookupNotFoundError
"""

from votebot_chains.catalog import Chain, ChainStore
from votebot_chains.engine import ConversationEngine
from votebot_chains.errors import (
    ChainError,
    ConfigurationError,
    DataError,
    LookupNotFoundError,
    RecoverableDataError,
    TerminalDataError,
    TransportError,
)
from votebot_chains.interfaces import (
    ConversationStore,
    MessageStore,
    PlaceLookup,
    Stores,
    UserStore,
)
from votebot_chains.lookup import ZippopotamLookup
from votebot_chains.models import (
    Conversation,
    ConversationStatus,
    Message,
    User,
)
from votebot_chains.render import MessageRenderer
from votebot_chains.resolver import ResolvedStep, StepResolver
from votebot_chains.scheduler import QuestionScheduler

__all__ = [
    # Engine & store
    "Chain",
    "ChainStore",
    "ConversationEngine",
    "MessageRenderer",
    "QuestionScheduler",
    "ResolvedStep",
    "StepResolver",
    "ZippopotamLookup",
    # Collaborators
    "ConversationStore",
    "MessageStore",
    "PlaceLookup",
    "Stores",
    "UserStore",
    # Records
    "Conversation",
    "ConversationStatus",
    "Message",
    "User",
    # Errors
    "ChainError",
    "ConfigurationError",
    "DataError",
    "LookupNotFoundError",
    "RecoverableDataError",
    "TerminalDataError",
    "TransportError",
]
