"""Public model re-exports for votebot_chains.

Consumers should import from ``votebot_chains.models`` rather than
reaching into sub-modules directly.
"""

# --- Chain definitions ---
from votebot_chains.models.chain import (
    ChainDefinition,
    JurisdictionConfig,
    StepDefinition,
)

# --- Records ---
from votebot_chains.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    User,
)

# --- Lookup ---
from votebot_chains.models.lookup import Place, PostalCode

# --- Transitions ---
from votebot_chains.models.transition import (
    FieldAssignment,
    Transition,
    Validated,
)

__all__ = [
    # Chain
    "ChainDefinition",
    "JurisdictionConfig",
    "StepDefinition",
    # Records
    "Conversation",
    "ConversationStatus",
    "Message",
    "User",
    # Lookup
    "Place",
    "PostalCode",
    # Transitions
    "FieldAssignment",
    "Transition",
    "Validated",
]
