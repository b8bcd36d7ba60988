"""Conversation endpoints — start, incoming SMS, jump to step, get.

``POST /conversations`` is the "get a friend registered" entry point: the
bot starts a conversation with every recipient.  ``POST
/conversations/incoming`` is the SMS gateway webhook; it always answers
``{"thanks": true}`` so the gateway never retries a message.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from votebot_chains.constants import DEFAULT_CHAIN, REFERRAL_START_STEP
from votebot_chains.engine import ConversationEngine
from votebot_chains.interfaces import Stores
from votebot_chains.models.conversation import Conversation, Message

from votebot_server.dependencies import get_db, get_engine, get_stores

logger = logging.getLogger(__name__)

router = APIRouter(tags=["conversations"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateConversationRequest(BaseModel):
    """Body for POST /conversations."""
    recipients: list[str] = Field(min_length=1)
    chain: str = DEFAULT_CHAIN
    start: str | None = None


class IncomingMessage(BaseModel):
    """Body for POST /conversations/incoming (SMS gateway webhook)."""
    model_config = ConfigDict(populate_by_name=True)

    from_: str = Field(alias="from")
    body: str = ""


class GotoStepRequest(BaseModel):
    """Body for POST /conversations/{id}/goto."""
    user_id: int
    step: str


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/conversations", status_code=201)
async def create_conversations(
    body: CreateConversationRequest,
    stores: Stores = Depends(get_stores),
    engine: ConversationEngine = Depends(get_engine),
) -> list[Conversation]:
    """Start a bot conversation with each recipient.

    Recipients are usernames (phone numbers) and are created on first
    contact.  The default chain starts at its referral intro unless
    ``start`` says otherwise.
    """
    start = body.start
    if start is None and body.chain == DEFAULT_CHAIN:
        start = REFERRAL_START_STEP

    conversations = []
    for username in body.recipients:
        user = await stores.users.get_by_username(username)
        if user is None:
            user = await stores.users.create(username)
        conversations.append(
            await engine.start(stores, chain=body.chain, user_id=user.id, start=start)
        )
    return conversations


@router.post("/conversations/incoming")
async def incoming(
    message: IncomingMessage,
    db: AsyncSession = Depends(get_db),
    stores: Stores = Depends(get_stores),
    engine: ConversationEngine = Depends(get_engine),
) -> dict:
    """Route an incoming SMS to the sender's conversation.

    Failures are logged and rolled back, but the gateway is always
    acknowledged.
    """
    logger.info("Incoming message from %s", message.from_)
    try:
        await engine.receive(stores, username=message.from_, body=message.body)
    except Exception:
        logger.exception("Failed to process incoming message from %s", message.from_)
        await db.rollback()
    return {"thanks": True}


@router.post("/conversations/{conversation_id}/goto")
async def goto_step(
    conversation_id: int,
    body: GotoStepRequest,
    stores: Stores = Depends(get_stores),
    engine: ConversationEngine = Depends(get_engine),
) -> Message:
    """Move a conversation to a named step and send that step's message.

    Raises 404 if the conversation or user does not exist.
    """
    return await engine.goto_step(
        stores,
        user_id=body.user_id,
        conversation_id=conversation_id,
        step=body.step,
    )


@router.get("/conversations/{conversation_id}")
async def get_conversation(
    conversation_id: int,
    stores: Stores = Depends(get_stores),
) -> Conversation:
    """Get a conversation by id.  Raises 404 if it does not exist."""
    conversation = await stores.conversations.get(conversation_id)
    if conversation is None:
        raise ValueError(f"Conversation not found: {conversation_id}")
    return conversation
