"""Receipt endpoint — the registration form service reports a submission.

The receipt moves the user's most recent conversation to the step for
its outcome and flags the result on the user's settings.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from votebot_chains.engine import ConversationEngine
from votebot_chains.interfaces import Stores
from votebot_chains.models.conversation import Message

from votebot_server.dependencies import get_engine, get_stores

router = APIRouter(tags=["receipts"])


class ReceiptRequest(BaseModel):
    """Body for POST /receipt/{username}.  Missing fields mean a failure."""
    status: str = "failure"
    form_class: str = "unknown"
    reference: str | int | None = None


@router.post("/receipt/{username}")
async def create_receipt(
    username: str,
    body: ReceiptRequest,
    stores: Stores = Depends(get_stores),
    engine: ConversationEngine = Depends(get_engine),
) -> Message:
    """Apply a submission receipt and return the message sent to the user.

    Raises 404 if the user has no conversation.
    """
    return await engine.receipt(
        stores,
        username=username,
        status=body.status,
        form_class=body.form_class,
        reference=body.reference,
    )
