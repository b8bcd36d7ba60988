"""ConversationEngine — runs one dialogue turn at a time over a chain.

Stateless engine pattern: each call loads the conversation and user from
the stores it is handed, processes the turn, persists changes through
those same stores and sends the bot's reply by creating a message.  The
only in-memory state is the per-conversation lock registry.

The engine accepts a :class:`Stores` bundle from the caller so that the
caller (typically a FastAPI endpoint holding one ``AsyncSession``)
controls transaction boundaries.

Turns on one conversation never overlap.  Inside a process the lock
registry queues them; every turn then loads the conversation through
``ConversationStore.get_for_update``, whose row lock lasts until the
caller commits.  A turn that gets the in-process lock before the previous
turn's transaction has committed therefore still waits for that commit,
and processes sharing the database are serialized the same way.

Turn outline (:meth:`ConversationEngine.advance`):

    closed/completed conversation  -> message discarded, nothing sent
    cancel word ("stop", "quit")   -> conversation closed
    blank / invalid answer         -> "<error>. Please try again!"
    disqualifying answer           -> "<error>." and conversation closed
    valid answer                   -> fields written, next step resolved,
                                      rendered and sent
    anything unexpected            -> generic apology, step unchanged
"""

from __future__ import annotations

import logging
from typing import Any

from votebot_chains import language
from votebot_chains.assignments import RecordWriters
from votebot_chains.catalog import Chain, ChainStore
from votebot_chains.constants import (
    APOLOGY_MESSAGE,
    BOT_USER_ID,
    DEFAULT_CHAIN,
    MAX_REDIRECTS,
    RECEIPT_FAILURE_STEP,
    RECEIPT_PAPER_FORM_STEP,
    RECEIPT_SUCCESS_STEP,
    RETRY_SUFFIX,
)
from votebot_chains.errors import RecoverableDataError, TerminalDataError
from votebot_chains.interfaces import PlaceLookup, Stores
from votebot_chains.locks import ConversationLocks
from votebot_chains.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    User,
)
from votebot_chains.render import MessageRenderer
from votebot_chains.resolver import ResolvedStep, StepResolver
from votebot_chains.validators import ValidationContext, validate_step

logger = logging.getLogger(__name__)


def _sentence(text: str) -> str:
    """Terminate ``text`` with a period unless it already ends a sentence."""
    text = text.strip()
    if text.endswith((".", "!", "?")):
        return text
    return text + "."


def retry_message(error: str) -> str:
    """Reply for a recoverable data error."""
    if not error.strip():
        return RETRY_SUFFIX
    return f"{_sentence(error)} {RETRY_SUFFIX}"


class ConversationEngine:
    """Drives conversations through the chains of a loaded :class:`ChainStore`.

    Args:
        store: a loaded :class:`ChainStore`
        lookup: postal-code lookup used by the ``zip`` validator.  Without
            one, syntactically valid codes are accepted as-is.
        writers: record-kind registry for field assignments
        max_redirects: bound on pre-transition redirects per resolution
        bot_user_id: user id the bot's messages are sent as
    """

    def __init__(
        self,
        store: ChainStore,
        *,
        lookup: PlaceLookup | None = None,
        writers: RecordWriters | None = None,
        max_redirects: int = MAX_REDIRECTS,
        bot_user_id: int = BOT_USER_ID,
    ) -> None:
        self._store = store
        self._ctx = ValidationContext(lookup=lookup)
        self._writers = writers or RecordWriters()
        self._resolver = StepResolver(max_redirects)
        self._renderer = MessageRenderer()
        self._locks = ConversationLocks()
        self._bot_user_id = bot_user_id

    @property
    def store(self) -> ChainStore:
        return self._store

    # ==================================================================
    # Conversation lifecycle
    # ==================================================================

    async def start(
        self,
        stores: Stores,
        *,
        chain: str,
        user_id: int,
        start: str | None = None,
    ) -> Conversation:
        """Start a bot-initiated conversation and send its first message.

        The conversation is positioned at ``start`` (or the chain's start
        step), after following any pre-transition redirects.

        Raises:
            ValueError: if the user does not exist
            ConfigurationError: unknown chain or step
        """
        conversation, _ = await self._start(stores, chain=chain, user_id=user_id, start=start)
        return conversation

    async def goto_step(
        self,
        stores: Stores,
        *,
        user_id: int,
        conversation_id: int,
        step: str,
    ) -> Message:
        """Move a conversation to ``step`` and send that step's message.

        Used when an outside event decides where the dialogue continues
        (e.g. a registration receipt).  Reopens a closed or completed
        conversation unless the target step is final.

        Raises:
            ValueError: if the conversation or user does not exist
            ConfigurationError: unknown chain or step
        """
        async with self._locks.hold(conversation_id):
            conversation = await self._load_conversation(stores, conversation_id)
            user = await self._load_user(stores, user_id)
            return await self._jump(stores, conversation, user, step)

    async def receipt(
        self,
        stores: Stores,
        *,
        username: str,
        status: str = "failure",
        form_class: str = "unknown",
        reference: Any = None,
    ) -> Message:
        """Record a registration-form submission receipt for ``username``.

        The receipt decides where the user's most recent conversation
        continues:

            status "success"        -> processed   (settings.submit_success,
                                                    settings.submit_form_type)
            form_class "NVRA"       -> incomplete  (settings.failed_pdf,
                                                    settings.failure_reference)
            anything else           -> submit      (settings.failed_ovr)

        Raises:
            ValueError: if the user or their conversation does not exist
            ConfigurationError: the chain lacks the receipt step
        """
        user = await stores.users.get_by_username(username)
        if user is None:
            raise ValueError(f"User not found: {username}")
        conversation = await stores.conversations.get_recent_by_user(user.id)
        if conversation is None:
            raise ValueError(f"Conversation not found for user: {username}")

        if status == "success":
            step = RECEIPT_SUCCESS_STEP
            flags = {"submit_success": True, "submit_form_type": form_class}
        elif form_class == "NVRA":
            step = RECEIPT_PAPER_FORM_STEP
            flags = {"failed_pdf": True, "failure_reference": reference}
        else:
            step = RECEIPT_FAILURE_STEP
            flags = {"failed_ovr": True}
        logger.info(
            "Receipt for %s: status=%s form=%s -> %s",
            username, status, form_class, step,
        )

        async with self._locks.hold(conversation.id):
            conversation = await self._load_conversation(stores, conversation.id)
            user = await self._load_user(stores, user.id)
            user = await stores.users.update(user.id, {"settings": {**user.settings, **flags}})
            return await self._jump(stores, conversation, user, step)

    # ==================================================================
    # Turn API
    # ==================================================================

    async def advance(
        self,
        stores: Stores,
        *,
        user_id: int,
        conversation: Conversation,
        body: str | None,
    ) -> Message | None:
        """Process one incoming message and send the bot's reply.

        Returns the message sent, or ``None`` when nothing was sent (the
        conversation is closed or finished, the user cancelled without a
        cancel message, or even the apology could not be delivered).

        Raises:
            ValueError: if the conversation or user does not exist
        """
        async with self._locks.hold(conversation.id):
            # Re-read under the locks: a turn that held them may have moved on
            current = await self._load_conversation(stores, conversation.id)
            user = await self._load_user(stores, user_id)

            if not current.active:
                logger.info(
                    "Conversation %s is %s, discarding message",
                    current.id, current.status.value,
                )
                return None

            try:
                return await self._turn(stores, current, user, body)
            except Exception:
                logger.exception(
                    "Turn failed for conversation %s at %s.%s",
                    current.id, current.chain, current.step,
                )

            try:
                return await self._send(stores, current.id, APOLOGY_MESSAGE)
            except Exception:
                logger.critical(
                    "Could not send apology for conversation %s, giving up",
                    current.id, exc_info=True,
                )
                return None

    async def receive(
        self,
        stores: Stores,
        *,
        username: str,
        body: str | None,
    ) -> Message | None:
        """Route an incoming SMS from ``username``.

        Creates the user on first contact.  A user with no conversation
        gets a new one on the default chain; otherwise the message is
        recorded on their most recent conversation and advanced.
        """
        user = await stores.users.get_by_username(username)
        if user is None:
            user = await stores.users.create(username)
            logger.info("Created user %s for %s", user.id, username)

        conversation = await stores.conversations.get_recent_by_user(user.id)
        if conversation is None:
            _, message = await self._start(stores, chain=DEFAULT_CHAIN, user_id=user.id)
            return message

        await stores.messages.create(user.id, conversation.id, body or "")
        return await self.advance(stores, user_id=user.id, conversation=conversation, body=body)

    # ==================================================================
    # Internals
    # ==================================================================

    async def _turn(
        self,
        stores: Stores,
        conversation: Conversation,
        user: User,
        body: str | None,
    ) -> Message | None:
        chain = self._store.get_chain(conversation.chain)
        step = chain.get_step(conversation.step)

        if step.final:
            logger.info("Conversation %s already finished at %s", conversation.id, step.name)
            return None

        if language.is_cancel(body):
            return await self._cancel(stores, chain, conversation)

        try:
            transition = await validate_step(step, body, self._ctx)
        except RecoverableDataError as exc:
            logger.warning(
                "Invalid answer for %s.%s in conversation %s: %s",
                chain.name, step.name, conversation.id, exc.message or "(blank)",
            )
            return await self._send(stores, conversation.id, retry_message(exc.message))
        except TerminalDataError as exc:
            logger.info(
                "Conversation %s ended at %s.%s: %s",
                conversation.id, chain.name, step.name, exc.message,
            )
            await stores.conversations.close(conversation.id)
            return await self._send(stores, conversation.id, _sentence(exc.message))

        records = await self._writers.apply(
            stores,
            transition.assignments,
            {"user": user, "conversation": conversation},
        )
        user = records["user"]
        conversation = records["conversation"]

        resolved = self._resolver.resolve(
            chain,
            transition.next,
            transition=transition,
            conversation=conversation,
            user=user,
        )
        logger.info(
            "Conversation %s advanced %s -> %s",
            conversation.id, step.name, resolved.name,
        )
        return await self._show(stores, conversation, user, resolved)

    async def _start(
        self,
        stores: Stores,
        *,
        chain: str,
        user_id: int,
        start: str | None = None,
    ) -> tuple[Conversation, Message]:
        chain_obj = self._store.get_chain(chain)
        user = await self._load_user(stores, user_id)
        resolved = self._resolver.resolve(chain_obj, start or chain_obj.start, user=user)
        body = self._renderer.render(resolved.step.msg, user)

        conversation = await stores.conversations.create(
            user_id=self._bot_user_id,
            chain=chain_obj.name,
            step=resolved.name,
            recipients=[user.id],
        )
        if resolved.step.final:
            conversation = await stores.conversations.update(
                conversation.id, {"status": ConversationStatus.COMPLETED},
            )
        message = await self._send(stores, conversation.id, body)
        logger.info(
            "Started conversation %s on %s.%s for user %s",
            conversation.id, chain_obj.name, resolved.name, user.id,
        )
        return conversation, message

    async def _jump(
        self,
        stores: Stores,
        conversation: Conversation,
        user: User,
        step: str,
    ) -> Message:
        chain = self._store.get_chain(conversation.chain)
        resolved = self._resolver.resolve(chain, step, conversation=conversation, user=user)
        logger.info(
            "Conversation %s jumped from %s to %s",
            conversation.id, conversation.step, resolved.name,
        )
        return await self._show(stores, conversation, user, resolved)

    async def _show(
        self,
        stores: Stores,
        conversation: Conversation,
        user: User,
        resolved: ResolvedStep,
    ) -> Message:
        """Render ``resolved``, move the conversation onto it and send it."""
        body = self._renderer.render(resolved.step.msg, user)
        status = ConversationStatus.COMPLETED if resolved.step.final else ConversationStatus.ACTIVE
        await stores.conversations.update(
            conversation.id, {"step": resolved.name, "status": status},
        )
        if resolved.step.final:
            logger.info("Conversation %s completed at %s", conversation.id, resolved.name)
        return await self._send(stores, conversation.id, body)

    async def _cancel(
        self, stores: Stores, chain: Chain, conversation: Conversation
    ) -> Message | None:
        logger.info("User cancelled conversation %s at %s", conversation.id, conversation.step)
        await stores.conversations.close(conversation.id)
        if not chain.definition.cancel_msg:
            return None
        return await self._send(stores, conversation.id, chain.definition.cancel_msg)

    async def _send(self, stores: Stores, conversation_id: int, body: str) -> Message:
        return await stores.messages.create(self._bot_user_id, conversation_id, body)

    async def _load_conversation(self, stores: Stores, conversation_id: int) -> Conversation:
        """Load and lock a conversation or raise ValueError if not found."""
        conversation = await stores.conversations.get_for_update(conversation_id)
        if conversation is None:
            raise ValueError(f"Conversation not found: {conversation_id}")
        return conversation

    async def _load_user(self, stores: Stores, user_id: int) -> User:
        """Load a user or raise ValueError if not found."""
        user = await stores.users.get(user_id)
        if user is None:
            raise ValueError(f"User not found: {user_id}")
        return user
