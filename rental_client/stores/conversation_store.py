from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from rental_client.core.errors import ApiError, ConflictError
from rental_client.schemas.conversation import Conversation, PartnerSummary, PropertySummary
from rental_client.schemas.message import Message
from rental_client.services.messages_api import MessagesApi

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimisticPreview:
    """What ``apply_optimistic_send`` replaced, so the send can be rolled back."""

    previous: Conversation
    index: int
    applied: Conversation


class ConversationStore:
    def __init__(self, api: MessagesApi) -> None:
        self._api = api
        self._conversations: list[Conversation] = []
        self._active_id: str | None = None
        self._issued_loads = 0
        self._provisional: set[str] = set()
        self._read_acks: set[asyncio.Task] = set()
        self.last_error: ApiError | None = None

    @property
    def conversations(self) -> tuple[Conversation, ...]:
        return tuple(self._conversations)

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def active(self) -> Conversation | None:
        return self.get(self._active_id) if self._active_id else None

    @property
    def total_unread(self) -> int:
        return sum(conversation.unread_count for conversation in self._conversations)

    def get(self, conversation_id: str) -> Conversation | None:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    def _index_of(self, conversation_id: str) -> int | None:
        for index, conversation in enumerate(self._conversations):
            if conversation.id == conversation_id:
                return index
        return None

    def _replace(self, conversation: Conversation) -> None:
        index = self._index_of(conversation.id)
        if index is None:
            self._conversations.insert(0, conversation)
        else:
            self._conversations[index] = conversation

    async def load(self) -> tuple[Conversation, ...]:
        """Replace the list with the server's; only the last-issued load applies.

        A failed load keeps the previous list and re-raises for a retry prompt.
        """
        self._issued_loads += 1
        ticket = self._issued_loads
        try:
            conversations = await self._api.list_conversations()
        except ApiError as exc:
            if ticket == self._issued_loads:
                self.last_error = exc
            logger.warning("Failed to load conversations: %s", exc)
            raise

        if ticket != self._issued_loads:
            logger.debug("Discarding conversation list from superseded load %d", ticket)
            return self.conversations

        self._conversations = list(conversations)
        self._provisional.clear()
        self.last_error = None
        return self.conversations

    def select(self, conversation_id: str, *, acknowledge: bool = True) -> Conversation | None:
        """Make a conversation active and zero its unread count right away.

        The read acknowledgement is best-effort: it runs in the background
        and the local zero is kept even if it fails. Pass
        ``acknowledge=False`` when the caller is about to fetch the thread,
        which marks it read on the server anyway. Acknowledging needs a
        running event loop; without one ``RuntimeError`` is raised before
        any state changes.
        """
        loop = asyncio.get_running_loop() if acknowledge else None
        self._active_id = conversation_id
        conversation = self.get(conversation_id)
        if conversation is None or conversation.unread_count == 0:
            return conversation

        conversation = conversation.model_copy(update={"unread_count": 0})
        self._replace(conversation)
        if loop is not None:
            task = loop.create_task(self._acknowledge_read(conversation_id))
            self._read_acks.add(task)
            task.add_done_callback(self._read_acks.discard)
        return conversation

    def deselect(self) -> None:
        self._active_id = None

    async def _acknowledge_read(self, conversation_id: str) -> None:
        try:
            await self._api.mark_read(conversation_id)
        except ApiError as exc:
            logger.warning("Read acknowledgement for %s failed: %s", conversation_id, exc)

    async def drain(self) -> None:
        """Wait for outstanding read acknowledgements."""
        if self._read_acks:
            await asyncio.gather(*self._read_acks, return_exceptions=True)

    def apply_optimistic_send(
        self,
        conversation_id: str,
        content: str,
        timestamp: datetime,
    ) -> OptimisticPreview | None:
        index = self._index_of(conversation_id)
        if index is None:
            return None

        previous = self._conversations[index]
        applied = previous.model_copy(update={"last_message": content, "last_message_at": timestamp})
        del self._conversations[index]
        self._conversations.insert(0, applied)
        self._provisional.add(conversation_id)
        return OptimisticPreview(previous=previous, index=index, applied=applied)

    def rollback_optimistic_send(self, preview: OptimisticPreview) -> None:
        conversation_id = preview.previous.id
        index = self._index_of(conversation_id)
        # Anything newer than our own provisional record is left alone
        if index is None or self._conversations[index] is not preview.applied:
            return
        del self._conversations[index]
        self._conversations.insert(min(preview.index, len(self._conversations)), preview.previous)
        self._provisional.discard(conversation_id)

    def apply_server_message(self, message: Message) -> None:
        """Take a confirmed message's content and time as the preview."""
        conversation = self.get(message.conversation_id)
        if conversation is None:
            return
        provisional = message.conversation_id in self._provisional
        last_at = conversation.last_message_at
        if not provisional and last_at is not None and message.created_at < last_at:
            return
        self._replace(
            conversation.model_copy(
                update={"last_message": message.content, "last_message_at": message.created_at}
            )
        )
        self._provisional.discard(message.conversation_id)

    def upsert_from_server(self, conversation: Conversation) -> None:
        self._replace(conversation)
        self._provisional.discard(conversation.id)

    async def start_conversation(self, property_id: str, partner_id: str, content: str) -> str:
        """Create a conversation with its first message; return its id.

        When one already exists for this property and partner the existing
        id is returned instead of creating a duplicate.
        """
        try:
            created = await self._api.create_conversation(property_id, partner_id, content)
        except ConflictError as exc:
            existing_id = exc.existing_conversation_id or await self._find_existing(
                property_id, partner_id
            )
            if existing_id is None:
                raise
            logger.info("Conversation for property %s already exists: %s", property_id, existing_id)
            return existing_id

        try:
            await self.load()
        except ApiError as exc:
            logger.debug(
                "Reload after creating %s failed, using a local record: %s",
                created.conversation_id,
                exc,
            )

        if self.get(created.conversation_id) is None:
            self._replace(
                Conversation(
                    id=created.conversation_id,
                    listing=PropertySummary(id=property_id),
                    partner=PartnerSummary(id=partner_id),
                )
            )
        self.apply_server_message(created.message)
        return created.conversation_id

    async def _find_existing(self, property_id: str, partner_id: str) -> str | None:
        try:
            await self.load()
        except ApiError:
            return None
        for conversation in self._conversations:
            if conversation.listing.id == property_id and conversation.partner.id == partner_id:
                return conversation.id
        return None

    def search(self, query: str) -> list[Conversation]:
        needle = query.strip().lower()
        if not needle:
            return list(self._conversations)
        return [
            conversation
            for conversation in self._conversations
            if needle in conversation.partner.name.lower()
            or needle in conversation.listing.title.lower()
            or needle in (conversation.listing.location or "").lower()
        ]

    def clear(self) -> None:
        self._issued_loads += 1
        for task in self._read_acks:
            task.cancel()
        self._read_acks.clear()
        self._conversations = []
        self._provisional.clear()
        self._active_id = None
        self.last_error = None
