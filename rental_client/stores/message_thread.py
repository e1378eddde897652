"""
Message thread store: the ordered messages of the one open conversation.

Network calls can finish in any order, so every mutation that follows an
``await`` first checks the thread generation. ``open()`` and ``close()``
bump the generation, which makes any response for an abandoned thread a
no-op. After every mutation the list is sorted by ``(created_at, id)``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from rental_client.core.config import settings
from rental_client.core.errors import ApiError, SendFailed, ValidationError
from rental_client.schemas.base import utc_now
from rental_client.schemas.message import Message, clean_message_content
from rental_client.services.messages_api import MessagesApi
from rental_client.stores.identity import ConfirmedId, MessageId, PendingId, new_pending_id

logger = logging.getLogger(__name__)


class ThreadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    REFRESHING = "refreshing"
    ERROR = "error"


@dataclass(frozen=True)
class ThreadMessage:
    identity: MessageId
    message: Message

    @property
    def is_pending(self) -> bool:
        return isinstance(self.identity, PendingId)

    @property
    def sort_key(self) -> tuple[datetime, int, str]:
        # Confirmed before pending on equal timestamps, then by id
        return (self.message.created_at, 1 if self.is_pending else 0, self.identity.value)

    def is_own(self, user_id: str | None) -> bool:
        if self.is_pending:
            return True
        return user_id is not None and self.message.sender_id == user_id


def _sorted(entries: list[ThreadMessage]) -> list[ThreadMessage]:
    return sorted(entries, key=lambda entry: entry.sort_key)


class MessageThreadStore:
    def __init__(
        self,
        api: MessagesApi,
        *,
        user_id: str | None = None,
        max_length: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._api = api
        self.user_id = user_id
        self._max_length = max_length or settings.message_max_length
        self._clock = clock

        self._conversation_id: str | None = None
        self._entries: list[ThreadMessage] = []
        self._status = ThreadStatus.IDLE
        self._generation = 0
        self.last_error: ApiError | None = None

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    @property
    def status(self) -> ThreadStatus:
        return self._status

    @property
    def messages(self) -> tuple[ThreadMessage, ...]:
        return tuple(self._entries)

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self._entries if entry.is_pending)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def open(self, conversation_id: str) -> None:
        self._generation += 1
        generation = self._generation
        self._conversation_id = conversation_id
        self._entries = []
        self._status = ThreadStatus.LOADING
        self.last_error = None
        logger.info("Opening thread %s", conversation_id)

        try:
            messages = await self._api.get_messages(conversation_id)
        except ApiError as exc:
            if not self._is_current(generation):
                logger.debug("Ignoring failed load of abandoned thread %s", conversation_id)
                return
            self._status = ThreadStatus.ERROR
            self.last_error = exc
            logger.warning("Failed to load thread %s: %s", conversation_id, exc)
            raise

        if not self._is_current(generation):
            logger.debug("Discarding history of abandoned thread %s", conversation_id)
            return

        # Sends issued while loading are already in the list
        self._merge(messages)
        self._status = ThreadStatus.IDLE

    def close(self) -> None:
        self._generation += 1
        self._conversation_id = None
        self._entries = []
        self._status = ThreadStatus.IDLE
        self.last_error = None

    async def send(self, content: str) -> Message:
        """Append optimistically, then swap in the server record or roll back.

        On failure the optimistic entry is removed and ``SendFailed`` carries
        the caller's original text so the composer can be restored.
        """
        if self._conversation_id is None:
            raise ValidationError("No conversation is open")
        cleaned = clean_message_content(content, self._max_length)

        generation = self._generation
        conversation_id = self._conversation_id
        identity = new_pending_id()
        pending = ThreadMessage(
            identity=identity,
            message=Message(
                id=identity.value,
                conversation_id=conversation_id,
                sender_id=self.user_id or "",
                content=cleaned,
                created_at=self._clock(),
            ),
        )
        self._entries = _sorted([*self._entries, pending])

        try:
            confirmed = await self._api.send_message(conversation_id, cleaned)
        except ApiError as exc:
            if self._is_current(generation):
                self._entries = [entry for entry in self._entries if entry.identity != pending.identity]
                self.last_error = exc
            logger.warning("Send to thread %s failed and was rolled back: %s", conversation_id, exc)
            raise SendFailed(content, exc) from exc

        if self._is_current(generation):
            self._reconcile(pending.identity, confirmed)
        return confirmed

    def _reconcile(self, pending_id: PendingId, confirmed: Message) -> None:
        remaining = [entry for entry in self._entries if entry.identity != pending_id]
        confirmed_id = ConfirmedId(confirmed.id)
        # A refresh may already have brought the server copy in
        if not any(entry.identity == confirmed_id for entry in remaining):
            remaining.append(ThreadMessage(confirmed_id, confirmed))
        self._entries = _sorted(remaining)

    async def refresh(self, still_wanted: Callable[[], bool] | None = None) -> int:
        """Merge the latest server history; returns how many messages were added.

        Known messages keep their position and content; only a newly read
        flag is taken over. Messages missing from the fetch are kept. An own
        message matching a send still in flight replaces its pending entry.
        ``still_wanted`` lets a poller veto the merge after it was cancelled.
        """
        conversation_id = self._conversation_id
        if conversation_id is None:
            return 0

        generation = self._generation
        if self._status in (ThreadStatus.IDLE, ThreadStatus.ERROR):
            self._status = ThreadStatus.REFRESHING

        try:
            messages = await self._api.get_messages(conversation_id)
        except ApiError as exc:
            if self._is_current(generation) and (still_wanted is None or still_wanted()):
                self._status = ThreadStatus.ERROR
                self.last_error = exc
            raise

        if not self._is_current(generation):
            logger.debug("Discarding refresh of abandoned thread %s", conversation_id)
            return 0
        if still_wanted is not None and not still_wanted():
            if self._status is ThreadStatus.REFRESHING:
                self._status = ThreadStatus.IDLE
            logger.debug("Discarding refresh of thread %s after polling stopped", conversation_id)
            return 0

        added = self._merge(messages)
        if self._status is not ThreadStatus.LOADING:
            self._status = ThreadStatus.IDLE
        self.last_error = None
        if added:
            logger.debug("Merged %d new messages into thread %s", added, conversation_id)
        return added

    def _merge(self, messages: list[Message]) -> int:
        known = {
            entry.identity.value: index
            for index, entry in enumerate(self._entries)
            if isinstance(entry.identity, ConfirmedId)
        }
        entries = list(self._entries)
        added = 0
        for message in messages:
            index = known.get(message.id)
            if index is not None:
                current = entries[index].message
                if message.read and not current.read:
                    entries[index] = replace(
                        entries[index],
                        message=current.model_copy(update={"read": True, "read_at": message.read_at}),
                    )
                continue

            confirmed = ThreadMessage(ConfirmedId(message.id), message)
            index = self._pending_copy_index(entries, message)
            if index is None:
                index = len(entries)
                entries.append(confirmed)
                added += 1
            else:
                # The server stored a send that has not returned yet
                entries[index] = confirmed
            known[message.id] = index

        self._entries = _sorted(entries)
        return added

    def _pending_copy_index(self, entries: list[ThreadMessage], message: Message) -> int | None:
        if self.user_id is None or message.sender_id != self.user_id:
            return None
        for index, entry in enumerate(entries):
            if entry.is_pending and entry.message.content == message.content:
                return index
        return None
