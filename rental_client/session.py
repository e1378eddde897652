"""
Session wiring: one HTTP client, the API modules and the stores for one
signed-in user. Built at sign-in, torn down at sign-out; nothing survives
between sessions.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import httpx

from rental_client.core.config import settings
from rental_client.core.errors import ApiError, ValidationError
from rental_client.core.logging import configure_logging
from rental_client.core.security import TokenProvider, current_user_id, static_token
from rental_client.schemas.base import utc_now
from rental_client.schemas.message import Message, clean_message_content
from rental_client.services.api_client import ApiClient
from rental_client.services.favorites_api import FavoritesApi
from rental_client.services.messages_api import MessagesApi
from rental_client.services.viewing_requests_api import ViewingRequestsApi
from rental_client.stores.conversation_store import ConversationStore
from rental_client.stores.favorites_store import FavoritesStore
from rental_client.stores.message_thread import MessageThreadStore
from rental_client.stores.polling import PollingScheduler
from rental_client.stores.viewing_request_store import ViewingRequestStore
from rental_client.views.composer import Composer

logger = logging.getLogger(__name__)


class Session:
    def __init__(
        self,
        client: ApiClient,
        *,
        user_id: str | None = None,
        poll_interval: float | None = None,
        max_length: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client
        self.user_id = user_id
        self._max_length = max_length or settings.message_max_length
        self._clock = clock

        self.messages_api = MessagesApi(client, max_length=self._max_length)
        self.favorites_api = FavoritesApi(client)
        self.viewing_requests_api = ViewingRequestsApi(client)

        self.conversations = ConversationStore(self.messages_api)
        self.thread = MessageThreadStore(
            self.messages_api,
            user_id=user_id,
            max_length=self._max_length,
            clock=clock,
        )
        self.poller = PollingScheduler(self.thread.refresh, interval=poll_interval)
        self.favorites = FavoritesStore(self.favorites_api)
        self.viewing_requests = ViewingRequestStore(self.viewing_requests_api)

    @classmethod
    def start(
        cls,
        token_provider: TokenProvider | None = None,
        *,
        user_id: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs: Any,
    ) -> Session:
        configure_logging()
        provider = token_provider or static_token(settings.access_token)
        resolved_user_id = user_id or current_user_id(provider())
        client = ApiClient(base_url, token_provider=provider, transport=transport)
        logger.info("Session started for user %s", resolved_user_id or "<unknown>")
        return cls(client, user_id=resolved_user_id, **kwargs)

    async def open_conversation(self, conversation_id: str) -> None:
        """Select a conversation, load its thread and start polling it."""
        self.poller.stop()
        # Fetching the thread marks it read server-side; no separate ack needed
        self.conversations.select(conversation_id, acknowledge=False)
        await self.thread.open(conversation_id)
        if self.thread.conversation_id == conversation_id:
            self.poller.start()

    def close_conversation(self) -> None:
        self.poller.stop()
        self.thread.close()
        self.conversations.deselect()

    async def send_message(self, content: str) -> Message:
        conversation_id = self.thread.conversation_id
        if conversation_id is None:
            raise ValidationError("No conversation is open")
        cleaned = clean_message_content(content, self._max_length)

        preview = self.conversations.apply_optimistic_send(conversation_id, cleaned, self._clock())
        try:
            message = await self.thread.send(content)
        except ApiError:
            if preview is not None:
                self.conversations.rollback_optimistic_send(preview)
            raise

        self.conversations.apply_server_message(message)
        return message

    async def start_conversation(self, property_id: str, partner_id: str, content: str) -> str:
        return await self.conversations.start_conversation(property_id, partner_id, content)

    def composer(self, templates: list[str] | None = None) -> Composer:
        return Composer(self.send_message, max_length=self._max_length, templates=templates)

    async def stop(self) -> None:
        self.poller.stop()
        self.thread.close()
        self.conversations.clear()
        self.favorites.clear()
        self.viewing_requests.clear()
        await self.client.aclose()
        logger.info("Session stopped")

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
