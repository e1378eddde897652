from __future__ import annotations

import logging

from rental_client.core.config import settings
from rental_client.core.errors import ApiError
from rental_client.schemas.conversation import (
    Conversation,
    ConversationCreated,
    CreateConversationRequest,
)
from rental_client.schemas.message import Message, SendMessageRequest, clean_message_content
from rental_client.services.api_client import (
    ApiClient,
    envelope_field,
    parse_model,
    parse_models,
)

logger = logging.getLogger(__name__)


class MessagesApi:
    """Conversation and message endpoints. Stateless; stores do the caching."""

    def __init__(self, client: ApiClient, *, max_length: int | None = None) -> None:
        self._client = client
        self._max_length = max_length or settings.message_max_length

    async def list_conversations(self) -> list[Conversation]:
        """Conversations for the signed-in user, most recent activity first."""
        payload = await self._client.get("/messages/conversations")
        return parse_models(Conversation, envelope_field(payload, "conversations"))

    async def get_messages(self, conversation_id: str) -> list[Message]:
        """Full history, oldest first. The backend marks it read as a side effect."""
        payload = await self._client.get(f"/messages/conversation/{conversation_id}")
        return parse_models(Message, envelope_field(payload, "messages"))

    async def send_message(self, conversation_id: str, content: str) -> Message:
        body = SendMessageRequest(content=clean_message_content(content, self._max_length))
        payload = await self._client.post(
            f"/messages/conversation/{conversation_id}",
            json=body.model_dump(),
        )
        return parse_model(Message, envelope_field(payload, "message"))

    async def create_conversation(
        self,
        property_id: str,
        partner_id: str,
        initial_content: str,
    ) -> ConversationCreated:
        body = CreateConversationRequest(
            property_id=property_id,
            landlord_id=partner_id,
            initial_message=clean_message_content(initial_content, self._max_length),
        )
        payload = await self._client.post("/messages/conversations", json=body.model_dump())
        conversation_id = str(envelope_field(payload, "conversation_id"))

        raw_message = payload.get("message")
        if raw_message is not None:
            return ConversationCreated(
                conversation_id=conversation_id,
                message=parse_model(Message, raw_message),
            )

        # Some backends create the conversation and the first message in two
        # steps and only return the id; the caller still sees one operation.
        logger.debug("Conversation %s created without message body; fetching", conversation_id)
        messages = await self.get_messages(conversation_id)
        if not messages:
            raise ApiError(f"Conversation {conversation_id} was created without a message")
        return ConversationCreated(conversation_id=conversation_id, message=messages[-1])

    async def mark_read(self, conversation_id: str) -> None:
        # Read-marking is the server-side effect of fetching the thread.
        await self.get_messages(conversation_id)
