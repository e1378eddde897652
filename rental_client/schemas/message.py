from typing import Literal

from pydantic import Field

from rental_client.core.errors import ValidationError
from rental_client.schemas.base import ApiModel, UtcDatetime

MessageType = Literal["text", "image", "file", "system"]


class SenderSummary(ApiModel):
    id: str
    full_name: str = ""
    avatar_url: str | None = None


class Message(ApiModel):
    id: str
    conversation_id: str
    sender_id: str
    recipient_id: str | None = None
    content: str
    property_id: str | None = None
    message_type: MessageType = "text"
    read: bool = False
    read_at: UtcDatetime | None = None
    created_at: UtcDatetime = Field(alias="timestamp")
    sender: SenderSummary | None = None


class SendMessageRequest(ApiModel):
    content: str


def clean_message_content(content: str | None, max_length: int) -> str:
    """Trim composer text and enforce the non-empty and length rules."""
    cleaned = (content or "").strip()
    if not cleaned:
        raise ValidationError("Message content cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(f"Message content exceeds {max_length} characters")
    return cleaned
