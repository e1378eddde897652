from typing import Literal

from pydantic import Field

from rental_client.schemas.base import ApiModel, UtcDatetime
from rental_client.schemas.message import Message

ConversationStatus = Literal["active", "archived", "blocked"]


class PartnerSummary(ApiModel):
    id: str
    name: str = ""
    avatar_url: str | None = None
    verified: bool = False


class PropertySummary(ApiModel):
    id: str
    title: str = ""
    location: str | None = None
    price: float | str | None = None
    images: list[str] = Field(default_factory=list)

    @property
    def thumbnail(self) -> str | None:
        return self.images[0] if self.images else None


class Conversation(ApiModel):
    id: str
    # "property" on the wire; renamed so it does not shadow the builtin in the class body
    listing: PropertySummary = Field(alias="property")
    partner: PartnerSummary
    last_message: str = ""
    last_message_at: UtcDatetime | None = None
    unread_count: int = Field(default=0, ge=0)
    status: ConversationStatus = "active"


class CreateConversationRequest(ApiModel):
    property_id: str
    landlord_id: str
    initial_message: str


class ConversationCreated(ApiModel):
    conversation_id: str
    message: Message
