from rental_client.schemas.conversation import (
    Conversation,
    ConversationCreated,
    CreateConversationRequest,
    PartnerSummary,
    PropertySummary,
)
from rental_client.schemas.favorite import Favorite, FavoriteCreate
from rental_client.schemas.message import Message, SendMessageRequest, SenderSummary
from rental_client.schemas.viewing_request import (
    ViewingRequest,
    ViewingRequestCreate,
    ViewingRequestUpdate,
)

__all__ = [
    "Conversation",
    "ConversationCreated",
    "CreateConversationRequest",
    "PartnerSummary",
    "PropertySummary",
    "Favorite",
    "FavoriteCreate",
    "Message",
    "SendMessageRequest",
    "SenderSummary",
    "ViewingRequest",
    "ViewingRequestCreate",
    "ViewingRequestUpdate",
]
