from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rental_client.core.config import settings
from rental_client.schemas.conversation import Conversation
from rental_client.views.formatting import (
    initial,
    relative_time_label,
    truncate_preview,
    unread_badge,
)


@dataclass(frozen=True)
class ConversationCardView:
    conversation_id: str
    partner_name: str
    partner_initial: str
    partner_avatar_url: str | None
    partner_verified: bool
    property_title: str
    property_location: str
    property_thumbnail: str | None
    preview: str
    time_label: str
    unread_badge: str
    highlighted: bool
    is_active: bool


def build_conversation_card(
    conversation: Conversation,
    *,
    active_id: str | None = None,
    now: datetime | None = None,
    preview_max_chars: int | None = None,
    badge_cap: int | None = None,
) -> ConversationCardView:
    partner = conversation.partner
    listing = conversation.listing
    partner_name = partner.name or "Landlord"
    return ConversationCardView(
        conversation_id=conversation.id,
        partner_name=partner_name,
        partner_initial=initial(partner_name, "L"),
        partner_avatar_url=partner.avatar_url,
        partner_verified=partner.verified,
        property_title=listing.title or "Property",
        property_location=listing.location or "Location not specified",
        property_thumbnail=listing.thumbnail,
        preview=truncate_preview(
            conversation.last_message,
            preview_max_chars or settings.preview_max_chars,
        ),
        time_label=relative_time_label(conversation.last_message_at, now),
        unread_badge=unread_badge(
            conversation.unread_count,
            badge_cap or settings.unread_badge_cap,
        ),
        highlighted=conversation.unread_count > 0,
        is_active=conversation.id == active_id,
    )
