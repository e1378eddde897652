from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo

from rental_client.stores.message_thread import ThreadMessage
from rental_client.views.formatting import clock_label, initial


@dataclass(frozen=True)
class MessageBubbleView:
    key: str
    content: str
    is_own: bool
    sender_name: str | None
    sender_initial: str | None
    sender_avatar_url: str | None
    time_label: str
    is_pending: bool
    is_read: bool


def build_message_bubble(
    entry: ThreadMessage,
    current_user_id: str | None,
    *,
    tz: tzinfo | None = None,
) -> MessageBubbleView:
    message = entry.message
    is_own = entry.is_own(current_user_id)
    sender = None if is_own else message.sender
    sender_name = sender.full_name or None if sender else None
    return MessageBubbleView(
        key=entry.identity.value,
        content=message.content,
        is_own=is_own,
        sender_name=sender_name,
        sender_initial=initial(sender_name, "U") if not is_own else None,
        sender_avatar_url=sender.avatar_url if sender else None,
        time_label=clock_label(message.created_at, tz),
        is_pending=entry.is_pending,
        is_read=message.read,
    )


def build_thread(
    entries: tuple[ThreadMessage, ...] | list[ThreadMessage],
    current_user_id: str | None,
    *,
    tz: tzinfo | None = None,
) -> list[MessageBubbleView]:
    return [build_message_bubble(entry, current_user_id, tz=tz) for entry in entries]
