# View models: pure renderings of store state, no I/O
from rental_client.views.composer import Composer
from rental_client.views.conversation_card import ConversationCardView, build_conversation_card
from rental_client.views.message_bubble import MessageBubbleView, build_message_bubble, build_thread

__all__ = [
    "Composer",
    "ConversationCardView",
    "build_conversation_card",
    "MessageBubbleView",
    "build_message_bubble",
    "build_thread",
]
