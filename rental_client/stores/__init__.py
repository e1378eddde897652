from rental_client.stores.conversation_store import ConversationStore, OptimisticPreview
from rental_client.stores.favorites_store import FavoritesStore
from rental_client.stores.identity import ConfirmedId, MessageId, PendingId
from rental_client.stores.message_thread import MessageThreadStore, ThreadMessage, ThreadStatus
from rental_client.stores.polling import PollingScheduler
from rental_client.stores.viewing_request_store import GroupedViewingRequests, ViewingRequestStore

__all__ = [
    "ConversationStore",
    "OptimisticPreview",
    "FavoritesStore",
    "ConfirmedId",
    "MessageId",
    "PendingId",
    "MessageThreadStore",
    "ThreadMessage",
    "ThreadStatus",
    "PollingScheduler",
    "GroupedViewingRequests",
    "ViewingRequestStore",
]
