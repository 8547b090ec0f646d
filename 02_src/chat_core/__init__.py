"""Chat sync core: room and message state, cache and sync coordination."""

from .app import ChatSession, IChatSession
from .cache import CacheError, ChatCache, IChatCache
from .event_bus import EventBus, IEventBus, make_event
from .models import (
    CacheEntry,
    ChatRoom,
    EventKind,
    MergeReport,
    Message,
    MutationResult,
    Participant,
    RealtimeEvent,
    ReplyData,
    RoomType,
    User,
)
from .store import ChatStore, IChatStore, MergePolicy
from .sync import ISyncCoordinator, SyncCoordinator
from .transport import HttpTransport, ITransport, TransportError

__all__ = [
    # Session
    "ChatSession",
    "IChatSession",
    # Models
    "User",
    "ReplyData",
    "Message",
    "RoomType",
    "Participant",
    "ChatRoom",
    "CacheEntry",
    "EventKind",
    "RealtimeEvent",
    "MutationResult",
    "MergeReport",
    # Components
    "IChatCache",
    "ChatCache",
    "CacheError",
    "IChatStore",
    "ChatStore",
    "MergePolicy",
    "IEventBus",
    "EventBus",
    "make_event",
    "ISyncCoordinator",
    "SyncCoordinator",
    "ITransport",
    "HttpTransport",
    "TransportError",
]
