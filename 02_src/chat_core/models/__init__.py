"""Core data models for the chat sync core."""

from .messages import Message, ReplyData, User
from .rooms import ChatRoom, Participant, RoomType
from .cache import CACHE_SCHEMA_VERSION, CacheEntry
from .events import EventKind, RealtimeEvent
from .results import MergeReport, MutationResult

__all__ = [
    # Messages
    "User",
    "ReplyData",
    "Message",
    # Rooms
    "RoomType",
    "Participant",
    "ChatRoom",
    # Cache
    "CacheEntry",
    "CACHE_SCHEMA_VERSION",
    # Events
    "EventKind",
    "RealtimeEvent",
    # Results
    "MutationResult",
    "MergeReport",
]
