"""Real-time event data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class EventKind(str, Enum):
    """EventBus topics for real-time updates."""

    MESSAGE_CREATED = "message.created"
    MESSAGE_READ = "message.read"
    ROOM_UPDATED = "room.updated"
    ROOM_ADDED = "room.added"


@dataclass
class RealtimeEvent:
    """A single event delivered by the real-time stream."""

    id: str
    kind: EventKind
    payload: dict  # camelCase wire shape, varies by kind
    received_at: datetime
