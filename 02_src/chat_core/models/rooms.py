"""Chat room data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .messages import Message, User


class RoomType(str, Enum):
    """Kind of conversation container."""

    DIRECT = "DIRECT"
    GROUP = "GROUP"
    LOAD = "LOAD"


@dataclass
class Participant:
    """A user's membership in a room."""

    user: User
    role: str | None = None
    id: str | None = None  # participant record id, not the user id


@dataclass
class ChatRoom:
    """A conversation with its participants and denormalized last message.

    Optional fields left as None are treated as "not specified" when an
    incoming room is merged over a local one.
    """

    id: str
    type: RoomType
    updated_at: datetime
    participants: list[Participant] = field(default_factory=list)
    name: str | None = None
    avatar: str | None = None
    last_message: Message | None = None
    unread_count: int | None = None
    is_muted: bool | None = None
    is_pinned: bool | None = None
    created_at: datetime | None = None
