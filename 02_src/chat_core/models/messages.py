"""Message-related data models."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class User:
    """A chat user as embedded in rooms and messages."""

    id: str
    first_name: str = ""
    last_name: str = ""
    avatar: str | None = None
    role: str | None = None

    @property
    def display_name(self) -> str:
        """First and last name, falling back to the id."""
        full = f"{self.first_name} {self.last_name}".strip()
        return full or self.id


@dataclass
class ReplyData:
    """Snapshot of the replied-to message, captured at reply time."""

    content: str
    sender_name: str
    time: str
    avatar: str | None = None


@dataclass
class Message:
    """A single chat message.

    ``read_by`` has set semantics: it only grows and holds each user id once.
    """

    id: str
    chat_room_id: str
    sender_id: str
    content: str
    created_at: datetime
    is_read: bool = False
    read_by: list[str] = field(default_factory=list)
    reply_data: ReplyData | None = None
    sender: User | None = None
    receiver_id: str | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None
