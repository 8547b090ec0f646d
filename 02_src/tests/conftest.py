"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock for freshness checks."""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeTransport:
    """In-memory transport recording calls; set fail=True to simulate outages."""

    def __init__(self):
        from chat_core.transport import TransportError

        self._error = TransportError
        self.rooms = []
        self.messages = {}
        self.fail = False
        self.calls: list[tuple] = []

    def _check(self, call: tuple) -> None:
        self.calls.append(call)
        if self.fail:
            raise self._error("backend unavailable")

    async def fetch_rooms(self):
        self._check(("fetch_rooms",))
        return list(self.rooms)

    async def fetch_room(self, room_id):
        self._check(("fetch_room", room_id))
        return next(r for r in self.rooms if r.id == room_id)

    async def fetch_messages(self, room_id, page=1, limit=50):
        self._check(("fetch_messages", room_id))
        return list(self.messages.get(room_id, []))

    async def mark_room_read(self, room_id):
        self._check(("mark_room_read", room_id))

    async def delete_room(self, room_id):
        self._check(("delete_room", room_id))


@pytest.fixture
def clock():
    """Clock fixed at BASE_TIME until advanced."""
    return FakeClock()


@pytest.fixture
def make_message():
    """Factory for messages; minute offsets are relative to BASE_TIME."""
    from chat_core.models import Message

    def _make(msg_id, room_id="room1", minute=0, sender_id="user2", **kwargs):
        return Message(
            id=msg_id,
            chat_room_id=room_id,
            sender_id=sender_id,
            content=kwargs.pop("content", f"text of {msg_id}"),
            created_at=BASE_TIME + timedelta(minutes=minute),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_room():
    """Factory for rooms; minute offsets are relative to BASE_TIME."""
    from chat_core.models import ChatRoom, Participant, RoomType, User

    def _make(room_id, minute=0, room_type=RoomType.GROUP, **kwargs):
        participants = kwargs.pop(
            "participants",
            [
                Participant(user=User(id="user1", first_name="Alice"), role="admin"),
                Participant(user=User(id="user2", first_name="Bob"), role="member"),
            ],
        )
        return ChatRoom(
            id=room_id,
            type=room_type,
            updated_at=BASE_TIME + timedelta(minutes=minute),
            participants=participants,
            **kwargs,
        )

    return _make


@pytest_asyncio.fixture
async def cache(clock):
    """Create in-memory cache for testing."""
    from chat_core.cache import ChatCache

    c = ChatCache(":memory:", clock=clock)
    await c.init()
    yield c
    await c.close()


@pytest.fixture
def store():
    """Create an empty store with the default merge policy."""
    from chat_core.store import ChatStore

    return ChatStore()


@pytest.fixture
def event_bus():
    """Create EventBus."""
    from chat_core.event_bus import EventBus

    return EventBus()


@pytest.fixture
def transport():
    """Create fake transport."""
    return FakeTransport()


@pytest.fixture
def coordinator(store, cache, transport):
    """Create SyncCoordinator for current user 'user1'."""
    from chat_core.sync import SyncCoordinator

    return SyncCoordinator(
        store=store,
        cache=cache,
        transport=transport,
        current_user_id="user1",
        max_age_minutes=5,
    )
