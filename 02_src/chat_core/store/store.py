"""In-memory state store for chat rooms and messages."""

import bisect
from dataclasses import replace
from typing import Any, Iterable, Mapping, Protocol

from ..logging_config import get_logger
from ..models import ChatRoom, MergeReport, Message, MutationResult
from .merge import MergePolicy, is_stale, merge_room, patch

logger = get_logger(__name__)


class IChatStore(Protocol):
    """Authoritative in-memory rooms and per-room message lists."""

    @property
    def rooms(self) -> list[ChatRoom]:
        """Current rooms in store order (not sorted)."""
        ...

    def get_room(self, room_id: str) -> ChatRoom | None:
        """Get a room by ID."""
        ...

    def get_messages(self, room_id: str) -> list[Message]:
        """Messages of a room, ascending by created_at."""
        ...

    def set_rooms(self, rooms: Iterable[ChatRoom]) -> None:
        """Replace the room list with an authoritative full fetch."""
        ...

    def merge_rooms(
        self, rooms: Iterable[ChatRoom], policy: MergePolicy | None = None
    ) -> MergeReport:
        """Reconcile an incoming batch without dropping absent rooms."""
        ...

    def update_room(self, room_id: str, updates: Mapping[str, Any]) -> MutationResult:
        """Shallow-patch one room."""
        ...

    def add_message(self, room_id: str, message: Message) -> MutationResult:
        """Insert a message unless its id is already present."""
        ...

    def mark_messages_read(
        self, room_id: str, message_ids: Iterable[str], user_id: str
    ) -> MutationResult:
        """Record that user_id has read the given messages."""
        ...

    def unread_message_ids(
        self, room_id: str, message_ids: Iterable[str], user_id: str
    ) -> list[str]:
        """Known ids among message_ids that user_id has not read yet."""
        ...

    def clear(self) -> None:
        """Drop all rooms and messages."""
        ...


def _with_reader(message: Message, user_id: str) -> Message:
    if message.is_read and user_id in message.read_by:
        return message
    read_by = message.read_by if user_id in message.read_by else [*message.read_by, user_id]
    return replace(message, is_read=True, read_by=read_by)


def _created_at(message: Message):
    return message.created_at


class ChatStore:
    """Owns rooms and messages for the lifetime of a session.

    All operations are synchronous and never raise for unknown ids; they
    report the outcome instead. Entities are replaced, never mutated in
    place, so objects handed out by the accessors are stable snapshots.
    After every mutation the room's last_message is re-derived from its
    message list (see _sync_last_message).
    """

    def __init__(self, merge_policy: MergePolicy = MergePolicy.LAST_WRITER_WINS):
        self._merge_policy = merge_policy
        self._rooms: dict[str, ChatRoom] = {}
        self._messages: dict[str, list[Message]] = {}

    @property
    def merge_policy(self) -> MergePolicy:
        return self._merge_policy

    # Accessors

    @property
    def rooms(self) -> list[ChatRoom]:
        """Current rooms in store order (not sorted)."""
        return list(self._rooms.values())

    def get_room(self, room_id: str) -> ChatRoom | None:
        """Get a room by ID."""
        return self._rooms.get(room_id)

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def get_messages(self, room_id: str) -> list[Message]:
        """Messages of a room, ascending by created_at."""
        return list(self._messages.get(room_id, []))

    # Rooms

    def set_rooms(self, rooms: Iterable[ChatRoom]) -> None:
        """Replace the room list with an authoritative full fetch."""
        self._rooms = {room.id: room for room in rooms}
        for room_id in self._rooms:
            self._sync_last_message(room_id)

    def merge_rooms(
        self, rooms: Iterable[ChatRoom], policy: MergePolicy | None = None
    ) -> MergeReport:
        """Reconcile an incoming batch without dropping absent rooms.

        Unknown rooms are appended. Known rooms are merged field by field
        under the given policy (the store's policy by default).
        """
        policy = policy or self._merge_policy
        report = MergeReport()

        for incoming in rooms:
            current = self._rooms.get(incoming.id)
            if current is None:
                self._rooms[incoming.id] = incoming
                self._sync_last_message(incoming.id)
                report.inserted.append(incoming.id)
                continue

            if is_stale(current, incoming, policy):
                report.skipped.append(incoming.id)
                continue

            self._rooms[incoming.id] = merge_room(current, incoming, policy)
            self._sync_last_message(incoming.id)
            if self._rooms[incoming.id] == current:
                report.unchanged.append(incoming.id)
            else:
                report.updated.append(incoming.id)

        if report.skipped:
            logger.debug("Skipped %d stale rooms during merge", len(report.skipped))
        return report

    def update_room(self, room_id: str, updates: Mapping[str, Any]) -> MutationResult:
        """Shallow-patch one room."""
        current = self._rooms.get(room_id)
        if current is None:
            return MutationResult.NOT_FOUND

        self._rooms[room_id] = patch(current, updates)
        self._sync_last_message(room_id)
        if self._rooms[room_id] == current:
            return MutationResult.UNCHANGED
        return MutationResult.APPLIED

    def add_room(self, room: ChatRoom) -> MutationResult:
        """Put a newly created room at the front of the list."""
        if room.id in self._rooms:
            return MutationResult.UNCHANGED
        self._rooms = {room.id: room, **self._rooms}
        self._sync_last_message(room.id)
        return MutationResult.APPLIED

    def remove_room(self, room_id: str) -> MutationResult:
        """Drop a room together with its messages."""
        self._messages.pop(room_id, None)
        if self._rooms.pop(room_id, None) is None:
            return MutationResult.NOT_FOUND
        return MutationResult.APPLIED

    def adjust_unread_count(self, room_id: str, delta: int) -> MutationResult:
        """Move the unread counter by delta, never below zero."""
        current = self._rooms.get(room_id)
        if current is None:
            return MutationResult.NOT_FOUND
        count = max(0, (current.unread_count or 0) + delta)
        return self.update_room(room_id, {"unread_count": count})

    # Messages

    def set_messages(self, room_id: str, messages: Iterable[Message]) -> None:
        """Replace one room's messages after a full per-room fetch.

        Later duplicates of an id replace earlier ones; the result is sorted.
        """
        unique = {message.id: message for message in messages}
        self._messages[room_id] = sorted(unique.values(), key=_created_at)
        self._sync_last_message(room_id)

    def add_message(self, room_id: str, message: Message) -> MutationResult:
        """Insert a message unless its id is already present.

        Messages with equal created_at keep arrival order. The message is
        kept even if the room itself is not known yet.
        """
        current = self._messages.setdefault(room_id, [])
        if any(m.id == message.id for m in current):
            return MutationResult.UNCHANGED

        bisect.insort_right(current, message, key=_created_at)
        self._sync_last_message(room_id)
        return MutationResult.APPLIED

    def update_message(
        self, room_id: str, message_id: str, updates: Mapping[str, Any]
    ) -> MutationResult:
        """Shallow-patch one message in place."""
        messages = self._messages.get(room_id, [])
        for index, message in enumerate(messages):
            if message.id != message_id:
                continue
            patched = patch(message, updates)
            if patched is message:
                return MutationResult.UNCHANGED
            messages[index] = patched
            self._sync_last_message(room_id)
            return MutationResult.APPLIED
        return MutationResult.NOT_FOUND

    def mark_messages_read(
        self, room_id: str, message_ids: Iterable[str], user_id: str
    ) -> MutationResult:
        """Record that user_id has read the given messages.

        The room's last_message is updated too when its id is listed, even
        if that message was never loaded into the message list.
        """
        ids = set(message_ids)
        found = False
        changed = False

        messages = self._messages.get(room_id, [])
        for index, message in enumerate(messages):
            if message.id not in ids:
                continue
            found = True
            updated = _with_reader(message, user_id)
            if updated is not message:
                messages[index] = updated
                changed = True

        room = self._rooms.get(room_id)
        if room is not None and room.last_message and room.last_message.id in ids:
            found = True
            listed = next((m for m in messages if m.id == room.last_message.id), None)
            mirrored = listed or _with_reader(room.last_message, user_id)
            if mirrored != room.last_message:
                self._rooms[room_id] = replace(room, last_message=mirrored)
                changed = True

        if changed:
            self._sync_last_message(room_id)
            return MutationResult.APPLIED
        return MutationResult.UNCHANGED if found else MutationResult.NOT_FOUND

    def unread_message_ids(
        self, room_id: str, message_ids: Iterable[str], user_id: str
    ) -> list[str]:
        """Known ids among message_ids that user_id has not read yet.

        Looks at the message list and the room's last_message. Unknown ids
        and repeats are left out, so the result is safe for unread arithmetic.
        """
        known = {m.id: m for m in self._messages.get(room_id, [])}
        room = self._rooms.get(room_id)
        if room is not None and room.last_message is not None:
            known.setdefault(room.last_message.id, room.last_message)

        return [
            message_id
            for message_id in dict.fromkeys(message_ids)
            if message_id in known and user_id not in known[message_id].read_by
        ]

    def update_last_message(self, room_id: str, updates: Mapping[str, Any]) -> MutationResult:
        """Patch only the room's denormalized last_message."""
        room = self._rooms.get(room_id)
        if room is None or room.last_message is None:
            return MutationResult.NOT_FOUND

        listed = self.update_message(room_id, room.last_message.id, updates)
        if listed is not MutationResult.NOT_FOUND:
            return listed

        patched = patch(room.last_message, updates)
        if patched is room.last_message:
            return MutationResult.UNCHANGED
        self._rooms[room_id] = replace(room, last_message=patched)
        return MutationResult.APPLIED

    # Lifecycle

    def clear(self) -> None:
        """Drop all rooms and messages."""
        self._rooms = {}
        self._messages = {}

    # Invariants

    def _sync_last_message(self, room_id: str) -> None:
        """Point last_message at the newest known message of the room.

        A last_message strictly newer than anything in the list is kept,
        since the server may report messages that are not loaded locally.
        updated_at never moves backwards.
        """
        room = self._rooms.get(room_id)
        messages = self._messages.get(room_id)
        if room is None or not messages:
            return

        newest = messages[-1]
        current = room.last_message
        if current is not None and current.created_at > newest.created_at:
            return
        if current == newest:
            return

        self._rooms[room_id] = replace(
            room,
            last_message=newest,
            updated_at=max(room.updated_at, newest.created_at),
        )
