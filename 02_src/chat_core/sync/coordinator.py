"""SyncCoordinator: sequences cache, transport and real-time events into the store."""

import asyncio
from typing import Iterable, Protocol

from ..cache import CacheError, IChatCache
from ..config import DEFAULT_CACHE_MAX_AGE_MINUTES
from ..logging_config import get_logger, with_context
from ..models import EventKind, MutationResult, RealtimeEvent
from ..models.codec import message_from_dict, room_from_dict, room_updates_from_dict
from ..store import ChatStore, MergePolicy
from ..transport import ITransport, TransportError

logger = get_logger(__name__)


class ISyncCoordinator(Protocol):
    """Keeps the store fed from cache, bulk fetches and real-time events."""

    async def start(self) -> None:
        """Hydrate from cache and refresh in the background if stale."""
        ...

    async def refresh(self) -> bool:
        """Fetch rooms and merge them into the store."""
        ...

    async def handle_event(self, event: RealtimeEvent) -> None:
        """Apply a real-time event to the store."""
        ...

    async def wait_idle(self) -> None:
        """Wait for background refresh and cache writes."""
        ...


def _require_room_id(payload: dict) -> str:
    room_id = payload.get("chatRoomId")
    if not room_id:
        raise ValueError("event payload is missing 'chatRoomId'")
    return room_id


class SyncCoordinator:
    """Orchestrates hydration, refresh, persistence and event intake.

    Store mutations are synchronous; the only suspension points are
    transport calls and cache I/O. A failed fetch leaves the store as it
    was, and a failed cache write never rolls back memory.
    """

    def __init__(
        self,
        store: ChatStore,
        cache: IChatCache,
        transport: ITransport,
        current_user_id: str | None = None,
        max_age_minutes: int = DEFAULT_CACHE_MAX_AGE_MINUTES,
    ):
        self._store = store
        self._cache = cache
        self._transport = transport
        self._current_user_id = current_user_id
        self._max_age_minutes = max_age_minutes

        self._persist_lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()
        self._refresh_task: asyncio.Task | None = None

    @property
    def current_user_id(self) -> str | None:
        return self._current_user_id

    # Startup

    async def hydrate(self) -> int:
        """Load the cached snapshot into the store.

        Merged with NEWER_WINS so rooms already updated live are not
        overwritten by an older snapshot.
        """
        rooms = await self._cache.load()
        if rooms:
            self._store.merge_rooms(rooms, policy=MergePolicy.NEWER_WINS)
        logger.info("Hydrated %d rooms from cache", len(rooms))
        return len(rooms)

    async def start(self) -> None:
        """Hydrate from cache and refresh in the background if stale."""
        await self.hydrate()

        fresh = await self._cache.has_data() and await self._cache.is_fresh(
            self._max_age_minutes
        )
        if fresh:
            logger.info("Room cache is fresh, skipping initial refresh")
            return

        self._refresh_task = asyncio.create_task(self.refresh())

    # Rooms

    async def refresh(self) -> bool:
        """Fetch rooms and merge them into the store."""
        try:
            rooms = await self._transport.fetch_rooms()
        except TransportError as e:
            logger.warning("Room refresh failed, keeping current state: %s", e)
            return False

        report = self._store.merge_rooms(rooms)
        logger.info(
            "Merged %d rooms (%d new, %d updated, %d stale)",
            len(rooms),
            len(report.inserted),
            len(report.updated),
            len(report.skipped),
        )
        self.schedule_persist()
        return True

    async def force_refresh(self) -> bool:
        """Replace the room list with a fresh authoritative fetch."""
        try:
            rooms = await self._transport.fetch_rooms()
        except TransportError as e:
            logger.warning("Forced refresh failed, keeping current state: %s", e)
            return False

        self._store.set_rooms(rooms)
        logger.info("Replaced room list with %d rooms", len(rooms))
        await self._persist()
        return True

    async def open_room(self, room_id: str) -> bool:
        """Load a room's messages from the backend."""
        try:
            messages = await self._transport.fetch_messages(room_id)
        except TransportError as e:
            with_context(logger, room_id=room_id).warning("Message fetch failed: %s", e)
            return False

        self._store.set_messages(room_id, messages)
        return True

    async def mark_read(self, room_id: str, message_ids: Iterable[str]) -> MutationResult:
        """Mark messages read locally, then confirm with the backend.

        The optimistic state is kept if confirmation fails; the next
        authoritative update reconciles it.
        """
        if not self._current_user_id:
            raise RuntimeError("No current user to mark messages read for")

        ids = list(dict.fromkeys(message_ids))
        newly_read = self._store.unread_message_ids(room_id, ids, self._current_user_id)
        result = self._store.mark_messages_read(room_id, ids, self._current_user_id)
        if result is MutationResult.APPLIED and newly_read:
            self._store.adjust_unread_count(room_id, -len(newly_read))

        try:
            await self._transport.mark_room_read(room_id)
        except TransportError as e:
            with_context(logger, room_id=room_id).warning(
                "Read confirmation failed, keeping local state: %s", e
            )
        return result

    async def delete_room(self, room_id: str) -> bool:
        """Delete a room on the server, then drop it locally and from cache."""
        log = with_context(logger, room_id=room_id)
        try:
            await self._transport.delete_room(room_id)
        except TransportError as e:
            log.warning("Room delete failed: %s", e)
            return False

        self._store.remove_room(room_id)
        try:
            await self._cache.delete_room(room_id)
        except CacheError as e:
            log.error("Room removed locally but not from cache: %s", e)
        return True

    async def logout(self) -> None:
        """Drop all in-memory state and cached data."""
        await self.wait_idle()
        self._store.clear()
        try:
            await self._cache.clear()
        except CacheError as e:
            logger.error("Cache clear failed on logout: %s", e)
        logger.info("Session state cleared")

    # Persistence

    def schedule_persist(self) -> None:
        """Write the current room list to the cache in the background."""
        task = asyncio.create_task(self._persist())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self) -> None:
        async with self._persist_lock:
            try:
                await self._cache.save(self._store.rooms)
            except CacheError as e:
                logger.error("Room list not persisted: %s", e)

    async def wait_idle(self) -> None:
        """Wait for background refresh and cache writes."""
        if self._refresh_task:
            await self._refresh_task
            self._refresh_task = None
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # Real-time events

    async def handle_event(self, event: RealtimeEvent) -> None:
        """Apply a real-time event to the store.

        Malformed payloads raise ValueError; the event bus logs them.
        """
        handlers = {
            EventKind.MESSAGE_CREATED: self._on_message_created,
            EventKind.MESSAGE_READ: self._on_message_read,
            EventKind.ROOM_UPDATED: self._on_room_updated,
            EventKind.ROOM_ADDED: self._on_room_added,
        }
        if not isinstance(event.payload, dict):
            raise ValueError(f"{event.kind.value} payload must be an object")
        await handlers[event.kind](event.payload)

    async def _on_message_created(self, payload: dict) -> None:
        raw = payload.get("message", payload)
        message = message_from_dict(raw, chat_room_id=payload.get("chatRoomId"))
        room_id = message.chat_room_id

        result = self._store.add_message(room_id, message)
        if result is MutationResult.APPLIED and message.sender_id != self._current_user_id:
            self._store.adjust_unread_count(room_id, 1)

    async def _on_message_read(self, payload: dict) -> None:
        room_id = _require_room_id(payload)
        message_ids = payload.get("messageIds") or []
        user_id = payload.get("userId")
        if not user_id:
            raise ValueError("message.read payload is missing 'userId'")

        newly_read = self._store.unread_message_ids(room_id, message_ids, user_id)
        result = self._store.mark_messages_read(room_id, message_ids, user_id)
        if result is MutationResult.APPLIED and newly_read and user_id == self._current_user_id:
            self._store.adjust_unread_count(room_id, -len(newly_read))

    async def _on_room_updated(self, payload: dict) -> None:
        room_id = _require_room_id(payload)
        updates = room_updates_from_dict(payload.get("updates") or {}, room_id)
        result = self._store.update_room(room_id, updates)
        if result is MutationResult.NOT_FOUND:
            logger.debug("room.updated for unknown room %s ignored", room_id)

    async def _on_room_added(self, payload: dict) -> None:
        room = room_from_dict(payload.get("chatRoom", payload))
        if self._store.add_room(room) is MutationResult.APPLIED:
            self.schedule_persist()
