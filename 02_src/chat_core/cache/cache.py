"""SQLite-backed room list cache."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Protocol

import aiosqlite

from ..config import DEFAULT_CACHE_MAX_AGE_MINUTES, resolve_cache_path
from ..logging_config import get_logger
from ..models import CACHE_SCHEMA_VERSION, CacheEntry, ChatRoom
from ..models.codec import room_from_dict, room_to_dict

logger = get_logger(__name__)

ROOMS_KEY = "@chat_rooms_cache"
TIMESTAMP_KEY = "@chat_rooms_cache_timestamp"


class CacheError(Exception):
    """Raised when the cache cannot be written."""


class IChatCache(Protocol):
    """Durable snapshot of the room list plus a last-saved timestamp."""

    async def init(self) -> None:
        """Open the database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def save(self, rooms: list[ChatRoom]) -> None:
        """Replace the cached room list and stamp the save time."""
        ...

    async def load(self) -> list[ChatRoom]:
        """Cached rooms, most recently updated first. Empty on any failure."""
        ...

    async def is_fresh(self, max_age_minutes: int = DEFAULT_CACHE_MAX_AGE_MINUTES) -> bool:
        """True iff the last save is younger than max_age_minutes."""
        ...

    async def has_data(self) -> bool:
        """True iff at least one room is cached."""
        ...

    async def delete_room(self, room_id: str) -> None:
        """Remove one room from the cached list."""
        ...

    async def clear(self) -> None:
        """Remove all cached data."""
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _entry_to_dict(entry: CacheEntry) -> dict:
    data = room_to_dict(entry.room)
    data["cachedAt"] = _to_millis(entry.cached_at)
    data["version"] = entry.version
    return data


def _entry_from_dict(data: dict) -> CacheEntry:
    if not isinstance(data, dict):
        raise ValueError("cache entry must be an object")
    room_data = dict(data)
    cached_at = room_data.pop("cachedAt", 0)
    version = room_data.pop("version", CACHE_SCHEMA_VERSION)
    return CacheEntry(
        room=room_from_dict(room_data),
        cached_at=_from_millis(int(cached_at)),
        version=int(version),
    )


class ChatCache:
    """Room list cache stored as two fixed keys in a SQLite key-value table."""

    def __init__(
        self,
        db_path: str | Path | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._db_path = resolve_cache_path(db_path)
        self._clock = clock or _utcnow
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open the database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Cache not initialized")
        return self._conn

    async def _get(self, conn: aiosqlite.Connection, key: str) -> str | None:
        cursor = await conn.execute(
            "SELECT value FROM cache_entries WHERE key = ?",
            (key,),
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def _put(self, conn: aiosqlite.Connection, key: str, value: str) -> None:
        await conn.execute(
            """
            INSERT OR REPLACE INTO cache_entries (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            """,
            (key, value),
        )

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        try:
            await conn.rollback()
        except aiosqlite.Error as e:
            logger.error("Cache rollback failed: %s", e)

    async def save(self, rooms: list[ChatRoom]) -> None:
        """Replace the cached room list and stamp the save time.

        Both keys are written in one transaction. Raises CacheError if the
        database rejects the write.
        """
        conn = self._require_conn()
        now = self._clock()
        entries = [CacheEntry(room=room, cached_at=now) for room in rooms]
        payload = json.dumps([_entry_to_dict(entry) for entry in entries])

        try:
            await self._put(conn, ROOMS_KEY, payload)
            await self._put(conn, TIMESTAMP_KEY, str(_to_millis(now)))
            await conn.commit()
        except aiosqlite.Error as e:
            await self._rollback(conn)
            logger.error("Failed to save chat rooms: %s", e)
            raise CacheError(f"Failed to save chat rooms: {e}") from e

        logger.info("Saved %d chat rooms to cache", len(rooms))

    async def load_entries(self) -> list[CacheEntry]:
        """Cached entries with their metadata, in stored order."""
        conn = self._require_conn()
        try:
            raw = await self._get(conn, ROOMS_KEY)
        except aiosqlite.Error as e:
            logger.error("Failed to read chat rooms from cache: %s", e)
            return []

        if not raw:
            return []

        # Out-of-range or infinite timestamps raise OverflowError or OSError
        try:
            return [_entry_from_dict(item) for item in json.loads(raw)]
        except (ValueError, TypeError, OverflowError, OSError) as e:
            logger.error("Cached chat rooms are unreadable, ignoring: %s", e)
            return []

    async def load(self) -> list[ChatRoom]:
        """Cached rooms, most recently updated first. Empty on any failure."""
        entries = await self.load_entries()
        entries.sort(key=lambda entry: entry.room.updated_at, reverse=True)
        rooms = [entry.room for entry in entries]
        logger.info("Loaded %d chat rooms from cache", len(rooms))
        return rooms

    async def last_saved_at(self) -> datetime | None:
        """Time of the last successful save, if any."""
        conn = self._require_conn()
        try:
            raw = await self._get(conn, TIMESTAMP_KEY)
            return _from_millis(int(raw)) if raw else None
        except (aiosqlite.Error, ValueError, OverflowError, OSError) as e:
            logger.error("Failed to read cache timestamp: %s", e)
            return None

    async def is_fresh(self, max_age_minutes: int = DEFAULT_CACHE_MAX_AGE_MINUTES) -> bool:
        """True iff the last save is younger than max_age_minutes."""
        saved_at = await self.last_saved_at()
        if saved_at is None:
            return False

        age = self._clock() - saved_at
        fresh = age < timedelta(minutes=max_age_minutes)
        logger.debug(
            "Cache freshness check: %s (age: %d minutes)",
            "fresh" if fresh else "stale",
            age.total_seconds() // 60,
        )
        return fresh

    async def has_data(self) -> bool:
        """True iff at least one room is cached."""
        conn = self._require_conn()
        try:
            raw = await self._get(conn, ROOMS_KEY)
            if not raw:
                return False
            stored = json.loads(raw)
        except (aiosqlite.Error, ValueError) as e:
            logger.error("Failed to check chat rooms in cache: %s", e)
            return False
        return isinstance(stored, list) and len(stored) > 0

    async def delete_room(self, room_id: str) -> None:
        """Remove one room from the cached list."""
        conn = self._require_conn()
        try:
            raw = await self._get(conn, ROOMS_KEY)
            if not raw:
                return
            stored = json.loads(raw)
            if not isinstance(stored, list):
                raise ValueError("cached room list is not a list")
            kept = [
                item for item in stored
                if not (isinstance(item, dict) and item.get("id") == room_id)
            ]
            await self._put(conn, ROOMS_KEY, json.dumps(kept))
            await conn.commit()
        except (aiosqlite.Error, ValueError) as e:
            await self._rollback(conn)
            logger.error("Failed to delete chat room %s from cache: %s", room_id, e)
            raise CacheError(f"Failed to delete chat room {room_id}: {e}") from e

        logger.info("Deleted chat room %s from cache", room_id)

    async def clear(self) -> None:
        """Remove all cached data."""
        conn = self._require_conn()
        try:
            await conn.execute(
                "DELETE FROM cache_entries WHERE key IN (?, ?)",
                (ROOMS_KEY, TIMESTAMP_KEY),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            await self._rollback(conn)
            logger.error("Failed to clear cache: %s", e)
            raise CacheError(f"Failed to clear cache: {e}") from e

        logger.info("Cleared chat rooms cache")
