"""Tests for ChatCache."""

import json

import pytest

from chat_core.cache import ROOMS_KEY, TIMESTAMP_KEY, CacheError, ChatCache
from chat_core.models import CACHE_SCHEMA_VERSION
from chat_core.models.codec import room_to_dict


class TestCacheInit:
    """Tests for ChatCache initialization."""

    async def test_init_creates_table(self, cache):
        """Test that init creates the key-value table."""
        async with cache._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "cache_entries" in tables

    async def test_not_initialized(self):
        """Test that calls before init raise RuntimeError."""
        c = ChatCache(":memory:")
        with pytest.raises(RuntimeError, match="Cache not initialized"):
            await c.load()


class TestCacheSaveLoad:
    """Tests for save() and load()."""

    async def test_empty_cache_loads_empty(self, cache):
        """Test load with nothing cached."""
        assert await cache.load() == []
        assert await cache.has_data() is False

    async def test_round_trip(self, cache, make_room, make_message):
        """Test load after save returns equal rooms."""
        rooms = [
            make_room("a", minute=30, name="A", last_message=make_message("m1", room_id="a")),
            make_room("b", minute=10, unread_count=0, is_muted=False),
        ]
        await cache.save(rooms)
        assert await cache.load() == rooms

    async def test_load_sorts_by_updated_at_desc(self, cache, make_room):
        """Test most recently active rooms come first."""
        await cache.save([make_room("old", minute=1), make_room("new", minute=9), make_room("mid", minute=5)])
        assert [r.id for r in await cache.load()] == ["new", "mid", "old"]

    async def test_entries_carry_metadata(self, cache, make_room, clock):
        """Test stored entries are stamped with write time and version."""
        await cache.save([make_room("a")])
        entries = await cache.load_entries()
        assert entries[0].cached_at == clock.now
        assert entries[0].version == CACHE_SCHEMA_VERSION

    async def test_save_replaces_previous_list(self, cache, make_room):
        """Test save is a wholesale replace."""
        await cache.save([make_room("a"), make_room("b")])
        await cache.save([make_room("c")])
        assert [r.id for r in await cache.load()] == ["c"]

    async def test_messages_not_persisted(self, cache, make_room):
        """Test only room summaries are written."""
        await cache.save([make_room("a")])
        async with cache._conn.execute("SELECT key FROM cache_entries") as cursor:
            keys = {row[0] for row in await cursor.fetchall()}
        assert keys == {ROOMS_KEY, TIMESTAMP_KEY}

    async def test_corrupt_payload_loads_empty(self, cache):
        """Test a corrupt cache is treated as empty."""
        await cache._conn.execute(
            "INSERT INTO cache_entries (key, value) VALUES (?, ?)",
            (ROOMS_KEY, "{not json"),
        )
        await cache._conn.commit()
        assert await cache.load() == []
        assert await cache.has_data() is False

    async def test_malformed_entry_loads_empty(self, cache):
        """Test an entry that fails to decode is treated as empty."""
        await cache._conn.execute(
            "INSERT INTO cache_entries (key, value) VALUES (?, ?)",
            (ROOMS_KEY, json.dumps([{"id": "a", "type": "NOPE"}])),
        )
        await cache._conn.commit()
        assert await cache.load() == []

    async def test_out_of_range_cached_at_loads_empty(self, cache, make_room):
        """Test entries with an unrepresentable cachedAt are treated as empty."""
        entry = room_to_dict(make_room("a"))
        for cached_at in (float("inf"), 10**30):
            entry["cachedAt"] = cached_at
            await cache._conn.execute(
                "INSERT OR REPLACE INTO cache_entries (key, value) VALUES (?, ?)",
                (ROOMS_KEY, json.dumps([entry])),
            )
            await cache._conn.commit()
            assert await cache.load() == []

    async def test_out_of_range_timestamp_is_stale(self, cache):
        """Test an unrepresentable save timestamp means not fresh."""
        await cache._conn.execute(
            "INSERT INTO cache_entries (key, value) VALUES (?, ?)",
            (TIMESTAMP_KEY, "9" * 30),
        )
        await cache._conn.commit()
        assert await cache.last_saved_at() is None
        assert await cache.is_fresh(5) is False

    async def test_save_failure_raises_cache_error(self, cache, make_room):
        """Test storage failures on write propagate as CacheError."""
        await cache._conn.execute("DROP TABLE cache_entries")
        await cache._conn.commit()
        with pytest.raises(CacheError):
            await cache.save([make_room("a")])

    async def test_read_failure_loads_empty(self, cache):
        """Test storage failures on read resolve to empty."""
        await cache._conn.execute("DROP TABLE cache_entries")
        await cache._conn.commit()
        assert await cache.load() == []
        assert await cache.is_fresh() is False


class TestCacheFreshness:
    """Tests for is_fresh()."""

    async def test_never_saved_is_stale(self, cache):
        """Test missing timestamp means not fresh."""
        assert await cache.is_fresh(5) is False

    async def test_freshness_boundary(self, cache, clock, make_room):
        """Test fresh at 4m59s and stale at 5m01s after save."""
        await cache.save([make_room("a")])

        clock.advance(minutes=4, seconds=59)
        assert await cache.is_fresh(5) is True

        clock.advance(seconds=2)
        assert await cache.is_fresh(5) is False

    async def test_last_saved_at(self, cache, clock, make_room):
        """Test last saved timestamp is recorded."""
        assert await cache.last_saved_at() is None
        await cache.save([make_room("a")])
        assert await cache.last_saved_at() == clock.now


class TestCacheDelete:
    """Tests for delete_room() and clear()."""

    async def test_delete_room(self, cache, make_room):
        """Test deleting one cached room."""
        await cache.save([make_room("a"), make_room("b")])
        await cache.delete_room("a")
        assert [r.id for r in await cache.load()] == ["b"]

    async def test_delete_room_on_empty_cache(self, cache):
        """Test deleting from an empty cache is a no-op."""
        await cache.delete_room("a")
        assert await cache.load() == []

    async def test_delete_room_corrupt_raises(self, cache):
        """Test deleting from a corrupt cache raises CacheError."""
        await cache._conn.execute(
            "INSERT INTO cache_entries (key, value) VALUES (?, ?)",
            (ROOMS_KEY, "{}"),
        )
        await cache._conn.commit()
        with pytest.raises(CacheError):
            await cache.delete_room("a")

    async def test_clear(self, cache, make_room):
        """Test clear removes rooms and timestamp."""
        await cache.save([make_room("a")])
        await cache.clear()
        assert await cache.has_data() is False
        assert await cache.is_fresh() is False

    async def test_file_backed_cache_survives_restart(self, tmp_path, make_room):
        """Test a snapshot is recoverable by a new cache instance."""
        path = tmp_path / "cache.db"
        first = ChatCache(path)
        await first.init()
        await first.save([make_room("a", name="Persisted")])
        await first.close()

        second = ChatCache(path)
        await second.init()
        try:
            rooms = await second.load()
        finally:
            await second.close()
        assert [r.name for r in rooms] == ["Persisted"]
