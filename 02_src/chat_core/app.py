"""Session bootstrap and lifecycle management."""

import os
from typing import Protocol

from .cache import ChatCache, IChatCache
from .config import cache_max_age_minutes, merge_policy_name, resolve_cache_path
from .event_bus import EventBus
from .logging_config import get_logger
from .models import EventKind
from .store import ChatStore, MergePolicy, parse_policy
from .sync import SyncCoordinator
from .transport import HttpTransport, ITransport

logger = get_logger(__name__)


class IChatSession(Protocol):
    """Construction and teardown point for all chat state."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def logout(self) -> None:
        """Drop in-memory state and cached data."""
        ...


class ChatSession:
    """Owns the store, cache, event bus and coordinator of one login session."""

    def __init__(
        self,
        cache_path: str | None = None,
        transport: ITransport | None = None,
        current_user_id: str | None = None,
        max_age_minutes: int | None = None,
        merge_policy: MergePolicy | None = None,
    ):
        env_cache_path = os.getenv("CHAT_CACHE_PATH") if cache_path is None else cache_path
        self._cache_path = resolve_cache_path(env_cache_path)
        self._transport = transport
        self._current_user_id = current_user_id or os.getenv("CHAT_USER_ID")
        self._max_age_minutes = (
            max_age_minutes if max_age_minutes is not None else cache_max_age_minutes()
        )
        self._merge_policy = merge_policy or parse_policy(merge_policy_name())

        # Components (will be initialized in start())
        self._cache: IChatCache | None = None
        self._store: ChatStore | None = None
        self._event_bus: EventBus | None = None
        self._coordinator: SyncCoordinator | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting chat session")

        # 1. Cache (no dependencies)
        cache = ChatCache(self._cache_path)
        await cache.init()
        self._cache = cache
        logger.info("Cache initialized")

        # 2. Store (no dependencies)
        self._store = ChatStore(merge_policy=self._merge_policy)

        # 3. Transport (external; HTTP unless injected)
        if self._transport is None:
            self._transport = HttpTransport()

        # 4. EventBus
        self._event_bus = EventBus()

        # 5. Coordinator (depends on Store, Cache, Transport)
        self._coordinator = SyncCoordinator(
            store=self._store,
            cache=self._cache,
            transport=self._transport,
            current_user_id=self._current_user_id,
            max_age_minutes=self._max_age_minutes,
        )
        for kind in EventKind:
            self._event_bus.subscribe(kind, self._coordinator.handle_event)

        await self._coordinator.start()
        logger.info("Chat session started")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._coordinator:
            await self._coordinator.wait_idle()
        if self._event_bus and self._coordinator:
            for kind in EventKind:
                self._event_bus.unsubscribe(kind, self._coordinator.handle_event)
        if isinstance(self._transport, HttpTransport):
            await self._transport.close()
        if self._cache:
            await self._cache.close()
            logger.info("Cache closed")

    async def logout(self) -> None:
        """Drop in-memory state and cached data."""
        await self.coordinator.logout()

    @property
    def store(self) -> ChatStore:
        """Get store instance."""
        if not self._store:
            raise RuntimeError("Session not started")
        return self._store

    @property
    def cache(self) -> IChatCache:
        """Get cache instance."""
        if not self._cache:
            raise RuntimeError("Session not started")
        return self._cache

    @property
    def event_bus(self) -> EventBus:
        """Get event bus instance."""
        if not self._event_bus:
            raise RuntimeError("Session not started")
        return self._event_bus

    @property
    def coordinator(self) -> SyncCoordinator:
        """Get coordinator instance."""
        if not self._coordinator:
            raise RuntimeError("Session not started")
        return self._coordinator
