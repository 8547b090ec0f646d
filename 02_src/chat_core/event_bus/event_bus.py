"""EventBus implementation for real-time chat events."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Protocol

from ..logging_config import get_logger
from ..models import EventKind, RealtimeEvent

logger = get_logger(__name__)


EventHandler = Callable[[RealtimeEvent], Awaitable[None]]


class IEventBus(Protocol):
    """In-memory pub/sub for real-time events."""

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Subscribe a handler to an event kind."""
        ...

    def unsubscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Remove a previously subscribed handler."""
        ...

    async def publish(self, event: RealtimeEvent) -> None:
        """Deliver an event to every subscriber of its kind."""
        ...


def make_event(kind: EventKind | str, payload: dict) -> RealtimeEvent:
    """Build an event stamped with a fresh id and the receive time."""
    return RealtimeEvent(
        id=str(uuid.uuid4()),
        kind=EventKind(kind),
        payload=payload,
        received_at=datetime.now(timezone.utc),
    )


class EventBus:
    """In-memory pub/sub event bus."""

    def __init__(self):
        self._subscribers: dict[EventKind, list[EventHandler]] = {
            kind: [] for kind in EventKind
        }

    def subscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Subscribe a handler to an event kind."""
        self._subscribers[kind].append(handler)

    def unsubscribe(self, kind: EventKind, handler: EventHandler) -> None:
        """Remove a previously subscribed handler."""
        if handler in self._subscribers[kind]:
            self._subscribers[kind].remove(handler)

    async def publish(self, event: RealtimeEvent) -> None:
        """Deliver an event to every subscriber of its kind.

        Handler failures are logged and never reach the publisher.
        """
        if not event.id:
            event.id = str(uuid.uuid4())

        handlers = list(self._subscribers.get(event.kind, []))
        if not handlers:
            logger.debug("No subscribers for %s", event.kind.value)
            return

        results = await asyncio.gather(
            *[handler(event) for handler in handlers],
            return_exceptions=True,
        )

        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.error(
                    "Error in %s handler %s: %s", event.kind.value, i, result
                )
