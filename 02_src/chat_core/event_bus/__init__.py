"""EventBus module."""

from .event_bus import EventBus, EventHandler, IEventBus, make_event

__all__ = ["EventBus", "EventHandler", "IEventBus", "make_event"]
