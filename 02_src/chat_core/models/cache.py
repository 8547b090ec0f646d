"""Persistent cache data models."""

from dataclasses import dataclass
from datetime import datetime

from .rooms import ChatRoom

CACHE_SCHEMA_VERSION = 1


@dataclass
class CacheEntry:
    """A cached room plus write metadata."""

    room: ChatRoom
    cached_at: datetime
    version: int = CACHE_SCHEMA_VERSION  # reserved for migrations
