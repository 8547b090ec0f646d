"""Persistent cache module."""

from .cache import ROOMS_KEY, TIMESTAMP_KEY, CacheError, ChatCache, IChatCache

__all__ = ["ChatCache", "IChatCache", "CacheError", "ROOMS_KEY", "TIMESTAMP_KEY"]
