"""State store module."""

from .merge import MergePolicy, merge_room, parse_policy, patch
from .store import ChatStore, IChatStore

__all__ = ["ChatStore", "IChatStore", "MergePolicy", "merge_room", "parse_policy", "patch"]
