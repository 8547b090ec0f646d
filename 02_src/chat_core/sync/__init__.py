"""Sync coordination module."""

from .coordinator import ISyncCoordinator, SyncCoordinator

__all__ = ["ISyncCoordinator", "SyncCoordinator"]
