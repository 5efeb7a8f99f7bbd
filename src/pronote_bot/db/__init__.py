"""Persistence module for Pronote Bot - JSON snapshot file."""

from pronote_bot.db.snapshot_store import SnapshotStore, SnapshotStoreError

__all__ = ["SnapshotStore", "SnapshotStoreError"]
