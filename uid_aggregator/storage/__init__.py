"""Persistence port for workspace snapshots."""

from .snapshot_store import (
    MemorySnapshotStore,
    PostgresSnapshotStore,
    SnapshotStore,
    WorkspaceSnapshot,
)

__all__ = [
    'MemorySnapshotStore',
    'PostgresSnapshotStore',
    'SnapshotStore',
    'WorkspaceSnapshot',
]
