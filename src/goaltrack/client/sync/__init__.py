"""Offline-first synchronization.

Architecture:
    GoalTracker → ChangeQueue → SyncEngine → RemoteStore

Components:
- **ChangeQueue**: Ledger of local mutations awaiting push
- **Conflict resolution**: Last-write-wins gate for pulled rows
- **SyncEngine**: Push, pull, checkpoint advance; rejects re-entrant calls

All public symbols are re-exported here.
"""

from goaltrack.client.sync.conflict import resolve, should_apply_remote
from goaltrack.client.sync.engine import RemoteStore, SyncEngine
from goaltrack.client.sync.queue import ChangeQueue
from goaltrack.client.sync.types import (
    AlreadyInProgressError,
    LocalStoreSyncError,
    PullError,
    PullResult,
    PushResult,
    SyncError,
    SyncResult,
)

__all__ = [
    # Queue
    "ChangeQueue",
    # Conflict resolution
    "resolve",
    "should_apply_remote",
    # Engine
    "RemoteStore",
    "SyncEngine",
    # Types
    "AlreadyInProgressError",
    "LocalStoreSyncError",
    "PullError",
    "PullResult",
    "PushResult",
    "SyncError",
    "SyncResult",
]
