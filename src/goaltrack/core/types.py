"""Shared types for goaltrack.

This module defines enums used by the local store, the sync engine
and the server.
"""

from __future__ import annotations

from enum import Enum


class EntityKind(str, Enum):
    """Kind of a synchronized entity."""

    GOAL = "goal"
    PROGRESS_ENTRY = "progress_entry"


class Operation(str, Enum):
    """Local mutation recorded in the change queue."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ChangeStatus(str, Enum):
    """Push status of a change record."""

    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"
    SKIPPED = "skipped"  # Entity vanished before it could be pushed


class SyncState(str, Enum):
    """Sync state of an engine instance.

    An engine goes IDLE -> SYNCING -> IDLE for every call; the state is
    only ever SYNCING while a call is in flight.
    """

    IDLE = "idle"
    SYNCING = "syncing"
