"""Conflict resolution for pulled rows.

Implements last-write-wins by ``updated_at``:
1. No local version: the remote row is applied
2. Remote strictly newer: the remote row overwrites the local one
3. Otherwise (ties included): the local row is kept

Timestamps come from each device's wall clock. Clock skew between
devices is not compensated and there is no causality tracking.
"""

from __future__ import annotations

from datetime import datetime

from goaltrack.core.models import SyncEntity, ensure_utc


def should_apply_remote(local_updated_at: datetime | None, remote_updated_at: datetime) -> bool:
    """Decide whether a remote version replaces the local one.

    Args:
        local_updated_at: Timestamp of the local version (None if absent).
        remote_updated_at: Timestamp of the remote version.

    Returns:
        True if the remote version should be applied.
    """
    if local_updated_at is None:
        return True
    return ensure_utc(remote_updated_at) > ensure_utc(local_updated_at)


def resolve(local: SyncEntity | None, remote: SyncEntity) -> bool:
    """Apply should_apply_remote to two entities of the same kind."""
    return should_apply_remote(local.updated_at if local else None, remote.updated_at)
