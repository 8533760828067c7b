"""Change queue for offline-first sync.

This module provides:
- ChangeQueue: append-only ledger of local mutations awaiting push

Every local create/update/delete appends one record. Records are never
removed: the sync engine moves them to synced, failed or skipped and they
stay behind as an audit trail. There is no deduplication, so several
edits of the same entity produce several records, each pushed in order.

Persistence is the local store's ``change_records`` table; the queue
holds no state of its own.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from goaltrack.core.models import ChangeRecord, utc_now
from goaltrack.core.types import ChangeStatus, EntityKind, Operation

if TYPE_CHECKING:
    from goaltrack.client.state import LocalStore

logger = logging.getLogger(__name__)


class ChangeQueue:
    """Ledger of pending local mutations backed by the local store."""

    def __init__(self, store: LocalStore) -> None:
        """Initialize the queue.

        Args:
            store: Local store holding the change records.
        """
        self._store = store

    def enqueue(
        self,
        entity_kind: EntityKind,
        entity_id: str,
        operation: Operation,
    ) -> ChangeRecord:
        """Append a pending record for a local mutation.

        Returns:
            The stored record, with the id assigned by the store.
        """
        record = self._store.add_change(entity_kind, entity_id, operation, utc_now())
        logger.debug(
            "Queued change #%d: %s %s %s",
            record.id,
            operation.value,
            entity_kind.value,
            entity_id,
        )
        return record

    def list_pending(self) -> list[ChangeRecord]:
        """Pending records in insertion order (ascending id)."""
        return self._store.list_changes(ChangeStatus.PENDING)

    def mark_synced(self, change_id: int, timestamp: datetime) -> None:
        """Record a successful push."""
        self._store.set_change_status(change_id, ChangeStatus.SYNCED, timestamp)

    def mark_failed(self, change_id: int, timestamp: datetime, error: str | None = None) -> None:
        """Record a rejected push."""
        self._store.set_change_status(change_id, ChangeStatus.FAILED, timestamp, error)

    def mark_skipped(self, change_id: int, timestamp: datetime) -> None:
        """Record that the entity was gone when the push was attempted."""
        self._store.set_change_status(
            change_id, ChangeStatus.SKIPPED, timestamp, "Entity not found locally"
        )

    def requeue_failed(self) -> int:
        """Move failed records back to pending.

        Returns:
            Number of records requeued.
        """
        count = self._store.requeue_failed_changes()
        if count:
            logger.info("Requeued %d failed changes", count)
        return count

    def stats(self) -> dict[str, int]:
        """Record counts by status, plus the total."""
        counts = self._store.count_changes_by_status()
        stats = {status.value: n for status, n in counts.items()}
        stats["total"] = sum(counts.values())
        return stats

    def __len__(self) -> int:
        """Number of pending records."""
        return self._store.count_changes_by_status()[ChangeStatus.PENDING]
