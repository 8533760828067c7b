"""Tests for the change queue."""

from __future__ import annotations

from datetime import UTC, datetime

from goaltrack.client.state import LocalStore
from goaltrack.client.sync.queue import ChangeQueue
from goaltrack.core.types import ChangeStatus, EntityKind, Operation

T1 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestChangeQueue:
    """Tests for ChangeQueue."""

    def test_enqueue_returns_pending_record(self, store: LocalStore) -> None:
        """Enqueued records should be pending with a store id."""
        queue = ChangeQueue(store)

        record = queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE)

        assert record.id > 0
        assert record.status is ChangeStatus.PENDING
        assert record.created_at.tzinfo is not None
        assert len(queue) == 1

    def test_list_pending_in_insertion_order(self, store: LocalStore) -> None:
        """Pending records should come back oldest first."""
        queue = ChangeQueue(store)
        ids = [
            queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE).id,
            queue.enqueue(EntityKind.PROGRESS_ENTRY, "p-1", Operation.CREATE).id,
            queue.enqueue(EntityKind.GOAL, "goal-1", Operation.UPDATE).id,
        ]

        assert [r.id for r in queue.list_pending()] == ids

    def test_no_deduplication(self, store: LocalStore) -> None:
        """Several edits of one entity should each keep a record."""
        queue = ChangeQueue(store)
        for _ in range(3):
            queue.enqueue(EntityKind.GOAL, "goal-1", Operation.UPDATE)

        assert len(queue.list_pending()) == 3

    def test_mark_synced(self, store: LocalStore) -> None:
        """Synced records should leave the pending list but stay stored."""
        queue = ChangeQueue(store)
        record = queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE)

        queue.mark_synced(record.id, T1)

        assert queue.list_pending() == []
        stored = store.get_change(record.id)
        assert stored is not None
        assert stored.status is ChangeStatus.SYNCED
        assert stored.last_attempt_at == T1

    def test_mark_failed_keeps_error(self, store: LocalStore) -> None:
        """Failed records should carry the error message."""
        queue = ChangeQueue(store)
        record = queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE)

        queue.mark_failed(record.id, T1, "Server error")

        stored = store.get_change(record.id)
        assert stored is not None
        assert stored.status is ChangeStatus.FAILED
        assert stored.error == "Server error"

    def test_mark_skipped(self, store: LocalStore) -> None:
        """Skipped records should be terminal and explain why."""
        queue = ChangeQueue(store)
        record = queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE)

        queue.mark_skipped(record.id, T1)

        stored = store.get_change(record.id)
        assert stored is not None
        assert stored.status is ChangeStatus.SKIPPED
        assert stored.error == "Entity not found locally"
        assert len(queue) == 0

    def test_requeue_failed(self, store: LocalStore) -> None:
        """Failed records should go back to pending, keeping their order."""
        queue = ChangeQueue(store)
        first = queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE)
        second = queue.enqueue(EntityKind.GOAL, "goal-2", Operation.CREATE)
        queue.mark_failed(first.id, T1, "boom")

        assert queue.requeue_failed() == 1
        assert [r.id for r in queue.list_pending()] == [first.id, second.id]
        assert queue.requeue_failed() == 0

    def test_stats(self, store: LocalStore) -> None:
        """Stats should count every status and the total."""
        queue = ChangeQueue(store)
        a = queue.enqueue(EntityKind.GOAL, "goal-1", Operation.CREATE)
        b = queue.enqueue(EntityKind.GOAL, "goal-2", Operation.CREATE)
        queue.enqueue(EntityKind.GOAL, "goal-3", Operation.CREATE)
        queue.mark_synced(a.id, T1)
        queue.mark_failed(b.id, T1)

        assert queue.stats() == {
            "pending": 1,
            "synced": 1,
            "failed": 1,
            "skipped": 0,
            "total": 3,
        }
