"""Tests for the sync engine."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta

import pytest

from goaltrack.client.api import APIError, NetworkError, NotFoundError
from goaltrack.client.state import LocalStore, LocalStoreError
from goaltrack.client.sync import (
    ChangeQueue,
    LocalStoreSyncError,
    PullError,
    SyncEngine,
)
from goaltrack.client.tracker import GoalTracker
from goaltrack.core.models import Goal, ProgressEntry, soft_deleted
from goaltrack.core.types import ChangeStatus, EntityKind, Operation, SyncState

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)
SYNC_AT = datetime(2024, 1, 2, 12, 0, tzinfo=UTC)


class Clock:
    """Settable clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeRemote:
    """In-memory remote store."""

    def __init__(self) -> None:
        self.goals: dict[str, Goal] = {}
        self.entries: dict[str, ProgressEntry] = {}
        self.fail_ids: set[str] = set()
        self.fail_pull = False
        self.calls: list[tuple[str, str]] = []
        # Set to block list_goals_since until released
        self.release: threading.Event | None = None
        self.entered = threading.Event()

    def _check(self, entity_id: str) -> None:
        if entity_id in self.fail_ids:
            raise APIError(f"Rejected {entity_id}", 500)

    def upsert_goal(self, goal: Goal) -> None:
        self.calls.append(("upsert_goal", goal.id))
        self._check(goal.id)
        self.goals[goal.id] = goal

    def upsert_progress(self, entry: ProgressEntry) -> None:
        self.calls.append(("upsert_progress", entry.id))
        self._check(entry.id)
        self.entries[entry.id] = entry

    def soft_delete(self, kind: EntityKind, entity_id: str, updated_at: datetime) -> None:
        self.calls.append(("soft_delete", entity_id))
        self._check(entity_id)
        rows: dict = self.goals if kind is EntityKind.GOAL else self.entries  # type: ignore[type-arg]
        if entity_id not in rows:
            raise NotFoundError(f"Not found: {entity_id}", 404)
        rows[entity_id] = soft_deleted(rows[entity_id], updated_at)

    def list_goals_since(self, owner_id: str, since: datetime) -> list[Goal]:
        if self.release is not None:
            self.entered.set()
            self.release.wait(timeout=5)
        if self.fail_pull:
            raise NetworkError("Server unreachable")
        return [g for g in self.goals.values() if g.user_id == owner_id and g.updated_at > since]

    def list_progress_since(self, owner_id: str, since: datetime) -> list[ProgressEntry]:
        owned = {g.id for g in self.goals.values() if g.user_id == owner_id}
        return [e for e in self.entries.values() if e.goal_id in owned and e.updated_at > since]


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def clock() -> Clock:
    return Clock(SYNC_AT)


@pytest.fixture
def engine(store: LocalStore, remote: FakeRemote, clock: Clock) -> SyncEngine:
    return SyncEngine(store, remote, clock=clock)


@pytest.fixture
def tracker(store: LocalStore) -> GoalTracker:
    return GoalTracker(store, "alice", clock=lambda: T0)


def statuses(store: LocalStore) -> list[ChangeStatus]:
    return [c.status for c in store.list_changes()]


class TestEndToEnd:
    """A goal and a progress entry created offline reach the remote."""

    def test_first_sync(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        tracker: GoalTracker,
    ) -> None:
        """Both entities are upserted, both records synced, checkpoint set."""
        goal = tracker.create_goal("Read", date(2024, 1, 1), date(2024, 1, 10), target_units=10)
        entry = tracker.log_progress(goal.id, date(2024, 1, 2), 4)

        result = engine.sync("alice")

        assert result.success
        assert result.to_dict() == {"success": True}
        assert remote.goals[goal.id] == goal
        assert remote.entries[entry.id] == entry
        assert statuses(store) == [ChangeStatus.SYNCED, ChangeStatus.SYNCED]
        assert all(c.last_attempt_at == SYNC_AT for c in store.list_changes())
        assert store.get_checkpoint("alice") == SYNC_AT
        assert result.checkpoint == SYNC_AT
        assert result.push.pushed == 2
        # Own rows come back and tie with the local ones
        assert result.pull.discarded == 2
        assert engine.state is SyncState.IDLE

    def test_second_sync_is_noop(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        clock: Clock,
        tracker: GoalTracker,
    ) -> None:
        """A sync with no new changes pushes and pulls nothing."""
        goal = tracker.create_goal("Read", date(2024, 1, 1), date(2024, 1, 10))
        tracker.log_progress(goal.id, date(2024, 1, 2), 4)
        engine.sync("alice")
        snapshot = (store.list_goals("alice"), store.list_progress(goal.id))
        calls = len(remote.calls)

        clock.now = SYNC_AT + timedelta(minutes=5)
        result = engine.sync("alice")

        assert result.success
        assert len(remote.calls) == calls
        assert (result.push.pushed, result.pull.created, result.pull.updated) == (0, 0, 0)
        assert (store.list_goals("alice"), store.list_progress(goal.id)) == snapshot
        assert store.get_checkpoint("alice") == SYNC_AT + timedelta(minutes=5)


class TestPush:
    """Tests for the push phase."""

    def test_failure_is_isolated(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        tracker: GoalTracker,
    ) -> None:
        """A rejected record is marked failed and the others still push."""
        goals = [
            tracker.create_goal(f"Goal {i}", date(2024, 1, 1), date(2024, 1, 10)) for i in range(3)
        ]
        remote.fail_ids.add(goals[1].id)

        result = engine.sync("alice")

        assert result.success
        assert statuses(store) == [ChangeStatus.SYNCED, ChangeStatus.FAILED, ChangeStatus.SYNCED]
        failed = store.list_changes(ChangeStatus.FAILED)[0]
        assert failed.error == f"Rejected {goals[1].id}"
        assert failed.last_attempt_at == SYNC_AT
        assert set(remote.goals) == {goals[0].id, goals[2].id}
        assert (result.push.pushed, result.push.failed) == (2, 1)

    def test_failed_records_wait_for_retry(
        self,
        store: LocalStore,
        remote: FakeRemote,
        tracker: GoalTracker,
        clock: Clock,
    ) -> None:
        """Failed records are retried only when asked to."""
        goal = tracker.create_goal("Read", date(2024, 1, 1), date(2024, 1, 10))
        remote.fail_ids.add(goal.id)
        SyncEngine(store, remote, clock=clock).sync("alice")
        remote.fail_ids.clear()

        SyncEngine(store, remote, clock=clock).sync("alice")
        assert goal.id not in remote.goals

        result = SyncEngine(store, remote, clock=clock, retry_failed=True).sync("alice")
        assert result.push.pushed == 1
        assert goal.id in remote.goals
        assert statuses(store) == [ChangeStatus.SYNCED]

    def test_vanished_entity_is_skipped(
        self, store: LocalStore, remote: FakeRemote, engine: SyncEngine
    ) -> None:
        """A record whose entity is gone locally is skipped, not pushed."""
        ChangeQueue(store).enqueue(EntityKind.GOAL, "ghost", Operation.UPDATE)

        result = engine.sync("alice")

        assert result.success
        assert result.push.skipped == 1
        assert statuses(store) == [ChangeStatus.SKIPPED]
        assert remote.calls == []

    def test_delete_sends_soft_delete(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        clock: Clock,
        tracker: GoalTracker,
    ) -> None:
        """Deletes bump the remote timestamp to now."""
        goal = tracker.create_goal("Read", date(2024, 1, 1), date(2024, 1, 10))
        engine.sync("alice")
        tracker.delete_goal(goal.id)

        clock.now = SYNC_AT + timedelta(hours=1)
        result = engine.sync("alice")

        assert result.success
        assert remote.calls[-1] == ("soft_delete", goal.id)
        assert remote.goals[goal.id].deleted is True
        assert remote.goals[goal.id].updated_at == SYNC_AT + timedelta(hours=1)

    def test_delete_of_unknown_remote_row_fails(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        make_goal: Callable[..., Goal],
    ) -> None:
        """Deleting a row the remote never saw marks the record failed."""
        goal = make_goal(deleted=True)
        store.insert_goal(goal)
        ChangeQueue(store).enqueue(EntityKind.GOAL, goal.id, Operation.DELETE)

        result = engine.sync("alice")

        assert result.success
        assert result.push.failed == 1
        failed = store.list_changes()[0]
        assert failed.status is ChangeStatus.FAILED
        assert failed.error == f"Not found: {goal.id}"


class TestPull:
    """Tests for the pull phase."""

    def test_inserts_unknown_rows_without_queueing(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        make_goal: Callable[..., Goal],
        make_entry: Callable[..., ProgressEntry],
    ) -> None:
        """Rows from other devices are inserted and never re-queued."""
        goal = make_goal()
        entry = make_entry(goal.id)
        remote.goals[goal.id] = goal
        remote.entries[entry.id] = entry

        result = engine.sync("alice")

        assert (result.pull.created, result.pull.updated) == (2, 0)
        assert store.get_goal(goal.id) == goal
        assert store.get_progress(entry.id) == entry
        assert store.list_changes() == []

    def test_remote_newer_wins(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        make_goal: Callable[..., Goal],
    ) -> None:
        """A strictly newer remote row overwrites the local one."""
        local = make_goal(title="Local", updated_at=T0)
        store.insert_goal(local)
        remote.goals[local.id] = make_goal(
            id=local.id, title="Remote", updated_at=T0 + timedelta(seconds=1)
        )

        result = engine.sync("alice")

        assert result.pull.updated == 1
        stored = store.get_goal(local.id)
        assert stored is not None and stored.title == "Remote"

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(seconds=-1)])
    def test_local_wins_ties_and_newer(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        make_goal: Callable[..., Goal],
        offset: timedelta,
    ) -> None:
        """The local row is kept unless the remote is strictly newer."""
        local = make_goal(title="Local", updated_at=T0 + timedelta(hours=1))
        store.insert_goal(local)
        remote.goals[local.id] = make_goal(
            id=local.id, title="Remote", updated_at=local.updated_at + offset
        )

        result = engine.sync("alice")

        assert result.pull.discarded == 1
        assert store.get_goal(local.id) == local

    def test_progress_matched_by_goal_and_date(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        make_goal: Callable[..., Goal],
        make_entry: Callable[..., ProgressEntry],
    ) -> None:
        """A newer remote entry for the same day replaces the local one, id included."""
        goal = make_goal()
        store.insert_goal(goal)
        remote.goals[goal.id] = goal
        local = make_entry(goal.id, id="local-entry", value=1)
        store.insert_progress(local)
        newer = make_entry(goal.id, id="remote-entry", value=6, updated_at=T0 + timedelta(hours=1))
        remote.entries[newer.id] = newer

        result = engine.sync("alice")

        assert result.pull.updated == 1
        assert store.get_progress("local-entry") is None
        assert store.list_progress(goal.id) == [newer]

    def test_pull_failure_keeps_checkpoint(
        self,
        store: LocalStore,
        remote: FakeRemote,
        engine: SyncEngine,
        clock: Clock,
        tracker: GoalTracker,
    ) -> None:
        """A failed pull fails the call and leaves the checkpoint alone."""
        engine.sync("alice")
        tracker.create_goal("Read", date(2024, 1, 1), date(2024, 1, 10))
        remote.fail_pull = True
        clock.now = SYNC_AT + timedelta(hours=1)

        result = engine.sync("alice")

        assert not result.success
        assert isinstance(result.error, PullError)
        assert result.to_dict()["success"] is False
        assert "Server unreachable" in result.to_dict()["error"]
        assert store.get_checkpoint("alice") == SYNC_AT
        # Push ran before the pull failed
        assert statuses(store) == [ChangeStatus.SYNCED]
        assert engine.state is SyncState.IDLE


class TestCheckpoint:
    """Tests for checkpoint handling."""

    def test_never_moves_backwards(
        self, store: LocalStore, engine: SyncEngine, clock: Clock
    ) -> None:
        """A clock that went back does not rewind the checkpoint."""
        engine.sync("alice")
        clock.now = SYNC_AT - timedelta(hours=1)

        result = engine.sync("alice")

        assert result.success
        assert store.get_checkpoint("alice") == SYNC_AT

    def test_per_owner(self, store: LocalStore, engine: SyncEngine) -> None:
        """Checkpoints are kept per owner."""
        engine.sync("alice")
        assert store.get_checkpoint("bob") is None

    def test_uses_start_time(
        self, store: LocalStore, remote: FakeRemote, tracker: GoalTracker
    ) -> None:
        """The checkpoint is the time the call started, not when it ended."""
        times = iter(SYNC_AT + timedelta(seconds=i) for i in range(100))
        tracker.create_goal("Read", date(2024, 1, 1), date(2024, 1, 10))

        SyncEngine(store, remote, clock=lambda: next(times)).sync("alice")

        assert store.get_checkpoint("alice") == SYNC_AT


class TestFailures:
    """Tests for re-entrancy and local store failures."""

    def test_concurrent_call_rejected(
        self, store: LocalStore, remote: FakeRemote, engine: SyncEngine
    ) -> None:
        """A second call while one runs fails fast without side effects."""
        remote.release = threading.Event()
        results = []
        worker = threading.Thread(target=lambda: results.append(engine.sync("alice")))
        worker.start()
        try:
            assert remote.entered.wait(timeout=5)
            assert engine.is_syncing

            busy = engine.sync("alice")

            assert busy.already_in_progress
            assert busy.to_dict() == {"success": False, "error": "Sync already in progress"}
            assert store.get_checkpoint("alice") is None
        finally:
            remote.release.set()
            worker.join(timeout=5)

        assert results[0].success
        assert not engine.is_syncing
        assert store.get_checkpoint("alice") == SYNC_AT

    def test_local_store_error(
        self,
        store: LocalStore,
        engine: SyncEngine,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Local store failures fail the call and reset the busy state."""

        def broken(owner_id: str, timestamp: datetime) -> None:
            raise LocalStoreError("disk I/O error")

        monkeypatch.setattr(store, "set_checkpoint", broken)

        result = engine.sync("alice")

        assert isinstance(result.error, LocalStoreSyncError)
        assert "disk I/O error" in str(result.error)
        assert engine.state is SyncState.IDLE
        assert store.get_checkpoint("alice") is None
        # The engine is usable again
        monkeypatch.undo()
        assert engine.sync("alice").success
