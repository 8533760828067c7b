"""Sync engine coordinating offline-first synchronization.

This module provides:
- RemoteStore: Protocol the engine needs from the remote backend
- SyncEngine: Pushes the change queue, pulls remote changes, advances
  the per-owner checkpoint

One sync call runs three strictly ordered phases:

    1. Push   - each pending change record, in queue order. A rejected
                record is marked failed and the loop moves on.
    2. Pull   - rows of the owner updated after the checkpoint, gated by
                last-write-wins against their local counterparts.
    3. Advance - checkpoint := start time of the call.

Pull errors and local store errors abort the call before phase 3, so the
next call retries the same window. Records already marked synced stay
synced; pushing them again would be harmless since upserts are keyed by id.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from goaltrack.client.api import APIError
from goaltrack.client.state import LocalStoreError
from goaltrack.client.sync.conflict import resolve
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
from goaltrack.core.models import EPOCH, ChangeRecord, Goal, ProgressEntry, utc_now
from goaltrack.core.types import ChangeStatus, EntityKind, Operation, SyncState

if TYPE_CHECKING:
    from goaltrack.client.state import LocalStore

logger = logging.getLogger(__name__)


class RemoteStore(Protocol):
    """Protocol for the remote backend.

    Every failure must surface as an APIError carrying a message.
    """

    def upsert_goal(self, goal: Goal) -> None:
        """Create or replace a goal keyed by id."""
        ...

    def upsert_progress(self, entry: ProgressEntry) -> None:
        """Create or replace a progress entry keyed by id."""
        ...

    def soft_delete(self, kind: EntityKind, entity_id: str, updated_at: datetime) -> None:
        """Set the deleted flag of a row and bump its timestamp."""
        ...

    def list_goals_since(self, owner_id: str, since: datetime) -> list[Goal]:
        """Goals of an owner with updated_at strictly after since."""
        ...

    def list_progress_since(self, owner_id: str, since: datetime) -> list[ProgressEntry]:
        """Progress entries of an owner with updated_at strictly after since."""
        ...


class SyncEngine:
    """Coordinates synchronization between the local and remote stores.

    Construct one engine per process or session. The engine owns the only
    "is syncing" state: a call made while another is in flight returns an
    AlreadyInProgressError result immediately instead of waiting.

    Usage:
        engine = SyncEngine(store, HTTPClient(config))
        result = engine.sync(owner_id)
        if not result.success:
            logger.warning("Sync failed: %s", result.error)
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        retry_failed: bool = False,
    ) -> None:
        """Initialize the sync engine.

        Args:
            store: Local store (entities, change records, checkpoints).
            remote: Remote backend.
            clock: Source of "now" for attempt timestamps and checkpoints.
            retry_failed: Requeue failed records before every push phase.
        """
        self._store = store
        self._remote = remote
        self._queue = ChangeQueue(store)
        self._clock = clock
        self._retry_failed = retry_failed

        self._state = SyncState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> SyncState:
        """Current engine state."""
        return self._state

    @property
    def is_syncing(self) -> bool:
        """True while a sync call is in flight."""
        return self._state is SyncState.SYNCING

    @property
    def queue(self) -> ChangeQueue:
        """Change queue the engine drains."""
        return self._queue

    def sync(self, owner_id: str) -> SyncResult:
        """Perform a full sync for one owner.

        Args:
            owner_id: Owner whose goals are pulled and checkpoint advanced.

        Returns:
            SyncResult; ``success`` is False if the call was rejected or failed.
        """
        with self._lock:
            if self._state is SyncState.SYNCING:
                logger.info("Sync requested for %s while another sync is running", owner_id)
                return SyncResult(error=AlreadyInProgressError())
            self._state = SyncState.SYNCING

        try:
            return self._run(owner_id)
        finally:
            with self._lock:
                self._state = SyncState.IDLE

    def _run(self, owner_id: str) -> SyncResult:
        started_at = self._clock()
        result = SyncResult()

        try:
            try:
                if self._retry_failed:
                    self._queue.requeue_failed()
                result.push = self._push_changes()

                since = self._store.get_checkpoint(owner_id)
                result.pull = self._pull_changes(owner_id, since or EPOCH)

                # Never move the checkpoint backwards, even if the clock did
                checkpoint = started_at if since is None else max(since, started_at)
                self._store.set_checkpoint(owner_id, checkpoint)
                result.checkpoint = checkpoint
            except LocalStoreError as e:
                raise LocalStoreSyncError(str(e)) from e
        except SyncError as e:
            logger.error(f"Sync failed for {owner_id}: {e}")
            result.error = e
            return result

        logger.info(
            "Sync complete for %s: pushed=%d failed=%d skipped=%d "
            "created=%d updated=%d discarded=%d",
            owner_id,
            result.push.pushed,
            result.push.failed,
            result.push.skipped,
            result.pull.created,
            result.pull.updated,
            result.pull.discarded,
        )
        return result

    # === Push phase ===

    def _push_changes(self) -> PushResult:
        """Push every pending change record, in queue order."""
        result = PushResult()
        pending = self._queue.list_pending()
        if pending:
            logger.debug("Pushing %d pending changes", len(pending))

        for change in pending:
            status = self._push_change(change)
            if status is ChangeStatus.SYNCED:
                result.pushed += 1
            elif status is ChangeStatus.FAILED:
                result.failed += 1
            else:
                result.skipped += 1
        return result

    def _push_change(self, change: ChangeRecord) -> ChangeStatus:
        """Push one change record and record its outcome on the record."""
        entity = self._store.get_entity(change.entity_kind, change.entity_id)
        if entity is None:
            logger.warning(
                "Skipping change #%d: %s %s no longer exists locally",
                change.id,
                change.entity_kind.value,
                change.entity_id,
            )
            self._queue.mark_skipped(change.id, self._clock())
            return ChangeStatus.SKIPPED

        try:
            if change.operation is Operation.DELETE:
                self._remote.soft_delete(change.entity_kind, change.entity_id, self._clock())
            elif isinstance(entity, Goal):
                self._remote.upsert_goal(entity)
            else:
                self._remote.upsert_progress(entity)
        except APIError as e:
            logger.error(
                f"Failed to push change #{change.id} "
                f"({change.operation.value} {change.entity_kind.value} {change.entity_id}): {e}"
            )
            self._queue.mark_failed(change.id, self._clock(), str(e))
            return ChangeStatus.FAILED

        self._queue.mark_synced(change.id, self._clock())
        return ChangeStatus.SYNCED

    # === Pull phase ===

    def _pull_changes(self, owner_id: str, since: datetime) -> PullResult:
        """Fetch rows changed after ``since`` and apply the newer ones."""
        try:
            goals = self._remote.list_goals_since(owner_id, since)
            entries = self._remote.list_progress_since(owner_id, since)
        except APIError as e:
            raise PullError(f"Failed to fetch remote changes: {e}") from e

        logger.debug(
            "Pulled %d goals and %d progress entries changed since %s",
            len(goals),
            len(entries),
            since.isoformat(),
        )

        result = PullResult()
        # Goals first so entries never reference a goal missing locally
        for goal in goals:
            self._apply_goal(goal, result)
        for entry in entries:
            self._apply_progress(entry, result)
        return result

    def _apply_goal(self, remote: Goal, result: PullResult) -> None:
        local = self._store.get_goal(remote.id)
        if local is None:
            self._store.insert_goal(remote)
            result.created += 1
        elif resolve(local, remote):
            self._store.update_goal(remote)
            result.updated += 1
        else:
            result.discarded += 1

    def _apply_progress(self, remote: ProgressEntry, result: PullResult) -> None:
        # Counterpart is the entry for the same goal and day, whatever its id
        local = self._store.get_progress_for_date(remote.goal_id, remote.date)
        if local is None:
            local = self._store.get_progress(remote.id)

        if local is None:
            self._store.insert_progress(remote)
            result.created += 1
        elif resolve(local, remote):
            self._store.replace_progress(local.id, remote)
            result.updated += 1
        else:
            result.discarded += 1
