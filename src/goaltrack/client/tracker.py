"""Local goal tracking operations.

This module provides:
- GoalTracker: every user mutation writes the local store and appends a
  change record; every read path returns enriched progress views
- EntityNotFoundError: Raised when a goal or entry id is unknown

Nothing here talks to the network. The sync engine later pushes the
queued changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from goaltrack.client.sync.queue import ChangeQueue
from goaltrack.core.models import Goal, ProgressEntry, new_id, soft_deleted, utc_now
from goaltrack.core.progress import DashboardStats, GoalProgress, dashboard_stats, enrich
from goaltrack.core.types import EntityKind, Operation

if TYPE_CHECKING:
    from goaltrack.client.state import LocalStore

logger = logging.getLogger(__name__)

# Goal fields a user may edit
EDITABLE_GOAL_FIELDS = frozenset(
    {"title", "description", "start_date", "end_date", "target_units"}
)


class EntityNotFoundError(LookupError):
    """No goal or progress entry with the given id."""


class GoalTracker:
    """Goal and progress operations for one owner."""

    def __init__(
        self,
        store: LocalStore,
        owner_id: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the tracker.

        Args:
            store: Local store.
            owner_id: Owner of every goal created through this tracker.
            clock: Source of created/updated timestamps.
        """
        self._store = store
        self._owner_id = owner_id
        self._queue = ChangeQueue(store)
        self._clock = clock

    @property
    def owner_id(self) -> str:
        """Owner this tracker acts for."""
        return self._owner_id

    # === Goals ===

    def create_goal(
        self,
        title: str,
        start_date: date,
        end_date: date,
        description: str = "",
        target_units: float | None = None,
    ) -> Goal:
        """Create a goal and queue it for push.

        Raises:
            ValueError: If end_date is not after start_date.
        """
        if end_date <= start_date:
            raise ValueError("End date must be after start date")

        now = self._clock()
        goal = Goal(
            id=new_id(),
            user_id=self._owner_id,
            title=title,
            description=description,
            start_date=start_date,
            end_date=end_date,
            target_units=target_units,
            created_at=now,
            updated_at=now,
        )
        self._store.insert_goal(goal)
        self._queue.enqueue(EntityKind.GOAL, goal.id, Operation.CREATE)
        logger.info(f"Created goal {goal.id}: {title}")
        return goal

    def update_goal(self, goal_id: str, **changes: Any) -> Goal:
        """Edit a goal and queue the update.

        Args:
            goal_id: Goal to edit.
            **changes: New values for fields in EDITABLE_GOAL_FIELDS.

        Raises:
            EntityNotFoundError: If the goal does not exist or is deleted.
            ValueError: If a field is not editable or the dates are invalid.
        """
        unknown = set(changes) - EDITABLE_GOAL_FIELDS
        if unknown:
            raise ValueError(f"Cannot edit fields: {', '.join(sorted(unknown))}")

        goal = self._live_goal(goal_id)
        updated = replace(goal, **changes, updated_at=self._clock())
        if updated.end_date <= updated.start_date:
            raise ValueError("End date must be after start date")

        self._store.update_goal(updated)
        self._queue.enqueue(EntityKind.GOAL, goal_id, Operation.UPDATE)
        return updated

    def delete_goal(self, goal_id: str) -> Goal:
        """Soft-delete a goal and queue the deletion."""
        goal = soft_deleted(self._live_goal(goal_id), self._clock())
        self._store.update_goal(goal)
        self._queue.enqueue(EntityKind.GOAL, goal_id, Operation.DELETE)
        logger.info(f"Deleted goal {goal_id}")
        return goal

    def get_goal(self, goal_id: str, today: date | None = None) -> GoalProgress:
        """Get one goal with its derived metrics."""
        goal = self._live_goal(goal_id)
        return enrich(goal, self._store.list_progress(goal_id), today)

    def list_goals(self, today: date | None = None) -> list[GoalProgress]:
        """List the owner's goals with their derived metrics, newest first."""
        return [
            enrich(goal, self._store.list_progress(goal.id), today)
            for goal in self._store.list_goals(self._owner_id)
        ]

    def stats(self, today: date | None = None) -> DashboardStats:
        """Aggregate metrics across the owner's goals."""
        return dashboard_stats(
            ((goal, self._store.list_progress(goal.id)) for goal in self._store.list_goals(self._owner_id)),
            today,
        )

    # === Progress ===

    def log_progress(self, goal_id: str, day: date, value: float, note: str = "") -> ProgressEntry:
        """Record the progress of a goal for one day.

        An existing entry for the same day (even a deleted one) is
        overwritten, so each goal keeps at most one entry per date.
        """
        self._live_goal(goal_id)
        now = self._clock()
        existing = self._store.get_progress_for_date(goal_id, day)

        if existing is not None:
            entry = replace(existing, value=value, note=note, deleted=False, updated_at=now)
            self._store.update_progress(entry)
            self._queue.enqueue(EntityKind.PROGRESS_ENTRY, entry.id, Operation.UPDATE)
            return entry

        entry = ProgressEntry(
            id=new_id(),
            goal_id=goal_id,
            date=day,
            value=value,
            note=note,
            created_at=now,
            updated_at=now,
        )
        self._store.insert_progress(entry)
        self._queue.enqueue(EntityKind.PROGRESS_ENTRY, entry.id, Operation.CREATE)
        return entry

    def delete_progress(self, entry_id: str) -> ProgressEntry:
        """Soft-delete a progress entry and queue the deletion."""
        entry = self._store.get_progress(entry_id)
        if entry is None or entry.deleted:
            raise EntityNotFoundError(f"Progress entry not found: {entry_id}")
        entry = soft_deleted(entry, self._clock())
        self._store.update_progress(entry)
        self._queue.enqueue(EntityKind.PROGRESS_ENTRY, entry_id, Operation.DELETE)
        return entry

    def list_progress(self, goal_id: str) -> list[ProgressEntry]:
        """Non-deleted entries of a goal, most recent first."""
        self._live_goal(goal_id)
        return self._store.list_progress(goal_id)

    def _live_goal(self, goal_id: str) -> Goal:
        goal = self._store.get_goal(goal_id)
        if goal is None or goal.deleted or goal.user_id != self._owner_id:
            raise EntityNotFoundError(f"Goal not found: {goal_id}")
        return goal
