"""Derived goal progress metrics.

Pure functions over a goal and its progress entries. Nothing here touches
storage; the results are recomputed on every read and never persisted.
All date arithmetic is on calendar dates, so "today" is a date and
whole-day differences need no rounding.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from goaltrack.core.models import Goal, ProgressEntry


@dataclass
class GoalProgress:
    """A goal enriched with its derived metrics."""

    goal: Goal
    total_progress: float
    completion_percentage: float
    current_streak: int
    days_remaining: int
    is_active: bool


@dataclass
class DashboardStats:
    """Aggregate metrics across all goals of an owner."""

    total_goals: int = 0
    active_goals: int = 0
    completed_goals: int = 0
    today_progress_count: int = 0
    longest_streak: int = 0
    total_progress: float = 0.0


def _live(entries: Iterable[ProgressEntry]) -> list[ProgressEntry]:
    return [entry for entry in entries if not entry.deleted]


def total_progress(entries: Iterable[ProgressEntry]) -> float:
    """Sum the values of non-deleted entries."""
    return sum((entry.value for entry in _live(entries)), 0.0)


def completion_percentage(goal: Goal, entries: Iterable[ProgressEntry]) -> float:
    """Percentage of the target reached, clamped to 100.

    Goals without a target (or a zero target) report 0.
    """
    if not goal.target_units:
        return 0.0
    return min(100.0, total_progress(entries) / goal.target_units * 100)


def current_streak(entries: Iterable[ProgressEntry], today: date | None = None) -> int:
    """Count consecutive days with progress, ending today.

    Entries are walked newest first. Each entry must be exactly ``streak``
    days before today to extend the streak; an older entry ends the walk
    and a repeated date is ignored. No entry today means no streak.

    Args:
        entries: Progress entries of one goal.
        today: Reference day (defaults to the local current date).

    Returns:
        Streak length in days.
    """
    today = today or date.today()
    streak = 0
    for entry in sorted(_live(entries), key=lambda e: e.date, reverse=True):
        gap = (today - entry.date).days
        if gap == streak:
            streak += 1
        elif gap > streak:
            break
    return streak


def days_remaining(goal: Goal, today: date | None = None) -> int:
    """Whole days left until the goal's end date (never negative)."""
    today = today or date.today()
    return max(0, (goal.end_date - today).days)


def is_active(goal: Goal, today: date | None = None) -> bool:
    """Check that a goal is not deleted and today falls in its date range."""
    if goal.deleted:
        return False
    today = today or date.today()
    return goal.start_date <= today <= goal.end_date


def enrich(
    goal: Goal,
    entries: Sequence[ProgressEntry],
    today: date | None = None,
) -> GoalProgress:
    """Compose all metrics for one goal."""
    today = today or date.today()
    return GoalProgress(
        goal=goal,
        total_progress=total_progress(entries),
        completion_percentage=completion_percentage(goal, entries),
        current_streak=current_streak(entries, today),
        days_remaining=days_remaining(goal, today),
        is_active=is_active(goal, today),
    )


def dashboard_stats(
    items: Iterable[tuple[Goal, Sequence[ProgressEntry]]],
    today: date | None = None,
) -> DashboardStats:
    """Aggregate metrics over (goal, entries) pairs.

    Deleted goals are left out entirely.
    """
    today = today or date.today()
    stats = DashboardStats()
    for goal, entries in items:
        if goal.deleted:
            continue
        progress = enrich(goal, entries, today)
        stats.total_goals += 1
        stats.total_progress += progress.total_progress
        if progress.is_active:
            stats.active_goals += 1
        if progress.completion_percentage >= 100:
            stats.completed_goals += 1
        stats.longest_streak = max(stats.longest_streak, progress.current_streak)
        stats.today_progress_count += sum(1 for e in _live(entries) if e.date == today)
    return stats
