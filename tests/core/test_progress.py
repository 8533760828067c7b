"""Tests for derived goal progress metrics."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from goaltrack.core.models import Goal, ProgressEntry
from goaltrack.core.progress import (
    completion_percentage,
    current_streak,
    dashboard_stats,
    days_remaining,
    enrich,
    is_active,
    total_progress,
)

TODAY = date(2024, 1, 5)
T0 = datetime(2024, 1, 1, tzinfo=UTC)


def make_goal(target: float | None = 10.0, **overrides: object) -> Goal:
    """Create a goal running 2024-01-01..2024-01-10."""
    values: dict[str, object] = {
        "id": "goal-1",
        "user_id": "alice",
        "title": "Study",
        "start_date": date(2024, 1, 1),
        "end_date": date(2024, 1, 10),
        "created_at": T0,
        "updated_at": T0,
        "target_units": target,
    }
    values.update(overrides)
    return Goal(**values)  # type: ignore[arg-type]


def entry(day: date, value: float = 1.0, deleted: bool = False) -> ProgressEntry:
    """Create a progress entry for a day."""
    return ProgressEntry(
        id=f"p-{day.isoformat()}-{value}",
        goal_id="goal-1",
        date=day,
        value=value,
        created_at=T0,
        updated_at=T0,
        deleted=deleted,
    )


def days_ago(n: int) -> date:
    return TODAY - timedelta(days=n)


class TestTotalProgress:
    """Tests for total_progress."""

    def test_sums_values(self) -> None:
        """Should sum the values of all entries."""
        assert total_progress([entry(days_ago(0), 4), entry(days_ago(1), 2.5)]) == 6.5

    def test_ignores_deleted(self) -> None:
        """Deleted entries should not count."""
        assert total_progress([entry(days_ago(0), 4), entry(days_ago(1), 3, deleted=True)]) == 4

    def test_negative_values_accepted(self) -> None:
        """Negative values are summed as-is."""
        assert total_progress([entry(days_ago(0), 5), entry(days_ago(1), -2)]) == 3

    def test_empty(self) -> None:
        """No entries means no progress."""
        assert total_progress([]) == 0


class TestCompletionPercentage:
    """Tests for completion_percentage."""

    def test_partial(self) -> None:
        """Should report total over target."""
        assert completion_percentage(make_goal(10), [entry(days_ago(0), 4)]) == 40

    def test_clamped_at_100(self) -> None:
        """Exceeding the target should report exactly 100."""
        assert completion_percentage(make_goal(10), [entry(days_ago(0), 15)]) == 100

    def test_no_target(self) -> None:
        """Goals without target report 0."""
        assert completion_percentage(make_goal(None), [entry(days_ago(0), 4)]) == 0

    def test_zero_target(self) -> None:
        """A zero target reports 0 instead of dividing by zero."""
        assert completion_percentage(make_goal(0), [entry(days_ago(0), 4)]) == 0


class TestCurrentStreak:
    """Tests for current_streak."""

    def test_consecutive_days(self) -> None:
        """Today and the two days before make a streak of 3."""
        entries = [entry(days_ago(2)), entry(days_ago(0)), entry(days_ago(1))]
        assert current_streak(entries, TODAY) == 3

    def test_gap_ends_streak(self) -> None:
        """Today, yesterday and three days ago give 2."""
        entries = [entry(days_ago(0)), entry(days_ago(1)), entry(days_ago(3))]
        assert current_streak(entries, TODAY) == 2

    def test_yesterday_only(self) -> None:
        """No entry today means no streak."""
        assert current_streak([entry(days_ago(1))], TODAY) == 0

    def test_duplicate_dates_skipped(self) -> None:
        """Several entries on one day count once."""
        entries = [entry(days_ago(0), 1), entry(days_ago(0), 2), entry(days_ago(1))]
        assert current_streak(entries, TODAY) == 2

    def test_deleted_entries_ignored(self) -> None:
        """A deleted entry does not extend the streak."""
        entries = [entry(days_ago(0)), entry(days_ago(1), deleted=True), entry(days_ago(2))]
        assert current_streak(entries, TODAY) == 1

    def test_future_entries_ignored(self) -> None:
        """Entries dated after today do not break the streak."""
        entries = [entry(TODAY + timedelta(days=1)), entry(days_ago(0))]
        assert current_streak(entries, TODAY) == 1

    def test_empty(self) -> None:
        """No entries means no streak."""
        assert current_streak([], TODAY) == 0


class TestDaysRemainingAndActive:
    """Tests for days_remaining and is_active."""

    def test_days_remaining(self) -> None:
        """Should count whole days until the end date."""
        assert days_remaining(make_goal(), TODAY) == 5

    def test_days_remaining_never_negative(self) -> None:
        """Past goals report 0 days remaining."""
        assert days_remaining(make_goal(), date(2024, 2, 1)) == 0

    def test_is_active_in_range(self) -> None:
        """Goals are active between their start and end dates, inclusive."""
        goal = make_goal()
        assert is_active(goal, date(2024, 1, 1))
        assert is_active(goal, date(2024, 1, 10))
        assert not is_active(goal, date(2023, 12, 31))
        assert not is_active(goal, date(2024, 1, 11))

    def test_deleted_goal_not_active(self) -> None:
        """Deleted goals are never active."""
        assert not is_active(make_goal(deleted=True), TODAY)


class TestEnrich:
    """Tests for enrich."""

    def test_composes_metrics(self) -> None:
        """Should compute every metric for the goal."""
        entries = [entry(days_ago(0), 3), entry(days_ago(1), 2)]

        result = enrich(make_goal(10), entries, TODAY)

        assert result.goal.id == "goal-1"
        assert result.total_progress == 5
        assert result.completion_percentage == 50
        assert result.current_streak == 2
        assert result.days_remaining == 5
        assert result.is_active is True


class TestDashboardStats:
    """Tests for dashboard_stats."""

    def test_aggregates(self) -> None:
        """Should aggregate over all non-deleted goals."""
        done = make_goal(5, id="done")
        running = make_goal(100, id="running")
        over = make_goal(10, id="over", start_date=date(2023, 1, 1), end_date=date(2023, 2, 1))
        gone = make_goal(1, id="gone", deleted=True)

        stats = dashboard_stats(
            [
                (done, [entry(days_ago(0), 5), entry(days_ago(1), 1)]),
                (running, [entry(days_ago(0), 2)]),
                (over, []),
                (gone, [entry(days_ago(0), 50)]),
            ],
            TODAY,
        )

        assert stats.total_goals == 3
        assert stats.active_goals == 2
        assert stats.completed_goals == 1
        assert stats.today_progress_count == 2
        assert stats.longest_streak == 2
        assert stats.total_progress == 8

    def test_empty(self) -> None:
        """No goals gives zero everywhere."""
        stats = dashboard_stats([], TODAY)
        assert stats.total_goals == 0
        assert stats.total_progress == 0
