"""Goal commands for the goaltrack CLI.

Commands:
- goal add: Create a goal
- goal list: List goals with their progress
- goal show: Show one goal and its progress entries
- goal edit: Edit a goal
- goal delete: Delete a goal
- stats: Dashboard totals across all goals
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

import click

from goaltrack.client.cli.config import fail, get_db_path, require_owner
from goaltrack.client.state import LocalStore
from goaltrack.client.tracker import EntityNotFoundError, GoalTracker
from goaltrack.core.progress import GoalProgress

DATE = click.DateTime(formats=["%Y-%m-%d"])


def _day(value: datetime | None) -> date | None:
    return value.date() if value is not None else None


def format_goal_line(item: GoalProgress) -> str:
    """One-line summary of a goal and its metrics."""
    goal = item.goal
    if goal.target_units:
        progress = (
            f"{item.total_progress:g}/{goal.target_units:g} "
            f"({item.completion_percentage:.0f}%)"
        )
    else:
        progress = f"{item.total_progress:g}"
    state = "active" if item.is_active else "inactive"
    return (
        f"{goal.id}  {goal.title}  {progress}  "
        f"streak {item.current_streak}  {item.days_remaining} days left  [{state}]"
    )


@click.group()
def goal() -> None:
    """Manage goals."""


@goal.command("add")
@click.argument("title")
@click.option("--start", "start", type=DATE, required=True, help="Start date (YYYY-MM-DD).")
@click.option("--end", "end", type=DATE, required=True, help="End date (YYYY-MM-DD).")
@click.option("--description", "-d", default="", help="Free text description.")
@click.option("--target", type=float, default=None, help="Numeric target (e.g., 100 hours).")
def add_goal(
    title: str,
    start: datetime,
    end: datetime,
    description: str,
    target: float | None,
) -> None:
    """Create a goal."""
    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        tracker = GoalTracker(store, owner_id)
        try:
            created = tracker.create_goal(
                title,
                start.date(),
                end.date(),
                description=description,
                target_units=target,
            )
        except ValueError as e:
            fail(str(e))
    click.echo(f"Created goal {created.id}")


@goal.command("list")
def list_goals() -> None:
    """List goals with their progress."""
    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        items = GoalTracker(store, owner_id).list_goals()

    if not items:
        click.echo("No goals yet. Add one with 'goaltrack goal add'.")
        return
    for item in items:
        click.echo(format_goal_line(item))


@goal.command("show")
@click.argument("goal_id")
def show_goal(goal_id: str) -> None:
    """Show a goal and its progress entries."""
    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        tracker = GoalTracker(store, owner_id)
        try:
            item = tracker.get_goal(goal_id)
            entries = tracker.list_progress(goal_id)
        except EntityNotFoundError as e:
            fail(str(e))

    g = item.goal
    click.echo(f"Goal:        {g.title}")
    click.echo(f"Id:          {g.id}")
    if g.description:
        click.echo(f"Description: {g.description}")
    click.echo(f"Period:      {g.start_date} to {g.end_date}")
    if g.target_units:
        click.echo(f"Target:      {g.target_units:g}")
    click.echo(f"Progress:    {item.total_progress:g} ({item.completion_percentage:.0f}%)")
    click.echo(f"Streak:      {item.current_streak} days")
    click.echo(f"Remaining:   {item.days_remaining} days")

    if entries:
        click.echo("\nEntries:")
        for entry in entries:
            note = f"  {entry.note}" if entry.note else ""
            click.echo(f"  {entry.date}  {entry.value:g}{note}  ({entry.id})")


@goal.command("edit")
@click.argument("goal_id")
@click.option("--title", default=None, help="New title.")
@click.option("--description", "-d", default=None, help="New description.")
@click.option("--start", "start", type=DATE, default=None, help="New start date.")
@click.option("--end", "end", type=DATE, default=None, help="New end date.")
@click.option("--target", type=float, default=None, help="New numeric target.")
def edit_goal(
    goal_id: str,
    title: str | None,
    description: str | None,
    start: datetime | None,
    end: datetime | None,
    target: float | None,
) -> None:
    """Edit a goal."""
    changes: dict[str, Any] = {
        "title": title,
        "description": description,
        "start_date": _day(start),
        "end_date": _day(end),
        "target_units": target,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        fail("Nothing to edit. Pass at least one option.")

    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        try:
            GoalTracker(store, owner_id).update_goal(goal_id, **changes)
        except (EntityNotFoundError, ValueError) as e:
            fail(str(e))
    click.echo(f"Updated goal {goal_id}")


@goal.command("delete")
@click.argument("goal_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def delete_goal(goal_id: str, yes: bool) -> None:
    """Delete a goal."""
    if not yes and not click.confirm(f"Delete goal {goal_id}?"):
        return

    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        try:
            GoalTracker(store, owner_id).delete_goal(goal_id)
        except EntityNotFoundError as e:
            fail(str(e))
    click.echo(f"Deleted goal {goal_id}")


@click.command()
def stats() -> None:
    """Show totals across all goals."""
    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        summary = GoalTracker(store, owner_id).stats()

    click.echo(f"Goals:           {summary.total_goals}")
    click.echo(f"Active:          {summary.active_goals}")
    click.echo(f"Completed:       {summary.completed_goals}")
    click.echo(f"Logged today:    {summary.today_progress_count}")
    click.echo(f"Longest streak:  {summary.longest_streak} days")
    click.echo(f"Total progress:  {summary.total_progress:g}")
