"""Progress commands for the goaltrack CLI.

Commands:
- progress log: Record progress on a goal for one day
- progress delete: Delete a progress entry
"""

from __future__ import annotations

from datetime import date, datetime

import click

from goaltrack.client.cli.config import fail, get_db_path, require_owner
from goaltrack.client.state import LocalStore
from goaltrack.client.tracker import EntityNotFoundError, GoalTracker


@click.group()
def progress() -> None:
    """Log progress on goals."""


@progress.command("log")
@click.argument("goal_id")
@click.argument("value", type=float)
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Day of the progress (default: today).",
)
@click.option("--note", "-n", default="", help="Optional note.")
def log_progress(goal_id: str, value: float, day: datetime | None, note: str) -> None:
    """Record VALUE units of progress on a goal.

    Logging twice for the same day replaces the earlier value.
    """
    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        try:
            entry = GoalTracker(store, owner_id).log_progress(
                goal_id,
                day.date() if day else date.today(),
                value,
                note,
            )
        except EntityNotFoundError as e:
            fail(str(e))
    click.echo(f"Logged {entry.value:g} on {entry.date} ({entry.id})")


@progress.command("delete")
@click.argument("entry_id")
def delete_progress(entry_id: str) -> None:
    """Delete a progress entry."""
    owner_id = require_owner()
    with LocalStore(get_db_path()) as store:
        try:
            GoalTracker(store, owner_id).delete_progress(entry_id)
        except EntityNotFoundError as e:
            fail(str(e))
    click.echo(f"Deleted progress entry {entry_id}")
