"""Sync commands for the goaltrack CLI.

Commands:
- sync: Push local changes and pull remote ones
- status: Show the change queue and the last sync time
"""

from __future__ import annotations

import sys
import time

import click

from goaltrack.client.cli.config import (
    get_db_path,
    load_config,
    require_owner,
    require_server_config,
)
from goaltrack.client.state import LocalStore
from goaltrack.client.sync import ChangeQueue, SyncEngine, SyncResult


def format_result(result: SyncResult) -> str:
    """Summary line of a successful sync call."""
    push, pull = result.push, result.pull
    if not (push.pushed or push.failed or push.skipped or pull.created or pull.updated):
        return "Everything is up to date."
    return (
        f"Sync complete: {push.pushed} pushed, {push.failed} failed, "
        f"{push.skipped} skipped, {pull.created} created, "
        f"{pull.updated} updated, {pull.discarded} discarded"
    )


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep syncing at a fixed interval.")
@click.option(
    "--interval",
    type=click.IntRange(min=1),
    default=60,
    show_default=True,
    help="Seconds between syncs in watch mode.",
)
@click.option("--retry-failed", is_flag=True, help="Retry changes whose push failed before.")
def sync(watch: bool, interval: int, retry_failed: bool) -> None:
    """Synchronize goals with the server.

    Pushes queued local changes, then pulls changes made on other devices.
    Use --watch to keep syncing until interrupted.
    """
    from goaltrack.client.api import HTTPClient

    owner_id = require_owner()
    server_config = require_server_config()

    click.echo(f"Syncing with {server_config.server_url}...")

    with LocalStore(get_db_path()) as store, HTTPClient(server_config) as client:
        engine = SyncEngine(store, client, retry_failed=retry_failed)

        result = engine.sync(owner_id)
        if not result.success:
            click.echo(f"Error: {result.error}", err=True)
            if not watch:
                sys.exit(1)
        else:
            click.echo(format_result(result))
            if result.push.failed:
                click.echo(
                    click.style(
                        f"{result.push.failed} changes failed to push. "
                        "Run 'goaltrack sync --retry-failed' to retry them.",
                        fg="yellow",
                    )
                )

        if not watch:
            return

        click.echo(f"\nSyncing every {interval}s... (Ctrl+C to stop)\n")
        try:
            while True:
                time.sleep(interval)
                result = engine.sync(owner_id)
                if result.success:
                    click.echo(format_result(result))
                else:
                    click.echo(f"Error: {result.error}", err=True)
        except KeyboardInterrupt:
            click.echo("\nStopping...")


@click.command()
def status() -> None:
    """Show pending changes and the last sync time."""
    owner_id = require_owner()
    config = load_config()

    with LocalStore(get_db_path()) as store:
        counts = ChangeQueue(store).stats()
        checkpoint = store.get_checkpoint(owner_id)

    click.echo(f"Owner:      {owner_id}")
    click.echo(f"Server:     {config.get('server_url') or 'not configured'}")
    click.echo(f"Last sync:  {checkpoint.isoformat() if checkpoint else 'never'}")
    click.echo(f"Pending:    {counts['pending']}")
    click.echo(f"Failed:     {counts['failed']}")
    click.echo(f"Synced:     {counts['synced']}")
    click.echo(f"Skipped:    {counts['skipped']}")
