"""Command-line interface for goaltrack.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Set the owner and the sync server
- goal: Add, list, show, edit and delete goals
- progress: Log and delete progress entries
- stats: Totals across all goals
- status: Pending changes and last sync time
- sync: Synchronize with the server
- server: Server administration commands
"""

from __future__ import annotations

import logging
import sys

import click

from goaltrack.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_db_path,
    load_config,
    save_config,
)
from goaltrack.client.cli.goals import goal, stats
from goaltrack.client.cli.init import init
from goaltrack.client.cli.progress import progress
from goaltrack.client.cli.server import server
from goaltrack.client.cli.sync import status, sync


def setup_logging(verbose: bool) -> None:
    """Send goaltrack log records to stderr.

    Args:
        verbose: Show INFO and DEBUG records, not only warnings and errors.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))

    goaltrack_logger = logging.getLogger("goaltrack")
    # Remove any existing handlers
    for existing in goaltrack_logger.handlers[:]:
        goaltrack_logger.removeHandler(existing)
    goaltrack_logger.addHandler(handler)
    goaltrack_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    goaltrack_logger.propagate = False


@click.group()
@click.version_option(package_name="goaltrack")
@click.option("--verbose", "-v", is_flag=True, help="Show informational log messages.")
def cli(verbose: bool) -> None:
    """goaltrack - offline-first goal tracking."""
    setup_logging(verbose)


# Setup
cli.add_command(init)

# Goal and progress commands
cli.add_command(goal)
cli.add_command(progress)
cli.add_command(stats)

# Sync commands
cli.add_command(sync)
cli.add_command(status)

# Server admin commands
cli.add_command(server)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    "setup_logging",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_db_path",
    "load_config",
    "save_config",
]
