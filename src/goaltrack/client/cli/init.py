"""Initialization command for the goaltrack CLI.

Commands:
- init: Set the owner and, optionally, the sync server
"""

from __future__ import annotations

import sys

import click

from goaltrack.client.cli.config import get_config_file, get_db_path, load_config, save_config
from goaltrack.client.state import LocalStore


@click.command()
@click.option("--owner", required=True, help="Owner id of the goals on this device.")
@click.option(
    "--server-url",
    default=None,
    help="Sync server URL (e.g., http://localhost:8000).",
)
@click.option("--token", default=None, help="Authentication token issued by the server.")
def init(owner: str, server_url: str | None, token: str | None) -> None:
    """Initialize goaltrack on this device.

    Creates the local database and stores the owner id. The server URL and
    token can be given now or later by running init again.
    """
    config = load_config()

    if config.get("owner_id") and config["owner_id"] != owner:
        click.echo(
            f"Warning: this device is initialized for owner '{config['owner_id']}'.",
            err=True,
        )
        if not click.confirm(f"Switch to owner '{owner}'?"):
            sys.exit(0)

    config["owner_id"] = owner
    if server_url:
        config["server_url"] = server_url.rstrip("/")
    if token:
        config["auth_token"] = token
    save_config(config)

    # Create the local database
    LocalStore(get_db_path()).close()

    click.echo(f"Initialized goaltrack for owner '{owner}'.")
    click.echo(f"Config: {get_config_file()}")
    if config.get("server_url"):
        click.echo(f"Server: {config['server_url']}")
    else:
        click.echo("No server configured; changes stay local until one is.")
