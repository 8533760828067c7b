"""Server administration commands for the goaltrack CLI.

Commands:
- server run: Run the sync server
- server create-token: Issue an authentication token for an owner
"""

from __future__ import annotations

import os

import click

DB_PATH_HELP = "Path to database file (default: GOALTRACK_DB_PATH or ./goaltrack-server.db)."


@click.group()
def server() -> None:
    """Server management commands.

    These commands are for server administrators to run the goaltrack server.
    """


@server.command("run")
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", type=int, default=8000, show_default=True, help="Port to bind.")
@click.option("--db-path", type=click.Path(), default=None, help=DB_PATH_HELP)
def run_cmd(host: str, port: int, db_path: str | None) -> None:
    """Run the goaltrack server."""
    import uvicorn

    if db_path:
        os.environ["GOALTRACK_DB_PATH"] = db_path

    uvicorn.run(
        "goaltrack.server.app:app_factory",
        factory=True,
        host=host,
        port=port,
    )


@server.command("create-token")
@click.argument("owner")
@click.option("--db-path", type=click.Path(), default=None, help=DB_PATH_HELP)
def create_token_cmd(owner: str, db_path: str | None) -> None:
    """Create an authentication token for OWNER.

    The token is shown once; only its hash is stored.

    Examples:

        goaltrack server create-token alice

        goaltrack server create-token alice --db-path /var/lib/goaltrack/goaltrack.db
    """
    from pathlib import Path

    from goaltrack.server.app import get_db_path
    from goaltrack.server.database import Database

    db = Database(Path(db_path) if db_path else get_db_path())
    try:
        raw_token, _ = db.create_token(owner)
    finally:
        db.close()

    click.echo(f"Token for owner '{owner}':")
    click.echo(raw_token)
