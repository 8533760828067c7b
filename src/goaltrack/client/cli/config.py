"""Configuration utilities for the goaltrack CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import NoReturn

import click

from goaltrack.core.config import ServerConfig


def get_config_dir() -> Path:
    """Get the configuration directory for goaltrack.

    Returns:
        Path from GOALTRACK_HOME, or ~/.goaltrack.
    """
    home = os.environ.get("GOALTRACK_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".goaltrack"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_db_path() -> Path:
    """Get the path to the local database."""
    return get_config_dir() / "goaltrack.db"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def require_owner() -> str:
    """Owner id from the config; exits if goaltrack is not initialized."""
    owner_id = load_config().get("owner_id")
    if not owner_id:
        fail("goaltrack not initialized. Run 'goaltrack init' first.")
    return owner_id


def require_server_config() -> ServerConfig:
    """Server settings from the config; exits if no server is configured."""
    config = load_config()
    if not config.get("server_url") or not config.get("auth_token"):
        fail("No server configured. Run 'goaltrack init --server-url URL --token TOKEN'.")
    return ServerConfig(server_url=config["server_url"], token=config["auth_token"])
