"""Pytest fixtures for integration tests.

This module provides fixtures for end-to-end testing: the real server app
served in-process through FastAPI's TestClient, and devices each with
their own local store, HTTP client and sync engine.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from goaltrack.client.api import HTTPClient
from goaltrack.client.state import LocalStore
from goaltrack.client.sync import SyncEngine
from goaltrack.client.tracker import GoalTracker
from goaltrack.core.config import ServerConfig
from goaltrack.server.app import create_app
from goaltrack.server.database import Database


@dataclass
class Device:
    """A simulated client device."""

    name: str
    owner_id: str
    store: LocalStore
    api_client: HTTPClient
    tracker: GoalTracker
    engine: SyncEngine

    def sync(self) -> None:
        result = self.engine.sync(self.owner_id)
        assert result.success, result.error

    def close(self) -> None:
        self.api_client.close()
        self.store.close()


@pytest.fixture
def server_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Server database."""
    database = Database(tmp_path / "server.db")
    yield database
    database.close()


@pytest.fixture
def server_app(server_db: Database) -> FastAPI:
    """Server application."""
    return create_app(server_db)


@pytest.fixture
def make_device(
    tmp_path: Path, server_db: Database, server_app: FastAPI
) -> Generator[Callable[..., Device], None, None]:
    """Factory creating devices that sync against the in-process server."""
    devices: list[Device] = []

    def _make(name: str, owner_id: str = "alice") -> Device:
        raw_token, _ = server_db.create_token(owner_id)
        config = ServerConfig(server_url="http://testserver", token=raw_token)
        http = TestClient(
            server_app,
            base_url=config.server_url,
            headers={"Authorization": f"Bearer {raw_token}"},
        )
        store = LocalStore(tmp_path / name / "goaltrack.db")
        api_client = HTTPClient(config, client=http)
        device = Device(
            name=name,
            owner_id=owner_id,
            store=store,
            api_client=api_client,
            tracker=GoalTracker(store, owner_id),
            engine=SyncEngine(store, api_client),
        )
        devices.append(device)
        return device

    yield _make

    for device in devices:
        device.close()
