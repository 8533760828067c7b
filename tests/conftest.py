"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pytest

from goaltrack.client.state import LocalStore
from goaltrack.core.models import Goal, ProgressEntry, new_id

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=UTC)


@pytest.fixture
def store(tmp_path: Path) -> Generator[LocalStore, None, None]:
    """Create a local store in a temporary directory."""
    local_store = LocalStore(tmp_path / "goaltrack.db")
    yield local_store
    local_store.close()


@pytest.fixture
def make_goal() -> Callable[..., Goal]:
    """Factory for goals owned by alice, 2024-01-01..2024-01-10, target 10."""

    def _make(**overrides: Any) -> Goal:
        values: dict[str, Any] = {
            "id": new_id(),
            "user_id": "alice",
            "title": "Read books",
            "start_date": date(2024, 1, 1),
            "end_date": date(2024, 1, 10),
            "target_units": 10.0,
            "created_at": T0,
            "updated_at": T0,
        }
        values.update(overrides)
        return Goal(**values)

    return _make


@pytest.fixture
def make_entry() -> Callable[..., ProgressEntry]:
    """Factory for progress entries dated 2024-01-02."""

    def _make(goal_id: str, **overrides: Any) -> ProgressEntry:
        values: dict[str, Any] = {
            "id": new_id(),
            "goal_id": goal_id,
            "date": date(2024, 1, 2),
            "value": 4.0,
            "created_at": T0,
            "updated_at": T0,
        }
        values.update(overrides)
        return ProgressEntry(**values)

    return _make
