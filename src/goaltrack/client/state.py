"""Local state management for the goaltrack client.

This module provides:
- LocalStore: SQLite-based local store for goals, progress entries,
  the change queue ledger and per-owner sync checkpoints
- LocalStoreError: Raised for any failure of the underlying database

Architecture:
    The local store is the source of truth for the UI. The sync engine
    only reads and writes it through this interface and holds no copies
    across calls. Every write commits immediately (autocommit mode), so a
    crash mid-sync leaves each row either fully written or untouched.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

from goaltrack.core.models import (
    ChangeRecord,
    Goal,
    ProgressEntry,
    format_timestamp,
    parse_timestamp,
)
from goaltrack.core.types import ChangeStatus, EntityKind, Operation

logger = logging.getLogger(__name__)


class LocalStoreError(Exception):
    """A local database operation failed."""


def _goal_params(goal: Goal) -> dict[str, Any]:
    params = goal.to_dict()
    params["deleted"] = int(goal.deleted)
    return params


def _progress_params(entry: ProgressEntry) -> dict[str, Any]:
    params = entry.to_dict()
    params["deleted"] = int(entry.deleted)
    return params


class LocalStore:
    """SQLite-based local store.

    All access goes through one connection guarded by a re-entrant lock,
    so the store serializes its own writes.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize local store database.

        Args:
            db_path: Path to SQLite database file (":memory:" for tests).
        """
        self._db_path = db_path if db_path == ":memory:" else Path(db_path)
        if isinstance(self._db_path, Path):
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS goals (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                target_units REAL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                deleted INTEGER NOT NULL DEFAULT 0
            );
            CREATE INDEX IF NOT EXISTS idx_goals_user ON goals (user_id);

            -- One row per goal and date by convention, not by constraint
            CREATE TABLE IF NOT EXISTS progress_entries (
                id TEXT PRIMARY KEY,
                goal_id TEXT NOT NULL,
                date TEXT NOT NULL,
                value REAL NOT NULL,
                note TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                deleted INTEGER NOT NULL DEFAULT 0
            );
            CREATE INDEX IF NOT EXISTS idx_progress_goal_date
                ON progress_entries (goal_id, date);

            -- Change queue ledger (never deleted, kept as audit trail)
            CREATE TABLE IF NOT EXISTS change_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                entity_kind TEXT NOT NULL,
                entity_id TEXT NOT NULL,
                operation TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TEXT NOT NULL,
                last_attempt_at TEXT,
                error TEXT
            );
            CREATE INDEX IF NOT EXISTS idx_change_records_status
                ON change_records (status);

            CREATE TABLE IF NOT EXISTS sync_checkpoints (
                owner_id TEXT PRIMARY KEY,
                last_sync_at TEXT NOT NULL
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> LocalStore:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _execute(self, sql: str, params: Any = ()) -> sqlite3.Cursor:
        """Run one statement under the lock, wrapping database errors."""
        try:
            with self._lock:
                return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise LocalStoreError(f"Local store operation failed: {e}") from e

    def _fetchone(self, sql: str, params: Any = ()) -> sqlite3.Row | None:
        with self._lock:
            row: sqlite3.Row | None = self._execute(sql, params).fetchone()
        return row

    def _fetchall(self, sql: str, params: Any = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._execute(sql, params).fetchall()

    # === Goal operations ===

    def get_goal(self, goal_id: str) -> Goal | None:
        """Get a goal by id, including soft-deleted ones."""
        row = self._fetchone("SELECT * FROM goals WHERE id = ?", (goal_id,))
        return Goal.from_dict(dict(row)) if row else None

    def list_goals(self, user_id: str, *, include_deleted: bool = False) -> list[Goal]:
        """List goals of an owner, newest first."""
        sql = "SELECT * FROM goals WHERE user_id = ?"
        if not include_deleted:
            sql += " AND deleted = 0"
        rows = self._fetchall(sql + " ORDER BY created_at DESC", (user_id,))
        return [Goal.from_dict(dict(row)) for row in rows]

    def insert_goal(self, goal: Goal) -> None:
        """Insert a new goal row."""
        self._execute(
            """
            INSERT INTO goals (
                id, user_id, title, description, start_date, end_date,
                target_units, created_at, updated_at, deleted
            ) VALUES (
                :id, :user_id, :title, :description, :start_date, :end_date,
                :target_units, :created_at, :updated_at, :deleted
            )
            """,
            _goal_params(goal),
        )

    def update_goal(self, goal: Goal) -> None:
        """Overwrite every mutable column of an existing goal."""
        self._execute(
            """
            UPDATE goals SET
                user_id = :user_id, title = :title, description = :description,
                start_date = :start_date, end_date = :end_date,
                target_units = :target_units, created_at = :created_at,
                updated_at = :updated_at, deleted = :deleted
            WHERE id = :id
            """,
            _goal_params(goal),
        )

    # === Progress operations ===

    def get_progress(self, entry_id: str) -> ProgressEntry | None:
        """Get a progress entry by id, including soft-deleted ones."""
        row = self._fetchone("SELECT * FROM progress_entries WHERE id = ?", (entry_id,))
        return ProgressEntry.from_dict(dict(row)) if row else None

    def get_progress_for_date(self, goal_id: str, day: date) -> ProgressEntry | None:
        """Get the entry of a goal for a calendar date, deleted or not."""
        row = self._fetchone(
            "SELECT * FROM progress_entries WHERE goal_id = ? AND date = ? ORDER BY rowid LIMIT 1",
            (goal_id, day.isoformat()),
        )
        return ProgressEntry.from_dict(dict(row)) if row else None

    def list_progress(self, goal_id: str, *, include_deleted: bool = False) -> list[ProgressEntry]:
        """List entries of a goal, most recent date first."""
        sql = "SELECT * FROM progress_entries WHERE goal_id = ?"
        if not include_deleted:
            sql += " AND deleted = 0"
        rows = self._fetchall(sql + " ORDER BY date DESC", (goal_id,))
        return [ProgressEntry.from_dict(dict(row)) for row in rows]

    def insert_progress(self, entry: ProgressEntry) -> None:
        """Insert a new progress entry row."""
        self._execute(
            """
            INSERT INTO progress_entries (
                id, goal_id, date, value, note, created_at, updated_at, deleted
            ) VALUES (
                :id, :goal_id, :date, :value, :note, :created_at, :updated_at, :deleted
            )
            """,
            _progress_params(entry),
        )

    def update_progress(self, entry: ProgressEntry) -> None:
        """Overwrite every mutable column of an existing entry."""
        self.replace_progress(entry.id, entry)

    def replace_progress(self, local_id: str, entry: ProgressEntry) -> None:
        """Overwrite the row ``local_id`` with ``entry``, taking its id too.

        Used when a remote entry for the same goal and date carries a
        different id than the local one.
        """
        params = _progress_params(entry)
        params["local_id"] = local_id
        self._execute(
            """
            UPDATE progress_entries SET
                id = :id, goal_id = :goal_id, date = :date, value = :value,
                note = :note, created_at = :created_at,
                updated_at = :updated_at, deleted = :deleted
            WHERE id = :local_id
            """,
            params,
        )

    def get_entity(self, kind: EntityKind, entity_id: str) -> Goal | ProgressEntry | None:
        """Get an entity of either kind by id."""
        if kind is EntityKind.GOAL:
            return self.get_goal(entity_id)
        return self.get_progress(entity_id)

    # === Change records ===

    def add_change(
        self,
        entity_kind: EntityKind,
        entity_id: str,
        operation: Operation,
        created_at: datetime,
    ) -> ChangeRecord:
        """Append a pending change record; the store assigns its id."""
        cursor = self._execute(
            """
            INSERT INTO change_records (entity_kind, entity_id, operation, status, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                entity_kind.value,
                entity_id,
                operation.value,
                ChangeStatus.PENDING.value,
                format_timestamp(created_at),
            ),
        )
        return ChangeRecord(
            id=int(cursor.lastrowid or 0),
            entity_kind=entity_kind,
            entity_id=entity_id,
            operation=operation,
            status=ChangeStatus.PENDING,
            created_at=created_at,
        )

    def get_change(self, change_id: int) -> ChangeRecord | None:
        """Get a change record by id."""
        row = self._fetchone("SELECT * FROM change_records WHERE id = ?", (change_id,))
        return ChangeRecord.from_dict(dict(row)) if row else None

    def list_changes(self, status: ChangeStatus | None = None) -> list[ChangeRecord]:
        """List change records in insertion order, optionally by status."""
        if status is None:
            rows = self._fetchall("SELECT * FROM change_records ORDER BY id")
        else:
            rows = self._fetchall(
                "SELECT * FROM change_records WHERE status = ? ORDER BY id",
                (status.value,),
            )
        return [ChangeRecord.from_dict(dict(row)) for row in rows]

    def set_change_status(
        self,
        change_id: int,
        status: ChangeStatus,
        timestamp: datetime,
        error: str | None = None,
    ) -> None:
        """Record the outcome of a push attempt."""
        self._execute(
            "UPDATE change_records SET status = ?, last_attempt_at = ?, error = ? WHERE id = ?",
            (status.value, format_timestamp(timestamp), error, change_id),
        )

    def requeue_failed_changes(self) -> int:
        """Move failed records back to pending. Returns the count."""
        cursor = self._execute(
            "UPDATE change_records SET status = ? WHERE status = ?",
            (ChangeStatus.PENDING.value, ChangeStatus.FAILED.value),
        )
        return cursor.rowcount

    def count_changes_by_status(self) -> dict[ChangeStatus, int]:
        """Count change records per status (every status is present)."""
        rows = self._fetchall(
            "SELECT status, COUNT(*) AS n FROM change_records GROUP BY status"
        )
        counts = dict.fromkeys(ChangeStatus, 0)
        for row in rows:
            counts[ChangeStatus(row["status"])] = row["n"]
        return counts

    # === Sync checkpoints ===

    def get_checkpoint(self, owner_id: str) -> datetime | None:
        """Get the last successful sync timestamp of an owner."""
        row = self._fetchone(
            "SELECT last_sync_at FROM sync_checkpoints WHERE owner_id = ?",
            (owner_id,),
        )
        return parse_timestamp(row["last_sync_at"]) if row else None

    def set_checkpoint(self, owner_id: str, timestamp: datetime) -> None:
        """Set the last successful sync timestamp of an owner."""
        self._execute(
            "INSERT OR REPLACE INTO sync_checkpoints (owner_id, last_sync_at) VALUES (?, ?)",
            (owner_id, format_timestamp(timestamp)),
        )
