"""Server database using SQLAlchemy with SQLite.

This module provides:
- Token-based authentication (one token, one owner)
- Goal and progress entry upserts keyed by client id
- Soft deletes that replicate like any other update
- Incremental reads ("rows of owner updated after T")

Timestamps are stored as UTC. SQLite drops the offset, so rows read back
are normalized with ensure_utc before leaving this module.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from goaltrack.core.models import Goal, ProgressEntry, ensure_utc
from goaltrack.server.models import Base, GoalRow, ProgressRow, Token

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    Args:
        token: Raw token string.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hashlib.sha256(token.encode()).hexdigest()


class OwnershipError(Exception):
    """Raised when a row belongs to a different owner."""


def _utc(value: datetime) -> datetime:
    # Stored naive, always UTC
    return ensure_utc(value).replace(tzinfo=None)


def goal_from_row(row: GoalRow) -> Goal:
    """Convert a GoalRow to the shared model."""
    return Goal(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        start_date=row.start_date,
        end_date=row.end_date,
        target_units=row.target_units,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
        deleted=row.deleted,
    )


def progress_from_row(row: ProgressRow) -> ProgressEntry:
    """Convert a ProgressRow to the shared model."""
    return ProgressEntry(
        id=row.id,
        goal_id=row.goal_id,
        date=row.day,
        value=row.value,
        note=row.note,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
        deleted=row.deleted,
    )


class Database:
    """SQLAlchemy database for replicated goal data.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        """Path of the database file."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Token operations ===

    def create_token(self, owner_id: str) -> tuple[str, Token]:
        """Create a new authentication token for an owner.

        Args:
            owner_id: Owner the token grants access to.

        Returns:
            Tuple of (raw_token, Token object). Only the hash is stored.
        """
        raw_token = secrets.token_urlsafe(32)
        with self._session() as session:
            token = Token(owner_id=owner_id, token_hash=hash_token(raw_token))
            session.add(token)
            session.commit()
            session.refresh(token)
            session.expunge(token)
        logger.info("Created token for owner %s", owner_id)
        return raw_token, token

    def validate_token(self, raw_token: str) -> Token | None:
        """Validate a token and return it if valid.

        Args:
            raw_token: Raw token string.

        Returns:
            Token if valid and not revoked, None otherwise.
        """
        with self._session() as session:
            token = session.scalar(
                select(Token).where(Token.token_hash == hash_token(raw_token))
            )
            if token is None or token.revoked:
                return None
            session.expunge(token)
            return token

    def revoke_token(self, token_id: int) -> bool:
        """Revoke a token. Returns False if it does not exist."""
        with self._session() as session:
            token = session.get(Token, token_id)
            if token is None:
                return False
            token.revoked = True
            session.commit()
            return True

    # === Goal operations ===

    def get_goal(self, goal_id: str) -> Goal | None:
        """Get a goal by id."""
        with self._session() as session:
            row = session.get(GoalRow, goal_id)
            return goal_from_row(row) if row else None

    def upsert_goal(self, goal: Goal) -> Goal:
        """Insert a goal or replace every column of the existing row.

        Raises:
            OwnershipError: If the existing row belongs to another owner.
        """
        with self._session() as session:
            row = session.get(GoalRow, goal.id)
            if row is None:
                row = GoalRow(id=goal.id, user_id=goal.user_id)
                session.add(row)
            elif row.user_id != goal.user_id:
                raise OwnershipError(f"Goal {goal.id} belongs to another owner")

            row.title = goal.title
            row.description = goal.description
            row.start_date = goal.start_date
            row.end_date = goal.end_date
            row.target_units = goal.target_units
            row.created_at = _utc(goal.created_at)
            row.updated_at = _utc(goal.updated_at)
            row.deleted = goal.deleted
            session.commit()
            return goal_from_row(row)

    def soft_delete_goal(self, goal_id: str, updated_at: datetime) -> Goal | None:
        """Mark a goal deleted. Returns None if it does not exist."""
        with self._session() as session:
            row = session.get(GoalRow, goal_id)
            if row is None:
                return None
            row.deleted = True
            row.updated_at = _utc(updated_at)
            session.commit()
            return goal_from_row(row)

    def goals_since(self, owner_id: str, since: datetime) -> list[Goal]:
        """Goals of an owner updated strictly after ``since``."""
        with self._session() as session:
            rows = session.scalars(
                select(GoalRow)
                .where(GoalRow.user_id == owner_id, GoalRow.updated_at > _utc(since))
                .order_by(GoalRow.updated_at)
            ).all()
            return [goal_from_row(row) for row in rows]

    # === Progress operations ===

    def get_progress(self, entry_id: str) -> ProgressEntry | None:
        """Get a progress entry by id."""
        with self._session() as session:
            row = session.get(ProgressRow, entry_id)
            return progress_from_row(row) if row else None

    def upsert_progress(self, entry: ProgressEntry) -> ProgressEntry:
        """Insert a progress entry or replace every column of the existing row."""
        with self._session() as session:
            row = session.get(ProgressRow, entry.id)
            if row is None:
                row = ProgressRow(id=entry.id)
                session.add(row)

            row.goal_id = entry.goal_id
            row.day = entry.date
            row.value = entry.value
            row.note = entry.note
            row.created_at = _utc(entry.created_at)
            row.updated_at = _utc(entry.updated_at)
            row.deleted = entry.deleted
            session.commit()
            return progress_from_row(row)

    def soft_delete_progress(self, entry_id: str, updated_at: datetime) -> ProgressEntry | None:
        """Mark a progress entry deleted. Returns None if it does not exist."""
        with self._session() as session:
            row = session.get(ProgressRow, entry_id)
            if row is None:
                return None
            row.deleted = True
            row.updated_at = _utc(updated_at)
            session.commit()
            return progress_from_row(row)

    def progress_since(self, owner_id: str, since: datetime) -> list[ProgressEntry]:
        """Entries of the owner's goals updated strictly after ``since``."""
        with self._session() as session:
            rows = session.scalars(
                select(ProgressRow)
                .join(GoalRow, GoalRow.id == ProgressRow.goal_id)
                .where(GoalRow.user_id == owner_id, ProgressRow.updated_at > _utc(since))
                .order_by(ProgressRow.updated_at)
            ).all()
            return [progress_from_row(row) for row in rows]

    def goal_owner(self, goal_id: str) -> str | None:
        """Owner of a goal, or None if the goal does not exist."""
        with self._session() as session:
            return session.scalar(select(GoalRow.user_id).where(GoalRow.id == goal_id))
