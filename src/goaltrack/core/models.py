"""Entity models shared by the client, the sync engine and the server.

This module provides:
- Goal, ProgressEntry: synchronized entities (tagged with EntityKind)
- SyncEntity: the capability surface both entity kinds share
- ChangeRecord: a change queue entry
- Timestamp and date helpers used on every storage and wire boundary

Dates travel as ``YYYY-MM-DD`` strings and timestamps as ISO 8601 strings
with a UTC offset. Timestamps are always timezone-aware UTC in memory.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Any, ClassVar, Protocol, TypeVar

from goaltrack.core.types import ChangeStatus, EntityKind, Operation

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    """Get the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (SQLite drops the offset).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO 8601 timestamp (a trailing ``Z`` is accepted)."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def format_timestamp(value: datetime) -> str:
    """Format a timestamp for storage or the wire."""
    return ensure_utc(value).isoformat()


def parse_date(value: str | date) -> date:
    """Parse a calendar date, dropping any time part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def new_id() -> str:
    """Generate a client-side entity id."""
    return str(uuid.uuid4())


class SyncEntity(Protocol):
    """What the change queue and the conflict resolver need from an entity."""

    kind: ClassVar[EntityKind]
    id: str
    updated_at: datetime
    deleted: bool

    def to_dict(self) -> dict[str, Any]: ...


@dataclass
class Goal:
    """A user goal.

    Attributes:
        id: Unique client-generated id.
        user_id: Owner id.
        title: Short title.
        description: Free text.
        start_date: First day of the goal.
        end_date: Last day of the goal (after start_date).
        target_units: Optional numeric target (e.g. 100 study hours).
        created_at: Creation timestamp.
        updated_at: Last modification timestamp (conflict resolution key).
        deleted: Soft-delete flag.
    """

    kind: ClassVar[EntityKind] = EntityKind.GOAL

    id: str
    user_id: str
    title: str
    start_date: date
    end_date: date
    created_at: datetime
    updated_at: datetime
    description: str = ""
    target_units: float | None = None
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Goal:
        """Create from a storage row or API payload."""
        target = data.get("target_units")
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            title=data["title"],
            description=data.get("description") or "",
            start_date=parse_date(data["start_date"]),
            end_date=parse_date(data["end_date"]),
            target_units=float(target) if target is not None else None,
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
            deleted=bool(data.get("deleted", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible payload."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "target_units": self.target_units,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "deleted": self.deleted,
        }


@dataclass
class ProgressEntry:
    """Progress logged against a goal for one calendar day."""

    kind: ClassVar[EntityKind] = EntityKind.PROGRESS_ENTRY

    id: str
    goal_id: str
    date: date
    value: float
    created_at: datetime
    updated_at: datetime
    note: str = ""
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressEntry:
        """Create from a storage row or API payload."""
        return cls(
            id=data["id"],
            goal_id=data["goal_id"],
            date=parse_date(data["date"]),
            value=float(data["value"]),
            note=data.get("note") or "",
            created_at=parse_timestamp(data["created_at"]),
            updated_at=parse_timestamp(data["updated_at"]),
            deleted=bool(data.get("deleted", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible payload."""
        return {
            "id": self.id,
            "goal_id": self.goal_id,
            "date": self.date.isoformat(),
            "value": self.value,
            "note": self.note,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "deleted": self.deleted,
        }


_E = TypeVar("_E", Goal, ProgressEntry)


def soft_deleted(entity: _E, timestamp: datetime) -> _E:
    """Return a copy of an entity marked deleted at the given time."""
    return replace(entity, deleted=True, updated_at=timestamp)


@dataclass
class ChangeRecord:
    """A pending local mutation awaiting push.

    Attributes:
        id: Local auto-increment id (queue order).
        entity_kind: Kind of the mutated entity.
        entity_id: Id of the mutated entity (not enforced).
        operation: create, update or delete.
        status: Push status.
        created_at: When the mutation was queued.
        last_attempt_at: When the last push attempt finished.
        error: Message of the last failed push attempt.
    """

    id: int
    entity_kind: EntityKind
    entity_id: str
    operation: Operation
    status: ChangeStatus = ChangeStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    last_attempt_at: datetime | None = None
    error: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeRecord:
        """Create from a storage row."""
        return cls(
            id=int(data["id"]),
            entity_kind=EntityKind(data["entity_kind"]),
            entity_id=data["entity_id"],
            operation=Operation(data["operation"]),
            status=ChangeStatus(data["status"]),
            created_at=parse_timestamp(data["created_at"]),
            last_attempt_at=(
                parse_timestamp(data["last_attempt_at"])
                if data.get("last_attempt_at")
                else None
            ),
            error=data.get("error"),
        )
