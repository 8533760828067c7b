"""Core module - Shared models, progress metrics and configuration."""

from goaltrack.core.config import ServerConfig
from goaltrack.core.models import (
    EPOCH,
    ChangeRecord,
    Goal,
    ProgressEntry,
    SyncEntity,
    format_timestamp,
    new_id,
    parse_date,
    parse_timestamp,
    utc_now,
)
from goaltrack.core.progress import (
    DashboardStats,
    GoalProgress,
    completion_percentage,
    current_streak,
    dashboard_stats,
    days_remaining,
    enrich,
    is_active,
    total_progress,
)
from goaltrack.core.types import ChangeStatus, EntityKind, Operation, SyncState

__all__ = [
    # Config
    "ServerConfig",
    # Models
    "EPOCH",
    "ChangeRecord",
    "Goal",
    "ProgressEntry",
    "SyncEntity",
    "format_timestamp",
    "new_id",
    "parse_date",
    "parse_timestamp",
    "utc_now",
    # Progress
    "DashboardStats",
    "GoalProgress",
    "completion_percentage",
    "current_streak",
    "dashboard_stats",
    "days_remaining",
    "enrich",
    "is_active",
    "total_progress",
    # Types
    "ChangeStatus",
    "EntityKind",
    "Operation",
    "SyncState",
]
