"""Shared types for sync operations.

This module provides:
- SyncError and subclasses: the failures a sync call can report
- PushResult, PullResult: per-phase counters
- SyncResult: overall result of one sync call
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class SyncError(Exception):
    """Base exception for sync errors."""


class AlreadyInProgressError(SyncError):
    """Another sync call is running on this engine."""

    def __init__(self) -> None:
        super().__init__("Sync already in progress")


class PullError(SyncError):
    """Fetching remote changes failed; the checkpoint was not advanced."""


class LocalStoreSyncError(SyncError):
    """The local store failed during a sync call."""


@dataclass
class PushResult:
    """Outcome of the push phase."""

    pushed: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass
class PullResult:
    """Outcome of the pull phase."""

    created: int = 0
    updated: int = 0
    discarded: int = 0


@dataclass
class SyncResult:
    """Result of one sync call.

    Attributes:
        error: Failure of the call, or None on success.
        push: Push phase counters (zero when the call failed early).
        pull: Pull phase counters.
        checkpoint: Checkpoint stored by this call (None on failure).
    """

    error: SyncError | None = None
    push: PushResult = field(default_factory=PushResult)
    pull: PullResult = field(default_factory=PullResult)
    checkpoint: datetime | None = None

    @property
    def success(self) -> bool:
        """True if the call completed and advanced the checkpoint."""
        return self.error is None

    @property
    def already_in_progress(self) -> bool:
        """True if the call was rejected because another one was running."""
        return isinstance(self.error, AlreadyInProgressError)

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing shape: ``{"success": bool, "error"?: str}``."""
        result: dict[str, Any] = {"success": self.success}
        if self.error is not None:
            result["error"] = str(self.error)
        return result
