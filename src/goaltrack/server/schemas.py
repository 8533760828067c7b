"""Pydantic schemas for API request/response models."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel

from goaltrack.core.models import Goal, ProgressEntry

# === Entity schemas ===


class GoalPayload(BaseModel):
    """Goal in request bodies and responses."""

    id: str
    user_id: str
    title: str
    description: str = ""
    start_date: dt.date
    end_date: dt.date
    target_units: float | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
    deleted: bool = False


class ProgressPayload(BaseModel):
    """Progress entry in request bodies and responses."""

    id: str
    goal_id: str
    date: dt.date
    value: float
    note: str = ""
    created_at: dt.datetime
    updated_at: dt.datetime
    deleted: bool = False


class SoftDeleteRequest(BaseModel):
    """Request body for a soft delete."""

    updated_at: dt.datetime


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def goal_from_payload(payload: GoalPayload) -> Goal:
    """Convert a request body to the shared model."""
    return Goal.from_dict(payload.model_dump())


def goal_to_response(goal: Goal) -> GoalPayload:
    """Convert the shared model to a response model."""
    return GoalPayload.model_validate(goal.to_dict())


def progress_from_payload(payload: ProgressPayload) -> ProgressEntry:
    """Convert a request body to the shared model."""
    return ProgressEntry.from_dict(payload.model_dump())


def progress_to_response(entry: ProgressEntry) -> ProgressPayload:
    """Convert the shared model to a response model."""
    return ProgressPayload.model_validate(entry.to_dict())
