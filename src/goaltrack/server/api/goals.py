"""Goal API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from goaltrack.core.models import parse_timestamp
from goaltrack.server.api.deps import get_current_token, get_db, require_owner
from goaltrack.server.database import Database, OwnershipError
from goaltrack.server.models import Token
from goaltrack.server.schemas import (
    GoalPayload,
    SoftDeleteRequest,
    goal_from_payload,
    goal_to_response,
)

router = APIRouter(prefix="/api", tags=["goals"])


@router.get("/goals", response_model=list[GoalPayload])
def list_goals(
    owner: str = Query(..., description="Owner id."),
    since: str = Query(
        "1970-01-01T00:00:00Z",
        description="ISO 8601 timestamp. Only goals updated after this time.",
    ),
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> list[GoalPayload]:
    """List goals of an owner updated after a timestamp, deleted ones included."""
    require_owner(owner, auth)
    try:
        since_dt = parse_timestamp(since)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid timestamp: {since}",
        ) from e
    return [goal_to_response(g) for g in db.goals_since(owner, since_dt)]


@router.put("/goals/{goal_id}", response_model=GoalPayload)
def upsert_goal(
    goal_id: str,
    request: GoalPayload,
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> GoalPayload:
    """Create or replace a goal."""
    if request.id != goal_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Goal id does not match the URL",
        )
    require_owner(request.user_id, auth)
    try:
        goal = db.upsert_goal(goal_from_payload(request))
    except OwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    return goal_to_response(goal)


@router.post("/goals/{goal_id}/delete", response_model=GoalPayload)
def soft_delete_goal(
    goal_id: str,
    request: SoftDeleteRequest,
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> GoalPayload:
    """Soft-delete a goal: set its deleted flag and bump its timestamp."""
    not_found = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Goal not found: {goal_id}",
    )
    existing = db.get_goal(goal_id)
    if existing is None:
        raise not_found
    require_owner(existing.user_id, auth)
    goal = db.soft_delete_goal(goal_id, request.updated_at)
    if goal is None:
        raise not_found
    return goal_to_response(goal)
