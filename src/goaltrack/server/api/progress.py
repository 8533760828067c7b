"""Progress entry API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from goaltrack.core.models import parse_timestamp
from goaltrack.server.api.deps import get_current_token, get_db, require_owner
from goaltrack.server.database import Database
from goaltrack.server.models import Token
from goaltrack.server.schemas import (
    ProgressPayload,
    SoftDeleteRequest,
    progress_from_payload,
    progress_to_response,
)

router = APIRouter(prefix="/api", tags=["progress"])


def _require_goal_owner(db: Database, goal_id: str, auth: Token) -> None:
    owner = db.goal_owner(goal_id)
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Goal not found: {goal_id}",
        )
    require_owner(owner, auth)


@router.get("/progress", response_model=list[ProgressPayload])
def list_progress(
    owner: str = Query(..., description="Owner id."),
    since: str = Query(
        "1970-01-01T00:00:00Z",
        description="ISO 8601 timestamp. Only entries updated after this time.",
    ),
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> list[ProgressPayload]:
    """List entries of the owner's goals updated after a timestamp."""
    require_owner(owner, auth)
    try:
        since_dt = parse_timestamp(since)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid timestamp: {since}",
        ) from e
    return [progress_to_response(p) for p in db.progress_since(owner, since_dt)]


@router.put("/progress/{entry_id}", response_model=ProgressPayload)
def upsert_progress(
    entry_id: str,
    request: ProgressPayload,
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> ProgressPayload:
    """Create or replace a progress entry of an existing goal."""
    if request.id != entry_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Entry id does not match the URL",
        )
    _require_goal_owner(db, request.goal_id, auth)
    existing = db.get_progress(entry_id)
    if existing is not None and existing.goal_id != request.goal_id:
        _require_goal_owner(db, existing.goal_id, auth)
    return progress_to_response(db.upsert_progress(progress_from_payload(request)))


@router.post("/progress/{entry_id}/delete", response_model=ProgressPayload)
def soft_delete_progress(
    entry_id: str,
    request: SoftDeleteRequest,
    db: Database = Depends(get_db),
    auth: Token = Depends(get_current_token),
) -> ProgressPayload:
    """Soft-delete a progress entry: set its deleted flag and bump its timestamp."""
    not_found = HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Progress entry not found: {entry_id}",
    )
    existing = db.get_progress(entry_id)
    if existing is None:
        raise not_found
    _require_goal_owner(db, existing.goal_id, auth)
    entry = db.soft_delete_progress(entry_id, request.updated_at)
    if entry is None:
        raise not_found
    return progress_to_response(entry)
