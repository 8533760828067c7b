"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from goaltrack.server.api import goals, health, progress

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(goals.router)
router.include_router(progress.router)
