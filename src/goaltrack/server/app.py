"""FastAPI application for the goaltrack server.

This module creates and configures the FastAPI application with the REST
API for goals and progress entries.

Usage:
    uvicorn goaltrack.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from goaltrack.server.api.router import router as api_router
from goaltrack.server.database import Database

logger = logging.getLogger(__name__)


def get_db_path() -> Path:
    """Database path from GOALTRACK_DB_PATH (default ./goaltrack-server.db)."""
    return Path(os.environ.get("GOALTRACK_DB_PATH", "goaltrack-server.db"))


def get_log_path() -> Path | None:
    """Log file path from GOALTRACK_LOG_PATH, or None to log to stdout only."""
    value = os.environ.get("GOALTRACK_LOG_PATH")
    return Path(value) if value else None


def setup_logging(log_path: Path | None = None) -> None:
    """Configure logging to output to stdout and optionally a file.

    Args:
        log_path: Path to the log file.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    # Root logger for goaltrack
    root_logger = logging.getLogger("goaltrack")
    root_logger.setLevel(logging.INFO)

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is None:
        return

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(db: Database) -> FastAPI:
    """Create FastAPI application with a given database.

    Tests pass an isolated database; app_factory passes the configured one.

    Args:
        db: Database instance.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("goaltrack server starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        logger.info("=" * 60)

        yield

        logger.info("goaltrack server shutting down")
        db.close()

    application = FastAPI(
        title="goaltrack server",
        description="Remote store for offline-first goal tracking",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.state.db = db
    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(get_log_path())
    return create_app(db=Database(get_db_path()))
