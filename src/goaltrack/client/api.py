"""HTTP client for the goaltrack server API.

This module provides:
- HTTPClient: remote store client (upsert, soft delete, incremental reads)
- APIError and subclasses: every remote-side failure, transport errors included
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from goaltrack.core.config import ServerConfig
from goaltrack.core.models import Goal, ProgressEntry, format_timestamp
from goaltrack.core.types import EntityKind

logger = logging.getLogger(__name__)

# URL segment per entity kind
_RESOURCES = {
    EntityKind.GOAL: "goals",
    EntityKind.PROGRESS_ENTRY: "progress",
}


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Authentication failed."""


class PermissionDeniedError(APIError):
    """Token does not grant access to the requested owner."""


class NotFoundError(APIError):
    """Resource not found."""


class NetworkError(APIError):
    """Server unreachable or the request timed out."""


def _detail(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    # Proxies may answer with a bare string or list
    if not isinstance(body, dict):
        return default
    return str(body.get("detail", default))


class HTTPClient:
    """HTTP client for the goaltrack server API."""

    def __init__(self, config: ServerConfig, client: httpx.Client | None = None) -> None:
        """Initialize the client.

        Args:
            config: Server URL, token and connection settings.
            client: Preconfigured httpx client (e.g. an in-process test
                client). Its base URL and auth headers are used as given.
        """
        self._config = config
        self._client = client or httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers={"Authorization": f"Bearer {config.token}"},
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, mapping failures to APIError subclasses."""
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code == 403:
            raise PermissionDeniedError(_detail(response, "Forbidden"), 403)
        if response.status_code == 404:
            raise NotFoundError(_detail(response, "Resource not found"), 404)
        if response.status_code >= 400:
            raise APIError(_detail(response, "Unknown error"), response.status_code)
        return response

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is healthy."""
        try:
            response = self._client.get("/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Writes ===

    def upsert_goal(self, goal: Goal) -> None:
        """Create or fully replace a goal, keyed by id."""
        self._request("PUT", f"/api/goals/{goal.id}", json=goal.to_dict())

    def upsert_progress(self, entry: ProgressEntry) -> None:
        """Create or fully replace a progress entry, keyed by id."""
        self._request("PUT", f"/api/progress/{entry.id}", json=entry.to_dict())

    def soft_delete(self, kind: EntityKind, entity_id: str, updated_at: datetime) -> None:
        """Mark a remote row deleted and bump its timestamp.

        Raises:
            NotFoundError: If the row does not exist remotely.
        """
        self._request(
            "POST",
            f"/api/{_RESOURCES[kind]}/{entity_id}/delete",
            json={"updated_at": format_timestamp(updated_at)},
        )

    # === Incremental reads ===

    def _list_since(self, url: str, owner_id: str, since: datetime) -> list[dict[str, Any]]:
        """GET rows changed after ``since`` and check the body is a JSON list."""
        response = self._request(
            "GET",
            url,
            params={"owner": owner_id, "since": format_timestamp(since)},
        )
        try:
            rows = response.json()
        except ValueError as e:
            raise APIError(f"Malformed response from {url}: not JSON", response.status_code) from e
        if not isinstance(rows, list):
            raise APIError(f"Malformed response from {url}: expected a list", response.status_code)
        return rows

    def list_goals_since(self, owner_id: str, since: datetime) -> list[Goal]:
        """List goals of an owner updated strictly after ``since``.

        Raises:
            APIError: If the server fails or answers with rows that do not parse.
        """
        rows = self._list_since("/api/goals", owner_id, since)
        try:
            return [Goal.from_dict(g) for g in rows]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise APIError(f"Malformed goal in response: {e!r}") from e

    def list_progress_since(self, owner_id: str, since: datetime) -> list[ProgressEntry]:
        """List progress entries of an owner updated strictly after ``since``."""
        rows = self._list_since("/api/progress", owner_id, since)
        try:
            return [ProgressEntry.from_dict(p) for p in rows]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise APIError(f"Malformed progress entry in response: {e!r}") from e
