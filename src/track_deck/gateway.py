"""Async client for the Toggl Track API."""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, TypeVar

import httpx

from .config import DeckSettings
from .errors import GatewayUnavailable
from .models import ProjectChoice, ProjectId, WorkspaceChoice
from .normalization import normalize_project, normalize_workspace

logger = logging.getLogger(__name__)

Choice = TypeVar("Choice")


def basic_auth_headers(api_token: str) -> dict[str, str]:
    token = base64.b64encode(f"{api_token}:api_token".encode("utf-8")).decode("ascii")
    return {
        "Content-Type": "application/json",
        "Authorization": f"Basic {token}",
    }


class TogglGateway:
    """Thin wrapper over the remote endpoints the deck consumes.

    Every failure, whether a transport error or a non-2xx response, surfaces
    as :class:`GatewayUnavailable`. Nothing is retried here.
    """

    def __init__(
        self,
        settings: DeckSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/") + "/",
            headers=basic_auth_headers(settings.api_token),
            timeout=settings.request_timeout.total_seconds(),
            transport=transport,
        )

    async def __aenter__(self) -> "TogglGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_workspaces(self) -> list[WorkspaceChoice]:
        data = await self._request("GET", "me/workspaces")
        return _choices(data, normalize_workspace, "workspace")

    async def list_projects(self, workspace_id: int) -> list[ProjectChoice]:
        data = await self._request("GET", f"workspaces/{workspace_id}/projects")
        return _choices(data, normalize_project, "project")

    async def list_entries_since(self, timestamp: int) -> list[dict[str, Any]]:
        """Return raw entry records; validation happens in the engine."""
        data = await self._request(
            "GET", "me/time_entries", params={"since": int(timestamp)}
        )
        if not isinstance(data, list):
            raise GatewayUnavailable("Unexpected time entry payload from Toggl")
        return data

    async def get_current_timer(self) -> Optional[dict[str, Any]]:
        data = await self._request("GET", "me/time_entries/current")
        if not data:
            return None
        entry_id = data.get("id") if isinstance(data, Mapping) else None
        if isinstance(entry_id, bool) or not isinstance(entry_id, int):
            raise GatewayUnavailable("Unexpected current timer payload from Toggl")
        return dict(data)

    async def start_timer(
        self, workspace_id: int, project_id: ProjectId, description: str = ""
    ) -> dict[str, Any]:
        payload = {
            "created_with": self.settings.created_with,
            "description": description,
            "project_id": int(project_id),
            "workspace_id": int(workspace_id),
            "start": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration": -1,
        }
        logger.info("Starting timer for project %s", project_id)
        return await self._request(
            "POST", f"workspaces/{workspace_id}/time_entries", json=payload
        )

    async def stop_timer(self, workspace_id: int, entry_id: int) -> dict[str, Any]:
        logger.info("Stopping time entry %s", entry_id)
        return await self._request(
            "PATCH", f"workspaces/{workspace_id}/time_entries/{entry_id}/stop"
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = await self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                message = "Toggl rejected the API token"
            elif status == 429:
                message = "Toggl rate limit exceeded"
            elif 500 <= status < 600:
                message = "Toggl is unavailable"
            else:
                message = f"Toggl returned HTTP {status}"
            raise GatewayUnavailable(f"{message} ({method} {path})", status) from exc
        except httpx.RequestError as exc:
            raise GatewayUnavailable(f"Network error talking to Toggl: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayUnavailable(
                f"Toggl sent a non-JSON response ({method} {path})", response.status_code
            ) from exc


def _choices(data: Any, normalize: Callable[[Mapping[str, Any]], Choice], noun: str) -> list[Choice]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise GatewayUnavailable(f"Unexpected {noun} payload from Toggl")
    try:
        return [normalize(item) for item in data]
    except (KeyError, TypeError, ValueError) as exc:
        raise GatewayUnavailable(f"Toggl sent a {noun} record without a usable id: {exc!r}") from exc
