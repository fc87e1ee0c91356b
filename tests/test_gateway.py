"""
Tests for the Toggl gateway using httpx's mock transport.
"""

import base64
import json

import httpx
import pytest

from track_deck.config import DeckSettings
from track_deck.errors import GatewayUnavailable
from track_deck.gateway import TogglGateway, basic_auth_headers


def _gateway(handler):
    settings = DeckSettings(api_token="secret", workspace_id=99)
    return TogglGateway(settings, transport=httpx.MockTransport(handler))


def test_basic_auth_headers():
    headers = basic_auth_headers("secret")
    encoded = headers["Authorization"].split(" ", 1)[1]
    assert base64.b64decode(encoded).decode() == "secret:api_token"
    assert headers["Content-Type"] == "application/json"


@pytest.mark.asyncio
async def test_list_entries_since_sends_timestamp_and_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json=[{"id": 1, "project_id": 2, "duration": 30, "start": "2024-01-10T09:00:00Z"}])

    async with _gateway(handler) as gateway:
        entries = await gateway.list_entries_since(1704844800)

    assert seen["url"].path == "/api/v9/me/time_entries"
    assert seen["url"].params["since"] == "1704844800"
    assert seen["auth"].startswith("Basic ")
    assert entries[0]["project_id"] == 2


@pytest.mark.asyncio
async def test_list_projects_and_workspaces():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/me/workspaces"):
            return httpx.Response(200, json=[{"id": 99, "name": "Main"}])
        assert request.url.path == "/api/v9/workspaces/99/projects"
        return httpx.Response(200, json=[{"id": 1, "name": "Alpha"}, {"id": 2, "name": "Beta"}])

    async with _gateway(handler) as gateway:
        workspaces = await gateway.list_workspaces()
        projects = await gateway.list_projects(99)

    assert [workspace.label for workspace in workspaces] == ["Main"]
    assert [(project.id, project.label) for project in projects] == [(1, "Alpha"), (2, "Beta")]


@pytest.mark.asyncio
async def test_start_timer_posts_running_entry():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": 5, "project_id": 12, "duration": -1})

    async with _gateway(handler) as gateway:
        created = await gateway.start_timer(99, "12")

    assert captured["method"] == "POST"
    assert captured["path"] == "/api/v9/workspaces/99/time_entries"
    assert captured["body"]["project_id"] == 12
    assert captured["body"]["workspace_id"] == 99
    assert captured["body"]["duration"] == -1
    assert captured["body"]["created_with"] == "track-deck"
    assert created["id"] == 5


@pytest.mark.asyncio
async def test_stop_timer_and_current_timer():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/current"):
            return httpx.Response(200, json=None)
        assert request.method == "PATCH"
        assert request.url.path == "/api/v9/workspaces/99/time_entries/5/stop"
        return httpx.Response(200, json={"id": 5, "duration": 120})

    async with _gateway(handler) as gateway:
        assert await gateway.get_current_timer() is None
        stopped = await gateway.stop_timer(99, 5)

    assert stopped["duration"] == 120


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403, 404, 429, 500, 503])
async def test_non_2xx_raises_gateway_unavailable(status_code):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json={"error": "nope"})

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayUnavailable) as excinfo:
            await gateway.list_entries_since(0)

    assert excinfo.value.status_code == status_code


@pytest.mark.asyncio
async def test_transport_error_raises_gateway_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayUnavailable) as excinfo:
            await gateway.list_workspaces()

    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_unexpected_entries_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": []})

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayUnavailable):
            await gateway.list_entries_since(0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "path, payload",
    [
        ("/me/workspaces", [{"name": "No id"}]),
        ("/me/workspaces", [{"id": "abc", "name": "Bad id"}]),
        ("/me/workspaces", {"id": 99}),
        ("/projects", [{"id": 1, "name": "Alpha"}, {"name": "No id"}]),
        ("/projects", [None]),
    ],
)
async def test_reference_data_without_ids_raises_gateway_unavailable(path, payload):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(path):
            return httpx.Response(200, json=payload)
        return httpx.Response(200, json=[])

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayUnavailable):
            await gateway.list_workspaces()
            await gateway.list_projects(99)


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"duration": -1}, {"id": "5"}, [1, 2]])
async def test_current_timer_without_id_raises_gateway_unavailable(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async with _gateway(handler) as gateway:
        with pytest.raises(GatewayUnavailable):
            await gateway.get_current_timer()
