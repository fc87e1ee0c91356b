"""
Pytest configuration and fixtures.
"""

from datetime import datetime
from typing import Any, Optional

import pytest

from track_deck.config import DeckSettings
from track_deck.controller import DeckController
from track_deck.engine import AggregationEngine
from track_deck.errors import GatewayUnavailable
from track_deck.models import ProjectChoice, WorkspaceChoice

# Wednesday noon, local time, so entries an hour earlier fall inside both windows.
NOW = int(datetime(2024, 1, 10, 12, 0).timestamp())


class FakeGateway:
    """In-memory stand-in for TogglGateway."""

    def __init__(self) -> None:
        self.entries: list[Any] = []
        self.current: Optional[dict[str, Any]] = None
        self.projects = [ProjectChoice(id=1, label="Alpha"), ProjectChoice(id=2, label="Beta")]
        self.workspaces = [WorkspaceChoice(id=99, label="Main")]
        self.fail_with: Optional[GatewayUnavailable] = None
        self.calls: list[tuple] = []
        self.closed = False

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def list_workspaces(self):
        self.calls.append(("list_workspaces",))
        self._check()
        return list(self.workspaces)

    async def list_projects(self, workspace_id):
        self.calls.append(("list_projects", workspace_id))
        self._check()
        return list(self.projects)

    async def list_entries_since(self, timestamp):
        self.calls.append(("list_entries_since", timestamp))
        self._check()
        return list(self.entries)

    async def get_current_timer(self):
        self.calls.append(("get_current_timer",))
        self._check()
        return self.current

    async def start_timer(self, workspace_id, project_id, description=""):
        self.calls.append(("start_timer", workspace_id, project_id))
        self._check()
        self.current = {"id": 555, "project_id": project_id, "workspace_id": workspace_id, "duration": -1}
        return dict(self.current)

    async def stop_timer(self, workspace_id, entry_id):
        self.calls.append(("stop_timer", workspace_id, entry_id))
        self._check()
        stopped = dict(self.current or {}, duration=60)
        self.current = None
        return stopped

    async def aclose(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


@pytest.fixture
def now() -> int:
    return NOW


@pytest.fixture
def engine() -> AggregationEngine:
    return AggregationEngine(now=NOW)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def settings() -> DeckSettings:
    return DeckSettings(api_token="secret", workspace_id=99)


@pytest.fixture
def controller(gateway, settings) -> DeckController:
    return DeckController(gateway, settings, clock=lambda: NOW)
