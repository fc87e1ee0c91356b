"""Coordinates gateway calls with engine transitions."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from .config import DeckSettings
from .engine import AggregationEngine
from .errors import GatewayUnavailable
from .gateway import TogglGateway
from .models import ProjectChoice, ProjectId, RefreshResult, WindowKind, WorkspaceChoice
from .projection import current_timestamp
from .surface import DeckSurface

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


class DeckController:
    """Runs surface actions against the gateway and feeds results to the engine.

    Gateway failures are logged and recorded in :attr:`status`; they never
    propagate, so the surface keeps rendering the last good state.
    """

    def __init__(
        self,
        gateway: TogglGateway,
        settings: DeckSettings,
        *,
        engine: Optional[AggregationEngine] = None,
        clock: Callable[[], int] = current_timestamp,
    ) -> None:
        self.gateway = gateway
        self.settings = settings
        self.clock = clock
        self.engine = engine or AggregationEngine(week_start=settings.week_start, now=clock())
        self.surface = DeckSurface(self.engine)
        self.workspaces: list[WorkspaceChoice] = []
        self.status = ConnectionStatus.WARNING
        self.last_error: Optional[str] = None

    @property
    def projects(self) -> list[ProjectChoice]:
        return self.surface.projects

    async def connect(self) -> None:
        """Load reference data and both windows."""
        await self.load_workspaces()
        if self.settings.workspace_id is not None:
            await self.load_projects()
        await self.refresh_all()

    async def load_workspaces(self) -> bool:
        logger.info("Loading workspaces")
        try:
            self.workspaces = await self.gateway.list_workspaces()
        except GatewayUnavailable as exc:
            self._record_failure("loading workspaces", exc)
            return False
        self._record_success()
        logger.info("Loaded %d workspaces", len(self.workspaces))
        return True

    async def load_projects(self) -> bool:
        workspace_id = self._require_workspace("load projects")
        if workspace_id is None:
            return False
        logger.info("Loading projects for workspace %s", workspace_id)
        try:
            projects = await self.gateway.list_projects(workspace_id)
        except GatewayUnavailable as exc:
            self._record_failure("loading projects", exc)
            return False
        self.surface.set_projects(projects)
        self._record_success()
        logger.info("Loaded %d projects", len(projects))
        return True

    async def refresh(self, kind: WindowKind) -> Optional[RefreshResult]:
        kind = WindowKind(kind)
        now = self.clock()
        since = self.engine.window_start(kind, now)
        sequence = self.engine.issue_refresh(kind)
        logger.info("Getting %s time entries since %d", kind.value, since)
        try:
            records = await self.gateway.list_entries_since(since)
        except GatewayUnavailable as exc:
            self._record_failure(f"refreshing {kind.value} totals", exc)
            return None
        self._record_success()
        return self.engine.refresh(kind, records, now=self.clock(), sequence=sequence)

    async def refresh_all(self) -> list[Optional[RefreshResult]]:
        return [await self.refresh(kind) for kind in WindowKind]

    async def start_timer(self, project_id: Optional[ProjectId]) -> bool:
        if project_id in (None, ""):
            logger.error("Project has not been set for timer, will not start")
            return False
        workspace_id = self._require_workspace("start a timer")
        if workspace_id is None:
            return False
        sequence = self.engine.issue()
        try:
            created = await self.gateway.start_timer(workspace_id, project_id)
        except GatewayUnavailable as exc:
            self._record_failure("starting timer", exc)
            return False
        self._record_success()
        logger.info("Started timer successfully: %s", created)
        confirmed_project = project_id
        if isinstance(created, Mapping) and created.get("project_id") is not None:
            confirmed_project = created["project_id"]
        return self.engine.on_start_confirmed(confirmed_project, self.clock(), sequence=sequence)

    async def stop_timer(self) -> bool:
        issued_for = self.engine.timer.project_id
        sequence = self.engine.issue()
        try:
            current = await self.gateway.get_current_timer()
            if current is None:
                self._record_success()
                logger.info("No timer is currently running")
                return False
            workspace_id = current.get("workspace_id") or self._require_workspace("stop a timer")
            if workspace_id is None:
                return False
            stopped = await self.gateway.stop_timer(workspace_id, current["id"])
        except GatewayUnavailable as exc:
            self._record_failure("stopping timer", exc)
            return False
        self._record_success()
        logger.info("Stopped current timer successfully: %s", stopped)
        return self.engine.on_stop_confirmed(project_id=issued_for, sequence=sequence)

    def tick(self) -> dict[str, Any]:
        """Re-render from cached state; no gateway traffic."""
        return self.surface.render(self.clock())

    async def run_action(self, name: str, options: Optional[Mapping[str, Any]] = None) -> Any:
        options = options or {}
        if name == "start_timer":
            return await self.start_timer(options.get("project_id"))
        if name == "stop_timer":
            return await self.stop_timer()
        if name == "refresh_daily_totals":
            return await self.refresh(WindowKind.DAILY)
        if name == "refresh_weekly_totals":
            return await self.refresh(WindowKind.WEEKLY)
        if name == "tick_current_timer":
            return self.tick()
        raise KeyError(name)

    def _require_workspace(self, purpose: str) -> Optional[int]:
        workspace_id = self.settings.workspace_id
        if workspace_id is None:
            message = f"No workspace configured; cannot {purpose}"
            logger.error(message)
            self.status = ConnectionStatus.ERROR
            self.last_error = message
        return workspace_id

    def _record_failure(self, action: str, exc: GatewayUnavailable) -> None:
        logger.error("Error %s from Toggl: %s", action, exc)
        self.status = ConnectionStatus.ERROR
        self.last_error = str(exc)

    def _record_success(self) -> None:
        self.status = ConnectionStatus.OK
        self.last_error = None
