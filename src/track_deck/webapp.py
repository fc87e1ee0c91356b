"""FastAPI application that a control surface polls for feedback and actions."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .config import DeckSettings
from .controller import DeckController
from .gateway import TogglGateway

logger = logging.getLogger(__name__)


class RefreshRunner:
    """Periodically refresh both windows on the server's event loop."""

    def __init__(self, controller: DeckController, interval_seconds: float) -> None:
        self._controller = controller
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        if self._interval <= 0:
            logger.info("Background refresh disabled.")
            return
        if self._task and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Background refresh started; every %.0f seconds.", self._interval)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Background refresh stopped.")

    def is_running(self) -> bool:
        return bool(self._task and not self._task.done())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._controller.refresh_all()
            except Exception:
                logger.exception("Background refresh failed; retrying next interval.")


class OptionsPayload(BaseModel):
    options: Dict[str, Any] = {}

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    settings: Optional[DeckSettings] = None,
    controller: Optional[DeckController] = None,
    connect_on_startup: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_settings = settings or (controller.settings if controller else DeckSettings())
    if controller is None:
        controller = DeckController(TogglGateway(resolved_settings), resolved_settings)
    runner = RefreshRunner(controller, resolved_settings.refresh_interval.total_seconds())

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if connect_on_startup:
            await controller.connect()
        runner.start()
        try:
            yield
        finally:
            await runner.stop()
            await controller.gateway.aclose()

    app = FastAPI(title="Track Deck", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.controller = controller
    app.state.refresh_runner = runner

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        timer = deck.engine.timer
        return {
            "status": deck.status.value,
            "last_error": deck.last_error,
            "state": deck.engine.state.value,
            "timer": {
                "is_running": timer.is_running,
                "project_id": timer.project_id,
                "start_epoch_seconds": timer.start_epoch_seconds,
            },
            "refresh_running": request.app.state.refresh_runner.is_running(),
            "workspace_id": deck.settings.workspace_id,
        }

    @app.get("/api/projects")
    def projects(request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        return {
            "workspaces": [asdict(workspace) for workspace in deck.workspaces],
            "projects": [asdict(project) for project in deck.projects],
        }

    @app.get("/api/actions")
    def actions(request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        return {"actions": [asdict(action) for action in deck.surface.list_actions()]}

    @app.post("/api/actions/{name}")
    async def run_action(name: str, payload: OptionsPayload, request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        try:
            result = await deck.run_action(name, payload.options)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown action {name}") from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return {
            "action": name,
            "result": _jsonable(result),
            "status": deck.status.value,
            "render": deck.tick(),
        }

    @app.get("/api/feedbacks")
    def feedbacks(request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        return {"feedbacks": [asdict(feedback) for feedback in deck.surface.list_feedbacks()]}

    @app.post("/api/feedbacks/{name}")
    def evaluate_feedback(name: str, payload: OptionsPayload, request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        try:
            return deck.surface.evaluate_feedback(name, payload.options, deck.clock())
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown feedback {name}") from exc

    @app.get("/api/variables")
    def variables(request: Request) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        return {
            "definitions": [asdict(variable) for variable in deck.surface.list_variables()],
            "values": deck.surface.variable_values(deck.clock()),
        }

    @app.get("/api/presets")
    def presets(
        request: Request,
        project_id: Optional[str] = Query(
            default=None,
            description="Project the timer and total presets should target.",
        ),
    ) -> Dict[str, Any]:
        deck: DeckController = request.app.state.controller
        return {"presets": deck.surface.presets(project_id)}

    @app.get("/api/render")
    def render(request: Request) -> Dict[str, Any]:
        return request.app.state.controller.tick()

    return app


def _jsonable(result: Any) -> Any:
    if result is None or isinstance(result, (bool, int, str, dict)):
        return result
    return asdict(result)
