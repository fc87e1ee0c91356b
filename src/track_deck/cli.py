"""Command-line interface for the deck."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer

from .config import DeckSettings
from .controller import DeckController
from .gateway import TogglGateway
from .models import WindowKind
from .paths import get_log_path
from .reporting import SummaryPrinter

app = typer.Typer(help="Toggl Track totals and timer controls for button decks.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    log_file: bool = typer.Option(
        False, "--log-file", help="Also write logs to the per-user log file."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    if log_file:
        handler = logging.FileHandler(get_log_path(), encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def _settings(
    api_token: str,
    workspace_id: Optional[int],
    week_start: int = 0,
    refresh_seconds: Optional[float] = None,
    tick_seconds: float = 1.0,
) -> DeckSettings:
    if not api_token:
        raise typer.BadParameter("An API token is required (--token or TOGGL_API_TOKEN).")
    return DeckSettings.from_options(
        api_token=api_token,
        workspace_id=workspace_id,
        refresh_seconds=refresh_seconds,
        tick_seconds=tick_seconds,
        week_start=week_start,
    )


TOKEN_OPTION = typer.Option("", "--token", envvar="TOGGL_API_TOKEN", help="Toggl API token.")
WORKSPACE_OPTION = typer.Option(
    None, "--workspace", envvar="TOGGL_WORKSPACE_ID", help="Toggl workspace id."
)
WEEK_START_OPTION = typer.Option(
    0, "--week-start", min=0, max=6, help="First day of the week (0 = Monday)."
)


@app.command()
def status(
    api_token: str = TOKEN_OPTION,
    workspace_id: Optional[int] = WORKSPACE_OPTION,
    week_start: int = WEEK_START_OPTION,
) -> None:
    """Print today's and this week's totals per project."""
    settings = _settings(api_token, workspace_id, week_start)
    asyncio.run(_print_status(settings))


async def _print_status(settings: DeckSettings) -> None:
    async with TogglGateway(settings) as gateway:
        controller = DeckController(gateway, settings)
        await controller.connect()
        if controller.last_error:
            typer.echo(f"Warning: {controller.last_error}", err=True)
        SummaryPrinter(controller.projects).print_summary(
            controller.engine.windows, controller.engine.timer, controller.clock()
        )


@app.command()
def start(
    project_id: int = typer.Argument(..., help="Project to start a timer for."),
    api_token: str = TOKEN_OPTION,
    workspace_id: Optional[int] = WORKSPACE_OPTION,
) -> None:
    """Start a timer for a project."""
    settings = _settings(api_token, workspace_id)
    asyncio.run(_run_timer_action(settings, "start_timer", {"project_id": project_id}))


@app.command()
def stop(
    api_token: str = TOKEN_OPTION,
    workspace_id: Optional[int] = WORKSPACE_OPTION,
) -> None:
    """Stop the running timer."""
    settings = _settings(api_token, workspace_id)
    asyncio.run(_run_timer_action(settings, "stop_timer", {}))


async def _run_timer_action(settings: DeckSettings, action: str, options: dict) -> None:
    async with TogglGateway(settings) as gateway:
        controller = DeckController(gateway, settings)
        await controller.refresh(WindowKind.DAILY)
        await controller.run_action(action, options)
        if controller.last_error:
            typer.echo(f"Error: {controller.last_error}", err=True)
            raise typer.Exit(code=1)
        timer = controller.engine.timer
        if timer.is_running:
            typer.echo(f"Timer running for project {timer.project_id}.")
        else:
            typer.echo("No timer running.")


@app.command()
def watch(
    api_token: str = TOKEN_OPTION,
    workspace_id: Optional[int] = WORKSPACE_OPTION,
    week_start: int = WEEK_START_OPTION,
    tick_seconds: float = typer.Option(1.0, "--tick", min=0.2, help="Seconds between redraws."),
    refresh_seconds: float = typer.Option(
        300.0, "--refresh", min=0.0, help="Seconds between refreshes (0 disables)."
    ),
) -> None:
    """Continuously print the live totals until interrupted."""
    settings = _settings(api_token, workspace_id, week_start, refresh_seconds, tick_seconds)
    try:
        asyncio.run(_watch(settings))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Watch interrupted.")


async def _watch(settings: DeckSettings) -> None:
    tick = settings.tick_interval.total_seconds()
    refresh_every = settings.refresh_interval.total_seconds()
    async with TogglGateway(settings) as gateway:
        controller = DeckController(gateway, settings)
        await controller.connect()
        last_refresh = controller.clock()
        while True:
            now = controller.clock()
            if refresh_every > 0 and now - last_refresh >= refresh_every:
                await controller.refresh_all()
                last_refresh = now
            values = controller.tick()["variables"]
            label = values["timer_project_name"] or "idle"
            typer.echo(
                f"\r{label[:24]:<24} running {values['timer_elapsed']}  "
                f"today {values['daily_total']}  week {values['weekly_total']}  ",
                nl=False,
            )
            await asyncio.sleep(tick)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the server."),
    port: int = typer.Option(8766, "--port", min=1, max=65535, help="TCP port for the server."),
    api_token: str = TOKEN_OPTION,
    workspace_id: Optional[int] = WORKSPACE_OPTION,
    week_start: int = WEEK_START_OPTION,
    refresh_seconds: float = typer.Option(
        300.0, "--refresh", min=0.0, help="Seconds between background refreshes (0 disables)."
    ),
) -> None:
    """Serve actions, feedbacks and variables to a control surface."""
    from .server_runner import run_server

    settings = _settings(api_token, workspace_id, week_start, refresh_seconds)
    run_server(host=host, port=port, settings=settings)

