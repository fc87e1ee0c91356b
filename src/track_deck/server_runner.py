"""Helpers to launch the control-surface server."""

from __future__ import annotations

import logging
from typing import Optional

import uvicorn

from .config import DeckSettings
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8766,
    settings: Optional[DeckSettings] = None,
    log_level: str = "info",
) -> None:
    """Start the FastAPI app that the control surface talks to."""
    app = create_app(settings=settings or DeckSettings())

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
