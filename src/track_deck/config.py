"""Configuration models and helpers for the deck."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

DEFAULT_BASE_URL = "https://api.track.toggl.com/api/v9"


@dataclass(slots=True)
class DeckSettings:
    """Runtime configuration for the gateway, engine and hosts."""

    api_token: str = ""
    workspace_id: Optional[int] = None
    base_url: str = DEFAULT_BASE_URL
    request_timeout: timedelta = timedelta(seconds=10)
    refresh_interval: timedelta = timedelta(minutes=5)
    tick_interval: timedelta = timedelta(seconds=1)
    week_start: int = 0
    created_with: str = "track-deck"

    def __post_init__(self) -> None:
        if not 0 <= self.week_start <= 6:
            raise ValueError("week_start must be a weekday index between 0 and 6")

    @classmethod
    def from_options(
        cls,
        api_token: str,
        workspace_id: Optional[int] = None,
        refresh_seconds: Optional[float] = None,
        tick_seconds: float = 1.0,
        week_start: int = 0,
        timeout_seconds: float = 10.0,
    ) -> "DeckSettings":
        refresh = refresh_seconds if refresh_seconds is not None else 300.0
        return cls(
            api_token=api_token,
            workspace_id=workspace_id,
            request_timeout=timedelta(seconds=timeout_seconds),
            refresh_interval=timedelta(seconds=max(refresh, 0.0)),
            tick_interval=timedelta(seconds=tick_seconds),
            week_start=week_start,
        )
