"""Domain models for time entries, aggregation windows and the running timer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

ProjectId = Union[int, str]


class WindowKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass(frozen=True, slots=True)
class TimeEntry:
    """A single remote work interval; negative durations mark the open entry."""

    project_id: ProjectId
    duration_seconds: int
    start_epoch_seconds: Optional[int]
    id: Optional[int] = None
    description: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.duration_seconds < 0

    @property
    def is_closed(self) -> bool:
        return self.duration_seconds > 0


@dataclass(frozen=True, slots=True)
class RunningTimer:
    """Whether a timer runs, for which project and since when."""

    is_running: bool = False
    project_id: Optional[ProjectId] = None
    start_epoch_seconds: Optional[int] = None

    def __post_init__(self) -> None:
        if self.is_running:
            if self.project_id is None or self.start_epoch_seconds is None:
                raise ValueError("a running timer needs a project and a start time")
        elif self.project_id is not None or self.start_epoch_seconds is not None:
            raise ValueError("an idle timer cannot carry a project or start time")

    @classmethod
    def idle(cls) -> "RunningTimer":
        return cls()

    @classmethod
    def running(cls, project_id: ProjectId, start_epoch_seconds: int) -> "RunningTimer":
        return cls(
            is_running=True,
            project_id=project_id,
            start_epoch_seconds=int(start_epoch_seconds),
        )


@dataclass(frozen=True, slots=True)
class AggregationWindow:
    """Closed-entry totals per project for one reporting period."""

    kind: WindowKind
    window_start: int
    closed_totals: dict[ProjectId, int] = field(default_factory=dict)
    refreshed_at: Optional[int] = None


@dataclass(frozen=True, slots=True)
class ProjectChoice:
    id: ProjectId
    label: str


@dataclass(frozen=True, slots=True)
class WorkspaceChoice:
    id: int
    label: str


@dataclass(frozen=True, slots=True)
class RefreshResult:
    """Outcome of applying one batch of entries to a window."""

    kind: WindowKind
    aggregated: int = 0
    skipped: int = 0
    open_entries: int = 0
    stale: bool = False
