"""Live totals combining a window snapshot with the wall clock."""

from __future__ import annotations

import time

from .models import AggregationWindow, ProjectId, RunningTimer


def current_timestamp() -> int:
    return int(time.time())


def running_elapsed(timer: RunningTimer, now: int) -> int:
    """Seconds the timer has been running at ``now``, clamped at zero."""
    if not timer.is_running or timer.start_epoch_seconds is None:
        return 0
    return max(0, now - timer.start_epoch_seconds)


def project_total(
    window: AggregationWindow,
    timer: RunningTimer,
    project_id: ProjectId,
    now: int,
) -> int:
    """Closed total for ``project_id`` plus the live interval if it is running."""
    total = _closed_total(window, project_id)
    if timer.is_running and _same_project(timer.project_id, project_id):
        total += running_elapsed(timer, now)
    return total


def window_total(window: AggregationWindow, timer: RunningTimer, now: int) -> int:
    return sum(window.closed_totals.values()) + running_elapsed(timer, now)


def _closed_total(window: AggregationWindow, project_id: ProjectId) -> int:
    if project_id in window.closed_totals:
        return window.closed_totals[project_id]
    for key, seconds in window.closed_totals.items():
        if _same_project(key, project_id):
            return seconds
    return 0


def _same_project(left: object, right: object) -> bool:
    # Host option values arrive as strings while the API uses integers.
    return left == right or str(left) == str(right)
