"""Duration formatting and console summaries."""

from __future__ import annotations

from typing import Iterable, Optional

from .errors import InvalidArgument
from .models import AggregationWindow, ProjectChoice, RunningTimer, WindowKind
from .projection import project_total, window_total


def format_duration(seconds: float) -> str:
    if seconds < 0:
        raise InvalidArgument(f"duration must not be negative, got {seconds}")
    total_seconds = int(seconds)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class SummaryPrinter:
    """Render per-project daily and weekly totals in the console."""

    def __init__(self, projects: Iterable[ProjectChoice]) -> None:
        self.labels = {str(project.id): project.label for project in projects}

    def print_summary(
        self,
        windows: dict[WindowKind, AggregationWindow],
        timer: RunningTimer,
        now: int,
    ) -> None:
        daily = windows[WindowKind.DAILY]
        weekly = windows[WindowKind.WEEKLY]
        project_ids = _ordered_projects(daily, weekly, timer)

        if timer.is_running:
            print(f"Timer running: {self.label_for(timer.project_id)}")
        else:
            print("No timer running.")
        print("-" * 52)

        if not project_ids:
            print("No time recorded this week.")
            return

        print(f"  {'Project':<30} {'Today':>9} {'Week':>9}")
        for project_id in project_ids:
            label = self.label_for(project_id)
            today = format_duration(project_total(daily, timer, project_id, now))
            week = format_duration(project_total(weekly, timer, project_id, now))
            print(f"  {label[:30]:<30} {today:>9} {week:>9}")
        print()
        print(
            f"  {'Total':<30} "
            f"{format_duration(window_total(daily, timer, now)):>9} "
            f"{format_duration(window_total(weekly, timer, now)):>9}"
        )

    def label_for(self, project_id: Optional[object]) -> str:
        if project_id is None:
            return "(no project)"
        return self.labels.get(str(project_id), str(project_id))


def _ordered_projects(
    daily: AggregationWindow, weekly: AggregationWindow, timer: RunningTimer
) -> list:
    totals: dict = dict(weekly.closed_totals)
    for project_id, seconds in daily.closed_totals.items():
        totals.setdefault(project_id, seconds)
    if timer.is_running:
        totals.setdefault(timer.project_id, 0)
    return sorted(totals, key=lambda project_id: totals[project_id], reverse=True)
