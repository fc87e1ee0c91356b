"""Aggregation engine owning the running timer and the reporting windows."""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import MalformedEntry
from .models import (
    AggregationWindow,
    ProjectId,
    RefreshResult,
    RunningTimer,
    TimeEntry,
    WindowKind,
)
from .normalization import normalize_entry
from .projection import current_timestamp

logger = logging.getLogger(__name__)

_ANY_PROJECT = object()


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class AggregationEngine:
    """Holds the running timer and both aggregation windows.

    Every gateway call takes a sequence number from :meth:`issue` when it is
    sent. Responses are applied with that number so that a late response
    cannot overwrite state derived from a call issued after it.
    """

    def __init__(self, week_start: int = 0, now: Optional[int] = None) -> None:
        self.week_start = week_start
        self._sequence = itertools.count(1)
        self._timer = RunningTimer.idle()
        self._timer_sequence = 0
        self._latest_refresh: dict[WindowKind, int] = {kind: 0 for kind in WindowKind}
        instant = now if now is not None else current_timestamp()
        self._windows: dict[WindowKind, AggregationWindow] = {
            kind: AggregationWindow(kind=kind, window_start=self.window_start(kind, instant))
            for kind in WindowKind
        }

    @property
    def timer(self) -> RunningTimer:
        return self._timer

    @property
    def state(self) -> TimerState:
        return TimerState.RUNNING if self._timer.is_running else TimerState.IDLE

    @property
    def windows(self) -> dict[WindowKind, AggregationWindow]:
        return dict(self._windows)

    def window(self, kind: WindowKind) -> AggregationWindow:
        return self._windows[WindowKind(kind)]

    def current_window(self, kind: WindowKind, now: int) -> AggregationWindow:
        """The window as of ``now``; closed totals reset once its period has ended."""
        window = self.window(kind)
        window_start = self.window_start(kind, now)
        if window_start == window.window_start:
            return window
        return AggregationWindow(kind=window.kind, window_start=window_start)

    def window_start(self, kind: WindowKind, now: int) -> int:
        moment = datetime.fromtimestamp(now)
        if WindowKind(kind) is WindowKind.DAILY:
            return int(start_of_day(moment).timestamp())
        return int(start_of_week(moment, self.week_start).timestamp())

    def issue(self) -> int:
        """Allocate the sequence number for a call about to be sent."""
        return next(self._sequence)

    def issue_refresh(self, kind: WindowKind) -> int:
        sequence = self.issue()
        self._latest_refresh[WindowKind(kind)] = sequence
        return sequence

    def refresh(
        self,
        kind: WindowKind,
        records: Iterable[Any],
        *,
        now: Optional[int] = None,
        sequence: Optional[int] = None,
    ) -> RefreshResult:
        """Replace a window's totals and the timer from a full batch of entries."""
        kind = WindowKind(kind)
        if sequence is None:
            sequence = self.issue_refresh(kind)
        if sequence < self._latest_refresh[kind]:
            logger.info(
                "Discarding stale %s refresh #%d (newest is #%d).",
                kind.value,
                sequence,
                self._latest_refresh[kind],
            )
            return RefreshResult(kind=kind, stale=True)

        instant = now if now is not None else current_timestamp()
        window_start = self.window_start(kind, instant)

        entries: list[TimeEntry] = []
        skipped = 0
        for record in records:
            try:
                entries.append(normalize_entry(record))
            except MalformedEntry as exc:
                skipped += 1
                logger.warning("Skipping malformed time entry: %s", exc)

        totals: defaultdict[ProjectId, int] = defaultdict(int)
        aggregated = 0
        open_entries: list[TimeEntry] = []
        for entry in entries:
            if entry.is_open:
                open_entries.append(entry)
                continue
            if not entry.is_closed:
                continue
            if entry.start_epoch_seconds is not None and entry.start_epoch_seconds < window_start:
                continue
            totals[entry.project_id] += entry.duration_seconds
            aggregated += 1

        self._windows[kind] = AggregationWindow(
            kind=kind,
            window_start=window_start,
            closed_totals=dict(totals),
            refreshed_at=instant,
        )

        open_entry = _select_open_entry(open_entries)
        if open_entry is None:
            self._write_timer(RunningTimer.idle(), sequence)
        else:
            self._write_timer(
                RunningTimer.running(open_entry.project_id, open_entry.start_epoch_seconds),
                sequence,
            )

        result = RefreshResult(
            kind=kind,
            aggregated=aggregated,
            skipped=skipped,
            open_entries=len(open_entries),
        )
        logger.info(
            "Refreshed %s totals: %d entries aggregated, %d skipped, timer %s.",
            kind.value,
            result.aggregated,
            result.skipped,
            self.state.value,
        )
        return result

    def on_start_confirmed(
        self, project_id: ProjectId, now: int, *, sequence: Optional[int] = None
    ) -> bool:
        if sequence is None:
            sequence = self.issue()
        return self._write_timer(RunningTimer.running(project_id, now), sequence)

    def on_stop_confirmed(
        self, *, project_id: Any = _ANY_PROJECT, sequence: Optional[int] = None
    ) -> bool:
        """Mark the timer idle unless the confirmation no longer applies.

        ``project_id`` is the project the engine showed when the stop was
        issued; a different current project means newer truth already arrived.
        """
        if project_id is not _ANY_PROJECT and project_id != self._timer.project_id:
            logger.info(
                "Ignoring stop confirmation for project %s; timer now shows %s.",
                project_id,
                self._timer.project_id,
            )
            return False
        if sequence is None:
            sequence = self.issue()
        return self._write_timer(RunningTimer.idle(), sequence)

    def _write_timer(self, timer: RunningTimer, sequence: int) -> bool:
        if sequence < self._timer_sequence:
            logger.debug(
                "Ignoring timer update #%d; current state came from #%d.",
                sequence,
                self._timer_sequence,
            )
            return False
        if timer != self._timer:
            logger.debug("Timer state %s -> %s", self._timer, timer)
        self._timer = timer
        self._timer_sequence = sequence
        return True


def _select_open_entry(entries: list[TimeEntry]) -> Optional[TimeEntry]:
    if not entries:
        return None
    if len(entries) > 1:
        logger.warning(
            "Found %d open time entries; using the one started last.", len(entries)
        )
    selected = entries[0]
    for entry in entries[1:]:
        if (entry.start_epoch_seconds or 0) >= (selected.start_epoch_seconds or 0):
            selected = entry
    return selected


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(value: datetime, week_start: int = 0) -> datetime:
    """Local midnight of the most recent ``week_start`` weekday (0 = Monday)."""
    days_back = (value.weekday() - week_start) % 7
    return start_of_day(value) - timedelta(days=days_back)
