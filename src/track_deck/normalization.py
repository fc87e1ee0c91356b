"""Utilities to turn raw gateway records into time entries."""

from __future__ import annotations

import math
import numbers
from datetime import datetime
from typing import Any, Mapping, Optional

from .errors import MalformedEntry
from .models import ProjectChoice, TimeEntry, WorkspaceChoice


def normalize_entry(record: Any) -> TimeEntry:
    """Validate a raw time-entry record and convert it to a ``TimeEntry``.

    Open entries without a ``start`` fall back to the legacy encoding where
    the negative duration is the start timestamp.
    """
    if not isinstance(record, Mapping):
        raise MalformedEntry("time entry is not an object", record)

    project_id = record.get("project_id")
    if project_id is None:
        raise MalformedEntry("time entry has no project_id", record)
    if isinstance(project_id, bool) or not isinstance(project_id, (int, str)):
        raise MalformedEntry(f"unsupported project_id {project_id!r}", record)

    duration = record.get("duration")
    if isinstance(duration, bool) or not isinstance(duration, numbers.Real):
        raise MalformedEntry("time entry duration is not numeric", record)
    if not math.isfinite(duration):
        raise MalformedEntry(f"time entry duration {duration!r} is not finite", record)
    duration_seconds = int(duration)

    start_epoch = parse_timestamp(record.get("start"), record)
    if start_epoch is None and duration_seconds < 0:
        start_epoch = -duration_seconds

    entry_id = record.get("id")
    return TimeEntry(
        project_id=project_id,
        duration_seconds=duration_seconds,
        start_epoch_seconds=start_epoch,
        id=entry_id if isinstance(entry_id, int) else None,
        description=record.get("description") or None,
    )


def parse_timestamp(value: Any, record: Any = None) -> Optional[int]:
    """Convert an ISO-8601 string (or epoch number) to epoch seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise MalformedEntry(f"start {value!r} is not finite", record)
        return int(value)
    if not isinstance(value, str):
        raise MalformedEntry(f"unsupported start value {value!r}", record)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        # Naive timestamps are interpreted as local wall-clock time.
        return int(parsed.timestamp())
    except (ValueError, OverflowError, OSError) as exc:
        raise MalformedEntry(f"invalid start timestamp {value!r}", record) from exc


def normalize_project(record: Mapping[str, Any]) -> ProjectChoice:
    return ProjectChoice(id=record["id"], label=str(record.get("name") or record["id"]))


def normalize_workspace(record: Mapping[str, Any]) -> WorkspaceChoice:
    return WorkspaceChoice(id=int(record["id"]), label=str(record.get("name") or record["id"]))
