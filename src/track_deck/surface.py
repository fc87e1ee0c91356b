"""Feedback and display values rendered on the control surface."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .engine import AggregationEngine, TimerState
from .models import ProjectChoice, ProjectId, WindowKind
from .projection import project_total, running_elapsed, window_total
from .reporting import format_duration


def rgb(red: int, green: int, blue: int) -> int:
    """Encode an RGB triple the way button styles expect it."""
    return ((red & 0xFF) << 16) | ((green & 0xFF) << 8) | (blue & 0xFF)


BLACK = rgb(0, 0, 0)
WHITE = rgb(255, 255, 255)
GREEN = rgb(50, 164, 49)
RED = rgb(255, 0, 0)


@dataclass(frozen=True, slots=True)
class OptionDefinition:
    id: str
    label: str
    type: str = "dropdown"
    choices: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True, slots=True)
class ActionDefinition:
    name: str
    label: str
    options: tuple[OptionDefinition, ...] = ()


@dataclass(frozen=True, slots=True)
class FeedbackDefinition:
    name: str
    label: str
    kind: str = "advanced"
    options: tuple[OptionDefinition, ...] = ()


@dataclass(frozen=True, slots=True)
class VariableDefinition:
    name: str
    label: str


@dataclass(slots=True)
class DeckSurface:
    """Read-only view of the engine for the host control surface."""

    engine: AggregationEngine
    projects: list[ProjectChoice] = field(default_factory=list)

    def set_projects(self, projects: Iterable[ProjectChoice]) -> None:
        self.projects = list(projects)

    def project_label(self, project_id: Optional[ProjectId]) -> str:
        if project_id is None:
            return ""
        for project in self.projects:
            if str(project.id) == str(project_id):
                return project.label
        return str(project_id)

    @property
    def state(self) -> TimerState:
        return self.engine.state

    def start_button_color(self) -> int:
        return BLACK if self.engine.timer.is_running else GREEN

    def stop_button_color(self) -> int:
        return RED if self.engine.timer.is_running else BLACK

    def total_seconds(
        self, kind: WindowKind, project_id: Optional[ProjectId], now: int
    ) -> int:
        window = self.engine.current_window(kind, now)
        if project_id in (None, ""):
            return window_total(window, self.engine.timer, now)
        return project_total(window, self.engine.timer, project_id, now)

    def display_text(
        self, kind: WindowKind, project_id: Optional[ProjectId], now: int
    ) -> str:
        return format_duration(self.total_seconds(kind, project_id, now))

    def list_actions(self) -> list[ActionDefinition]:
        return [
            ActionDefinition("start_timer", "Start Timer", (self._project_option(),)),
            ActionDefinition("stop_timer", "Stop Timer"),
            ActionDefinition("refresh_daily_totals", "Refresh Daily Totals"),
            ActionDefinition("refresh_weekly_totals", "Refresh Weekly Totals"),
            ActionDefinition("tick_current_timer", "Tick Current Timer"),
        ]

    def list_feedbacks(self) -> list[FeedbackDefinition]:
        return [
            FeedbackDefinition("start_button_color", "Update Start Button Color"),
            FeedbackDefinition("stop_button_color", "Update Stop Button Color"),
            FeedbackDefinition(
                "show_daily_total", "Show Daily Total for Project", options=(self._project_option(),)
            ),
            FeedbackDefinition(
                "show_weekly_total", "Show Weekly Total for Project", options=(self._project_option(),)
            ),
        ]

    def list_variables(self) -> list[VariableDefinition]:
        variables = [
            VariableDefinition("timer_running", "Whether a timer is running"),
            VariableDefinition("timer_project", "Project id of the running timer"),
            VariableDefinition("timer_project_name", "Project name of the running timer"),
            VariableDefinition("timer_elapsed", "Elapsed time of the running timer"),
            VariableDefinition("daily_total", "Total time today"),
            VariableDefinition("weekly_total", "Total time this week"),
        ]
        for project in self.projects:
            variables.append(
                VariableDefinition(f"daily_total_{project.id}", f"Today: {project.label}")
            )
            variables.append(
                VariableDefinition(f"weekly_total_{project.id}", f"This week: {project.label}")
            )
        return variables

    def evaluate_feedback(
        self, name: str, options: Optional[Mapping[str, Any]], now: int
    ) -> dict[str, Any]:
        options = options or {}
        if name == "start_button_color":
            return {"bgcolor": self.start_button_color()}
        if name == "stop_button_color":
            return {"bgcolor": self.stop_button_color()}
        if name == "show_daily_total":
            return {"text": self.display_text(WindowKind.DAILY, options.get("project_id"), now)}
        if name == "show_weekly_total":
            return {"text": self.display_text(WindowKind.WEEKLY, options.get("project_id"), now)}
        raise KeyError(name)

    def variable_values(self, now: int) -> dict[str, str]:
        timer = self.engine.timer
        values = {
            "timer_running": "true" if timer.is_running else "false",
            "timer_project": "" if timer.project_id is None else str(timer.project_id),
            "timer_project_name": self.project_label(timer.project_id),
            "timer_elapsed": format_duration(running_elapsed(timer, now)),
            "daily_total": self.display_text(WindowKind.DAILY, None, now),
            "weekly_total": self.display_text(WindowKind.WEEKLY, None, now),
        }
        for project in self.projects:
            values[f"daily_total_{project.id}"] = self.display_text(
                WindowKind.DAILY, project.id, now
            )
            values[f"weekly_total_{project.id}"] = self.display_text(
                WindowKind.WEEKLY, project.id, now
            )
        return values

    def render(self, now: int) -> dict[str, Any]:
        """Everything a tick needs to repaint the surface."""
        return {
            "state": self.state.value,
            "start_button_color": self.start_button_color(),
            "stop_button_color": self.stop_button_color(),
            "variables": self.variable_values(now),
        }

    def presets(self, project_id: Optional[ProjectId] = None) -> list[dict[str, Any]]:
        project_options = {"project_id": project_id} if project_id is not None else {}
        refresh_both = [
            {"action": "refresh_daily_totals"},
            {"action": "refresh_weekly_totals"},
        ]
        return [
            {
                "category": "Commands",
                "label": "Start Timer",
                "bank": _bank("Clock In"),
                "actions": [{"action": "start_timer", "options": project_options}, *refresh_both],
                "feedbacks": [{"type": "start_button_color"}],
            },
            {
                "category": "Commands",
                "label": "Stop Timer",
                "bank": _bank("Clock Out"),
                "actions": [{"action": "stop_timer"}, *refresh_both],
                "feedbacks": [{"type": "stop_button_color"}],
            },
            {
                "category": "HUD",
                "label": "Daily Total",
                "bank": _bank("00:00:00"),
                "actions": [{"action": "refresh_daily_totals"}],
                "feedbacks": [{"type": "show_daily_total", "options": project_options}],
            },
            {
                "category": "HUD",
                "label": "Weekly Total",
                "bank": _bank("00:00:00"),
                "actions": [{"action": "refresh_weekly_totals"}],
                "feedbacks": [{"type": "show_weekly_total", "options": project_options}],
            },
        ]

    def _project_option(self) -> OptionDefinition:
        return OptionDefinition(
            id="project_id",
            label="Project",
            choices=tuple({"id": project.id, "label": project.label} for project in self.projects),
        )


def _bank(text: str) -> dict[str, Any]:
    return {"style": "text", "text": text, "size": "14", "color": WHITE, "bgcolor": BLACK}
