"""
Tool: Protection Models
Purpose: Data structures shared by the normalizer, detectors, executor and orchestrator

Usage:
    from burnout_guard.protection.models import (
        ActionKind, CalendarEvent, NormalizedWindow, ProtectiveAction, RunResult,
    )

Events and windows are read-only inputs to the detectors; a ProtectiveAction
is frozen once a detector creates it. RunResult and AggregateResult are
built per invocation and discarded after reporting.
"""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any


class RunState(str, Enum):
    """Lifecycle of one user's run. Nothing carries over between runs."""

    IDLE = "idle"
    FETCHING_TOKEN = "fetching_token"
    FETCHING_EVENTS = "fetching_events"
    EVALUATING_RULES = "evaluating_rules"
    DONE = "done"
    FAILED = "failed"


class ActionKind(str, Enum):
    """Kinds of protective event the engine can insert."""

    BUFFER_TIME = "BufferTime"
    LUNCH_BREAK = "LunchBreak"
    RECHARGE_BREAK = "RechargeBreak"
    HARD_STOP = "HardStop"

    @property
    def color_id(self) -> int:
        """Google Calendar colorId used for this kind."""
        colors = {
            "BufferTime": 5,  # green
            "LunchBreak": 2,  # red
            "RechargeBreak": 8,  # blue
            "HardStop": 3,  # purple
        }
        return colors[self.value]

    @property
    def title(self) -> str:
        titles = {
            "BufferTime": "🛡️ Buffer Time (by Agent)",
            "LunchBreak": "🍽️ Lunch Break (by Agent)",
            "RechargeBreak": "💧 Recharge Break (by Agent)",
            "HardStop": "🌙 Hard Stop: Wind Down (by Agent)",
        }
        return titles[self.value]

    @property
    def description(self) -> str:
        descriptions = {
            "BufferTime": "Automatically added to prevent meeting fatigue and burnout.",
            "LunchBreak": "Automatically added to ensure you take time to recharge and refuel.",
            "RechargeBreak": "Time to hydrate, stretch, and reset. Your focus will thank you!",
            "HardStop": "Your workday is officially over. Time to rest and recharge for tomorrow.",
        }
        return descriptions[self.value]


@dataclass(frozen=True)
class CalendarEvent:
    """
    A calendar entry resolved to absolute instants.

    Timed entries hold start and end in UTC so durations and offsets are
    elapsed time; convert to the run timezone for local dates and hours.

    All-day entries keep their date boundaries at local midnight and are
    flagged so the normalizer can drop them.
    """

    event_id: str
    title: str | None
    start: datetime
    end: datetime
    is_all_day: bool = False
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60

    @property
    def summary(self) -> str:
        """Title with absent values read as empty text (for pattern matching)."""
        return self.title or ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "title": self.title,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "is_all_day": self.is_all_day,
        }


@dataclass(frozen=True)
class NormalizedWindow:
    """
    Timed events for the fetch horizon, ascending by start (stable on ties).

    time_min carries the run timezone used for local calendar dates.

    raw_events keeps the provider items exactly as fetched; dedup checks
    that must see everything on the calendar read from it.
    """

    events: tuple[CalendarEvent, ...]
    raw_events: tuple[dict[str, Any], ...]
    time_min: datetime
    time_max: datetime

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    @property
    def is_empty(self) -> bool:
        return not self.events

    def on_date(self, day) -> list[CalendarEvent]:
        """Events whose start falls on the given local calendar date."""
        tz = self.time_min.tzinfo
        return [e for e in self.events if e.start.astimezone(tz).date() == day]


@dataclass(frozen=True)
class ProtectiveAction:
    """
    A synthetic calendar event proposed by a detector.

    note is the human-readable line recorded in the run log once the
    event has been inserted.
    """

    kind: ActionKind
    title: str
    description: str
    start: datetime
    end: datetime
    color_id: int
    note: str = ""

    @classmethod
    def build(
        cls,
        kind: ActionKind,
        start: datetime,
        end: datetime,
        note: str,
        tz: tzinfo | None = None,
    ) -> "ProtectiveAction":
        """Create an action with the standard title, description and colour for its kind."""
        if tz is not None:
            start, end = start.astimezone(tz), end.astimezone(tz)
        return cls(
            kind=kind,
            title=kind.title,
            description=kind.description,
            start=start,
            end=end,
            color_id=kind.color_id,
            note=note,
        )

    def to_event_payload(self) -> dict[str, Any]:
        """Google Calendar insert body."""
        return {
            "summary": self.title,
            "description": self.description,
            "start": {"dateTime": self.start.isoformat()},
            "end": {"dateTime": self.end.isoformat()},
            "colorId": str(self.color_id),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "color_id": self.color_id,
            "note": self.note,
        }


@dataclass
class RunResult:
    """Outcome of one orchestrator run for one user."""

    user_id: str
    actions_taken: int = 0
    log: list[str] = field(default_factory=list)
    state: RunState = RunState.IDLE

    @property
    def failed(self) -> bool:
        return self.state is RunState.FAILED

    def record_action(self, action: ProtectiveAction) -> None:
        self.actions_taken += 1
        self.log.append(action.note)

    def record_error(self, message: str, fatal: bool = True) -> None:
        """Append an "Error: ..." line; a fatal error also ends the run."""
        if fatal:
            self.state = RunState.FAILED
        self.log.append(f"Error: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "actions": self.actions_taken,
            "log": list(self.log),
            "state": self.state.value,
            "failed": self.failed,
        }


@dataclass
class AggregateResult:
    """Results of one loop over all connected users, in user-store order."""

    results: list[RunResult] = field(default_factory=list)

    @property
    def total_actions(self) -> int:
        return sum(r.actions_taken for r in self.results)

    def summary_lines(self) -> list[str]:
        """Per-user report rendered by the on-demand trigger."""
        lines = []
        for result in self.results:
            lines.append(f"User {result.user_id}: {result.actions_taken} actions taken")
            lines.extend(f"  - {entry}" for entry in result.log)
        return lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_actions": self.total_actions,
            "users": [r.to_dict() for r in self.results],
        }
