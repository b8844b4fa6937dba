"""
Tool: Pattern Detectors
Purpose: Decide whether a burnout-risk pattern warrants a protective event

Each rule is a stateless strategy with one method,
evaluate(window, now) -> ProtectiveAction | None. Detectors never touch the
calendar; the orchestrator hands their proposals to the ActionExecutor.
`now` is timezone-aware and sets the "current date" for the date-bound rules.
Event instants are UTC, so offsets and midpoints are elapsed time; proposed
actions are expressed in now's timezone.

Rules:
    MeetingMarathonDetector: three back-to-back meetings -> 15 min buffer
    LostLunchDetector: no meal-like event 11:30-13:30 -> lunch 12:15-13:00
    FocusGuardDetector: focus session over 90 min -> 20 min break at its midpoint
    HardStopDetector: work ending after 18:30 today -> 30 min wind-down

Usage:
    from burnout_guard.protection.detectors import default_detectors

    for detector in default_detectors():
        action = detector.evaluate(window, now)
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, time, timedelta

from burnout_guard.protection.models import (
    ActionKind,
    CalendarEvent,
    NormalizedWindow,
    ProtectiveAction,
)
from burnout_guard.protection.normalizer import raw_start_instant

logger = logging.getLogger(__name__)


MEAL_PATTERN = re.compile(r"lunch|meal|break|eat|food|dinner", re.IGNORECASE)
FOCUS_PATTERN = re.compile(r"study|deep work|focus|work session|coding|homework", re.IGNORECASE)
BREAK_PATTERN = re.compile(r"break|recharge|walk", re.IGNORECASE)
WORK_PATTERN = re.compile(r"work|meeting|study|call|project", re.IGNORECASE)

BUFFER_MARKER = "Buffer Time"
HARD_STOP_MARKER = "Hard Stop"


def _at(now: datetime, hour: int, minute: int) -> datetime:
    """Wall-clock time on now's calendar date, in now's timezone."""
    return datetime.combine(now.date(), time(hour, minute), tzinfo=now.tzinfo)


def _gap_minutes(earlier: CalendarEvent, later: CalendarEvent) -> float:
    return (later.start - earlier.end).total_seconds() / 60


class Detector(ABC):
    """Common contract for a protection rule."""

    name: str = "detector"
    kind: ActionKind

    @abstractmethod
    def evaluate(self, window: NormalizedWindow, now: datetime) -> ProtectiveAction | None:
        """
        Inspect the window and propose at most one protective action.

        Args:
            window: Normalized events for the fetch horizon
            now: Current aware datetime in the user's timezone

        Returns:
            ProtectiveAction to insert, or None when nothing is warranted
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MeetingMarathonDetector(Detector):
    """Buffer after the middle meeting of three effectively back-to-back events."""

    name = "meeting_marathon"
    kind = ActionKind.BUFFER_TIME

    max_gap_minutes = 5
    buffer_minutes = 15

    def evaluate(self, window: NormalizedWindow, now: datetime) -> ProtectiveAction | None:
        events = window.events

        for i in range(len(events) - 2):
            first, middle, last = events[i], events[i + 1], events[i + 2]

            if _gap_minutes(first, middle) >= self.max_gap_minutes:
                continue
            if _gap_minutes(middle, last) >= self.max_gap_minutes:
                continue

            if self._buffer_exists(window, middle.end):
                logger.debug(f"Buffer already present at {middle.end.isoformat()}, keep scanning")
                continue

            return ProtectiveAction.build(
                self.kind,
                start=middle.end,
                end=middle.end + timedelta(minutes=self.buffer_minutes),
                note=f"Added 15min buffer between {middle.title} and {last.title}",
                tz=now.tzinfo,
            )

        return None

    @staticmethod
    def _buffer_exists(window: NormalizedWindow, at: datetime) -> bool:
        """Checked against everything fetched, not only timed events."""
        for item in window.raw_events:
            summary = item.get("summary") or ""
            if BUFFER_MARKER not in summary:
                continue
            if raw_start_instant(item, at.tzinfo) == at:
                return True
        return False


class LostLunchDetector(Detector):
    """Lunch break when nothing meal-like sits inside today's lunch window."""

    name = "lost_lunch"
    kind = ActionKind.LUNCH_BREAK

    window_start = (11, 30)
    window_end = (13, 30)
    lunch_start = (12, 15)
    lunch_end = (13, 0)

    def __init__(self, skip_after_window: bool = False):
        self.skip_after_window = skip_after_window

    def evaluate(self, window: NormalizedWindow, now: datetime) -> ProtectiveAction | None:
        earliest = _at(now, *self.window_start)
        latest = _at(now, *self.window_end)

        if self.skip_after_window and now > latest:
            return None

        has_lunch = any(
            event.start >= earliest and event.end <= latest and MEAL_PATTERN.search(event.summary)
            for event in window.events
        )
        if has_lunch:
            return None

        return ProtectiveAction.build(
            self.kind,
            start=_at(now, *self.lunch_start),
            end=_at(now, *self.lunch_end),
            note="Added lunch break at 12:15 PM",
        )

    def __repr__(self) -> str:
        return f"LostLunchDetector(skip_after_window={self.skip_after_window})"


class FocusGuardDetector(Detector):
    """Recharge break at the midpoint of the first unprotected long focus session."""

    name = "focus_guard"
    kind = ActionKind.RECHARGE_BREAK

    max_session_minutes = 90
    break_minutes = 20

    def evaluate(self, window: NormalizedWindow, now: datetime) -> ProtectiveAction | None:
        for event in window.events:
            if not FOCUS_PATTERN.search(event.summary):
                continue
            if event.duration_minutes <= self.max_session_minutes:
                continue

            midpoint = event.start + (event.end - event.start) / 2

            already_protected = any(
                other.start == midpoint and BREAK_PATTERN.search(other.summary)
                for other in window.events
            )
            if already_protected:
                continue

            return ProtectiveAction.build(
                self.kind,
                start=midpoint,
                end=midpoint + timedelta(minutes=self.break_minutes),
                note=f"Added recharge break to long session: {event.title}",
                tz=now.tzinfo,
            )

        return None


class HardStopDetector(Detector):
    """Wind-down block after today's last work-like event when it ends late."""

    name = "hard_stop"
    kind = ActionKind.HARD_STOP

    gap_minutes = 5
    wind_down_minutes = 30

    def __init__(self, skip_if_present: bool = False):
        self.skip_if_present = skip_if_present

    @staticmethod
    def is_late(instant: datetime) -> bool:
        """19:00 or later, or past 18:30, read from the instant's wall clock."""
        return instant.hour >= 19 or (instant.hour == 18 and instant.minute > 30)

    def latest_work_end(self, window: NormalizedWindow, now: datetime) -> datetime | None:
        ends = [
            event.end
            for event in window.on_date(now.date())
            if WORK_PATTERN.search(event.summary)
        ]
        return max(ends, default=None)

    def evaluate(self, window: NormalizedWindow, now: datetime) -> ProtectiveAction | None:
        latest = self.latest_work_end(window, now)
        if latest is None or not self.is_late(latest.astimezone(now.tzinfo)):
            return None

        start = latest + timedelta(minutes=self.gap_minutes)

        if self.skip_if_present and any(
            event.start == start and HARD_STOP_MARKER in event.summary for event in window.events
        ):
            return None

        return ProtectiveAction.build(
            self.kind,
            start=start,
            end=start + timedelta(minutes=self.wind_down_minutes),
            note="Added hard stop after late work",
            tz=now.tzinfo,
        )

    def __repr__(self) -> str:
        return f"HardStopDetector(skip_if_present={self.skip_if_present})"


def default_detectors(
    lunch_skip_after_window: bool = False,
    hard_stop_skip_if_present: bool = False,
) -> list[Detector]:
    """The four rules in their fixed evaluation order."""
    return [
        MeetingMarathonDetector(),
        LostLunchDetector(skip_after_window=lunch_skip_after_window),
        FocusGuardDetector(),
        HardStopDetector(skip_if_present=hard_stop_skip_if_present),
    ]
