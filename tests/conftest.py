"""Shared test fixtures for Burnout Guard tests.

This module provides common fixtures used across all test modules:
- A fixed timezone and clock so date-bound rules are deterministic
- Builders for raw Google Calendar items and normalized windows
- Fake calendar and token collaborators (see tests/fakes.py)

Usage:
    def test_something(now, make_item, make_window):
        window = make_window([make_item("Standup", "09:00", "09:15")])
        ...
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from burnout_guard.protection.models import NormalizedWindow
from burnout_guard.protection.normalizer import normalize_events


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent

# Fixed offset so tests never depend on the host's timezone database
TEST_TZ = timezone(timedelta(hours=-5), "TEST")


# ─────────────────────────────────────────────────────────────────────────────
# Clock Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def tz() -> timezone:
    """Timezone used for every local time in the tests."""
    return TEST_TZ


@pytest.fixture
def now() -> datetime:
    """Monday 2025-03-10 08:00 local, before the lunch window."""
    return datetime(2025, 3, 10, 8, 0, tzinfo=TEST_TZ)


@pytest.fixture
def at(now: datetime) -> Callable[..., datetime]:
    """Build a local datetime from 'HH:MM' on today (or day_offset days later)."""

    def _at(hhmm: str, day_offset: int = 0) -> datetime:
        hour, minute = (int(part) for part in hhmm.split(":"))
        base = now + timedelta(days=day_offset)
        return base.replace(hour=hour, minute=minute, second=0, microsecond=0)

    return _at


# ─────────────────────────────────────────────────────────────────────────────
# Event Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_item(at) -> Callable[..., dict[str, Any]]:
    """Build a raw timed Google Calendar item."""
    counter = {"n": 0}

    def _make(
        summary: str | None,
        start: str,
        end: str,
        day_offset: int = 0,
        event_id: str | None = None,
    ) -> dict[str, Any]:
        counter["n"] += 1
        item = {
            "id": event_id or f"raw_{counter['n']}",
            "start": {"dateTime": at(start, day_offset).isoformat()},
            "end": {"dateTime": at(end, day_offset).isoformat()},
        }
        if summary is not None:
            item["summary"] = summary
        return item

    return _make


@pytest.fixture
def make_all_day_item() -> Callable[..., dict[str, Any]]:
    """Build a raw all-day Google Calendar item."""

    def _make(summary: str, day: str = "2025-03-10", end_day: str = "2025-03-11") -> dict[str, Any]:
        return {"id": f"allday_{summary}", "summary": summary, "start": {"date": day}, "end": {"date": end_day}}

    return _make


@pytest.fixture
def make_window(now, tz) -> Callable[[list[dict[str, Any]]], NormalizedWindow]:
    """Normalize raw items over the 36 hour horizon from now."""

    def _make(items: list[dict[str, Any]]) -> NormalizedWindow:
        return normalize_events(items, time_min=now, time_max=now + timedelta(hours=36), tz=tz)

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# User Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_user_id() -> str:
    """Standard test user ID."""
    return "test_user_123"


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create a temporary data directory structure.

    Returns:
        Path to temporary data directory
    """
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir
