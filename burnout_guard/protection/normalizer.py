"""
Tool: Event Normalizer
Purpose: Turn raw Google Calendar items into a NormalizedWindow

Items without start.dateTime are all-day entries and are excluded. Timed
items are resolved to absolute instants (held in UTC) and ordered ascending
by start; sorted() is stable, so ties keep fetch order.

Usage:
    from burnout_guard.protection.normalizer import normalize_events

    window = normalize_events(items, time_min=now, time_max=now + timedelta(hours=36), tz=tz)
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any

from burnout_guard.protection.models import CalendarEvent, NormalizedWindow

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 100


def parse_datetime(value: str, tz: tzinfo) -> datetime:
    """Parse an RFC 3339 dateTime ('Z' or offset) into an aware datetime in tz."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(tz)


def raw_start_instant(item: dict[str, Any], tz: tzinfo) -> datetime | None:
    """start.dateTime of a raw item, or None for all-day or malformed items."""
    value = (item.get("start") or {}).get("dateTime")
    if not value:
        return None
    try:
        return parse_datetime(value, tz)
    except (AttributeError, ValueError):
        return None


def parse_event(item: dict[str, Any], tz: tzinfo) -> CalendarEvent | None:
    """
    Parse a single raw item.

    Returns:
        CalendarEvent, or None when the item carries no usable times
    """
    start_data = item.get("start") or {}
    end_data = item.get("end") or {}

    all_day = not start_data.get("dateTime")

    try:
        if all_day:
            start = datetime.fromisoformat(start_data["date"]).replace(tzinfo=tz)
            end = datetime.fromisoformat(end_data["date"]).replace(tzinfo=tz)
        else:
            start = parse_datetime(start_data["dateTime"], tz).astimezone(timezone.utc)
            end = parse_datetime(end_data["dateTime"], tz).astimezone(timezone.utc)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping calendar item {item.get('id')!r} with unreadable times: {e}")
        return None

    return CalendarEvent(
        event_id=item.get("id", ""),
        title=item.get("summary"),
        start=start,
        end=end,
        is_all_day=all_day,
        raw=item,
    )


def normalize_events(
    raw_items: list[dict[str, Any]] | None,
    *,
    time_min: datetime,
    time_max: datetime,
    tz: tzinfo,
    max_events: int = DEFAULT_MAX_EVENTS,
) -> NormalizedWindow:
    """
    Build the NormalizedWindow for one run.

    Args:
        raw_items: Items as returned by the calendar store (None is treated as empty)
        time_min: Start of the fetch horizon
        time_max: End of the fetch horizon
        tz: Timezone used for local dates and times
        max_events: Cap on raw items considered

    Returns:
        NormalizedWindow with timed events only
    """
    items = list(raw_items or [])[:max_events]

    events = []
    for item in items:
        event = parse_event(item, tz)
        if event is None or event.is_all_day:
            continue
        if event.end < event.start:
            logger.warning(f"Skipping calendar item {event.event_id!r}: ends before it starts")
            continue
        events.append(event)

    events = sorted(events, key=lambda e: e.start)

    logger.debug(
        f"Normalized {len(events)} timed events from {len(items)} items "
        f"({time_min.isoformat()} -> {time_max.isoformat()})"
    )

    return NormalizedWindow(
        events=tuple(events),
        raw_events=tuple(items),
        time_min=time_min,
        time_max=time_max,
    )
