"""
Tool: Google Calendar Store
Purpose: Google Calendar v3 event listing and insertion via aiohttp

Implements the CalendarStore interface with a short-lived bearer token
obtained from the TokenProvider. One aiohttp session is opened per request;
a protection run only makes a handful of calls.

Usage:
    from burnout_guard.providers.google_calendar import GoogleCalendarStore

    store = GoogleCalendarStore(access_token)
    items = await store.list_events("primary", now, now + timedelta(hours=36))
    created = await store.insert_event("primary", action.to_event_payload())

Dependencies:
    - aiohttp (pip install aiohttp)
"""

import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import aiohttp

from burnout_guard.protection.errors import FetchError, InsertError, ProtectionError
from burnout_guard.providers.base import CalendarStore

logger = logging.getLogger(__name__)


# Google API endpoints
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"

DEFAULT_TIMEOUT_SECONDS = 30.0


def to_rfc3339(instant: datetime) -> str:
    """UTC RFC 3339 timestamp with a Z suffix (naive values are taken as UTC)."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class GoogleCalendarStore(CalendarStore):
    """Google Calendar access for a single authenticated user."""

    def __init__(
        self,
        access_token: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        api_base: str = CALENDAR_API_BASE,
    ):
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.api_base = api_base.rstrip("/")

    @property
    def provider_name(self) -> str:
        return "google"

    def _get_headers(self) -> dict[str, str]:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _events_url(self, calendar_id: str) -> str:
        return f"{self.api_base}/calendars/{quote(calendar_id, safe='@.')}/events"

    async def _make_request(
        self,
        method: str,
        url: str,
        error_cls: type[ProtectionError],
        data: dict | None = None,
        params: dict | None = None,
    ) -> dict[str, Any]:
        """
        Make an authenticated API request.

        Args:
            method: HTTP method
            url: Full API URL
            error_cls: Error raised on failure (FetchError or InsertError)
            data: JSON body
            params: Query parameters

        Returns:
            Decoded JSON response
        """
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(
                    method, url, headers=self._get_headers(), json=data, params=params
                ) as resp:
                    return await self._handle_response(resp, error_cls)
        except ProtectionError:
            raise
        except (aiohttp.ClientError, TimeoutError) as e:
            raise error_cls(f"Request failed: {e!s}") from e

    async def _handle_response(self, resp, error_cls: type[ProtectionError]) -> dict[str, Any]:
        """Handle API response."""
        try:
            data = await resp.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            data = {}
        data = data or {}

        if 200 <= resp.status < 300:
            return data
        if resp.status == 401:
            raise error_cls("Authentication failed - token may be expired", status_code=401)
        if resp.status == 403:
            raise error_cls("Permission denied - insufficient scopes", status_code=403)
        if resp.status == 404:
            raise error_cls("Calendar not found", status_code=404)

        error = data.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        raise error_cls(message or f"HTTP {resp.status}", status_code=resp.status)

    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 100,
    ) -> list[dict[str, Any]]:
        """List events in a date range."""
        params = {
            "timeMin": to_rfc3339(time_min),
            "timeMax": to_rfc3339(time_max),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }

        data = await self._make_request(
            "GET", self._events_url(calendar_id), FetchError, params=params
        )
        items = data.get("items") or []

        logger.debug(f"Fetched {len(items)} events from calendar {calendar_id}")
        return items

    async def insert_event(self, calendar_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a calendar event."""
        created = await self._make_request(
            "POST", self._events_url(calendar_id), InsertError, data=payload
        )
        logger.debug(f"Inserted event {created.get('id')} into calendar {calendar_id}")
        return created
