"""
Tool: Provider Base
Purpose: Abstract interfaces for the collaborators a protection run depends on

The orchestrator only talks to these interfaces, so tests and alternative
backends can swap implementations without touching the rule engine.

Usage:
    from burnout_guard.providers.base import CalendarStore, TokenProvider
    from burnout_guard.providers.google_calendar import GoogleCalendarStore

    token = await token_provider.get_access_token(user_id)
    store = GoogleCalendarStore(token)
    items = await store.list_events("primary", time_min, time_max)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any


class TokenProvider(ABC):
    """Issues calendar access tokens for connected users."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'descope')."""
        pass

    @abstractmethod
    async def get_access_token(self, user_id: str) -> str:
        """
        Get a calendar access token for a user.

        Args:
            user_id: Connected user identifier

        Returns:
            Bearer token accepted by the calendar store

        Raises:
            AuthError: Token retrieval failed (invalid or expired grant)
        """
        pass


class CalendarStore(ABC):
    """Reads and writes events on one user's calendar."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'google')."""
        pass

    @abstractmethod
    async def list_events(
        self,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = 100,
    ) -> list[dict[str, Any]]:
        """
        List single (expanded) events overlapping a time range, ordered by start time.

        Args:
            calendar_id: Calendar to query
            time_min: Lower bound (exclusive on event end)
            time_max: Upper bound (exclusive on event start)
            max_results: Maximum events to return

        Returns:
            Raw provider items

        Raises:
            FetchError: Listing failed (network or permission)
        """
        pass

    @abstractmethod
    async def insert_event(self, calendar_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Create an event.

        Args:
            calendar_id: Calendar to write to
            payload: Provider event body (summary, description, start, end, colorId)

        Returns:
            The created event as returned by the provider

        Raises:
            InsertError: Creation failed
        """
        pass
