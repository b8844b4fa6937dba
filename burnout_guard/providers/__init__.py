"""Collaborators for protection runs: calendar access and token issuance."""

from burnout_guard.providers.base import CalendarStore, TokenProvider

__all__ = ["CalendarStore", "TokenProvider"]
