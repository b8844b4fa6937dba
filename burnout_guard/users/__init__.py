"""Connected user registry."""

from burnout_guard.users.store import InMemoryUserStore, JsonFileUserStore, UserStore

__all__ = ["InMemoryUserStore", "JsonFileUserStore", "UserStore"]
