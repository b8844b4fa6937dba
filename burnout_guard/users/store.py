"""
Tool: Connected User Store
Purpose: Persist the list of users whose calendars are protected

The store is injected into the orchestrator (read once per loop) and the
OAuth callback (the only writer). Order is registration order and is the
order users are processed in.

Usage:
    from burnout_guard.users.store import JsonFileUserStore

    store = JsonFileUserStore(Path("data/users.json"))
    if store.add("U123"):
        print("New user connected")
    for user_id in store.load():
        ...
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class UserStore(ABC):
    """Ordered, duplicate-free list of connected user ids."""

    @abstractmethod
    def load(self) -> list[str]:
        """Return connected user ids in registration order."""
        pass

    @abstractmethod
    def save(self, user_ids: list[str]) -> None:
        """Replace the stored list."""
        pass

    def add(self, user_id: str) -> bool:
        """
        Register a user if not already present.

        Returns:
            True when the user was new
        """
        users = self.load()
        if user_id in users:
            return False
        users.append(user_id)
        self.save(users)
        return True

    def __len__(self) -> int:
        return len(self.load())


class InMemoryUserStore(UserStore):
    """Process-local store, used in tests and single-shot CLI runs."""

    def __init__(self, user_ids: list[str] | None = None):
        self._users = list(dict.fromkeys(user_ids or []))
        self._lock = threading.Lock()

    def load(self) -> list[str]:
        with self._lock:
            return list(self._users)

    def save(self, user_ids: list[str]) -> None:
        with self._lock:
            self._users = list(dict.fromkeys(user_ids))

    def add(self, user_id: str) -> bool:
        with self._lock:
            if user_id in self._users:
                return False
            self._users.append(user_id)
            return True


class JsonFileUserStore(UserStore):
    """
    JSON array on disk.

    A missing or unreadable file loads as an empty list; writes go through a
    temporary file so a crash never leaves a truncated list behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def load(self) -> list[str]:
        if not self.path.exists():
            return []

        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load users from {self.path}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Ignoring {self.path}: expected a JSON array")
            return []

        return list(dict.fromkeys(str(u) for u in data))

    def save(self, user_ids: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        with open(tmp_path, "w") as f:
            json.dump(list(dict.fromkeys(user_ids)), f, indent=2)
        os.replace(tmp_path, self.path)

    def add(self, user_id: str) -> bool:
        with self._lock:
            added = super().add(user_id)
        if added:
            logger.info(f"New user connected: {user_id}")
        return added
