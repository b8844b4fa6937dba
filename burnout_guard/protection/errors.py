"""Errors raised by the auth and calendar collaborators during a protection run."""

from __future__ import annotations


class ProtectionError(RuntimeError):
    """Base error for anything that ends (or skips part of) a user's run."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthError(ProtectionError):
    """Raised when a calendar access token cannot be obtained (invalid or expired grant)."""


class FetchError(ProtectionError):
    """Raised when listing calendar events fails (network or permission)."""


class InsertError(ProtectionError):
    """Raised when a protective event cannot be created."""
