"""Exceptions raised by the progress tracker and its collaborators."""

from __future__ import annotations

from typing import Optional


class TrackerError(Exception):
    """Base exception for episode-tracker."""


class ProviderError(TrackerError):
    """Raised when a metadata lookup fails (network, HTTP or payload)."""


class StoreError(TrackerError):
    """Raised when reading or writing a progress record fails."""


class ConflictError(StoreError):
    """Raised when an optimistic write finds a newer version in the store."""

    def __init__(self, user_id: str, show_id: int, expected: int, actual: int):
        self.user_id = user_id
        self.show_id = show_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Progress for show {show_id} changed underneath us "
            f"(expected version {expected}, found {actual})"
        )


class NotTrackedError(StoreError):
    """Raised when a show has no progress record for the user."""

    def __init__(self, user_id: str, show_id: int):
        self.user_id = user_id
        self.show_id = show_id
        super().__init__(f"Show {show_id} is not being tracked by {user_id}")


class InvariantViolation(TrackerError):
    """Raised when an operation would break a progress invariant.

    The record passed in is left untouched.
    """

    def __init__(self, message: str, season: Optional[int] = None, episode: Optional[int] = None):
        self.season = season
        self.episode = episode
        super().__init__(message)
