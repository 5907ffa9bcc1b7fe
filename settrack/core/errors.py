"""Error types raised by the tracking engine and its collaborators."""

from __future__ import annotations


class TrackingError(Exception):
    """Base class for tracking failures."""


class ProgressValidationError(TrackingError, ValueError):
    """Raised when a saved progress snapshot is malformed or does not fit its template."""


class InputParseError(TrackingError, ValueError):
    """Raised when edit text is not a usable number."""


class PersistenceError(TrackingError):
    """Raised when a session record cannot be stored."""


class SessionNotFoundError(PersistenceError):
    """Raised when updating a session whose identity the repository does not know."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Unknown session '{session_id}'")
        self.session_id = session_id


class HistoryLookupError(TrackingError):
    """Raised when past sessions cannot be read for prefill."""
