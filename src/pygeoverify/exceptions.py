"""Custom exception hierarchy for pygeoverify.

The tracker raises these internally and converts them into result
envelopes at its operation boundary; only :class:`GeoVerifyConfigError`
reaches callers directly.
"""

from __future__ import annotations

from typing import ClassVar


class GeoVerifyError(Exception):
    """Base exception for all pygeoverify errors."""


class GeoVerifyConfigError(GeoVerifyError):
    """Invalid or missing configuration."""


class InvalidSampleError(GeoVerifyError):
    """A location fix is malformed or its coordinates are out of range."""

    code: ClassVar[str] = "INVALID_LOCATION"

    def __init__(self, message: str, *, reason: str = "") -> None:
        self.reason = reason
        super().__init__(message)


class SessionError(GeoVerifyError):
    """Operation rejected because of the state of a subject's session."""

    code: ClassVar[str] = "INTERNAL_ERROR"

    def __init__(self, message: str, *, subject_id: str = "") -> None:
        self.subject_id = subject_id
        super().__init__(message)


class AlreadyTrackingError(SessionError):
    """The subject already has an active session."""

    code = "ALREADY_TRACKING"


class NoSessionError(SessionError):
    """No session is stored for the subject."""

    code = "NO_SESSION"


class SessionInactiveError(SessionError):
    """The subject's session has already been closed."""

    code = "SESSION_INACTIVE"


class CapacityExceededError(SessionError):
    """Store is full and hard capacity enforcement is enabled.

    Only raised when ``enforce_session_capacity`` is set and no inactive
    session could be evicted to make room.
    """

    code = "CAPACITY_EXCEEDED"
