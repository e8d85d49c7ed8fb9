"""
Errors raised by the resource tracker.

Each error carries a stable code for programmatic handling.
"""

from typing import Optional


class TrackerError(Exception):
    """
    Base class for tracker failures.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    code = "TRACKER_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization."""
        return {
            "error": "tracker_error",
            "code": self.code,
            "message": self.message,
        }


class SerializationError(TrackerError):
    """Additional fields could not be encoded, or a stored row could not be decoded."""

    code = "SERIALIZATION_FAILED"


class IntegrityViolation(TrackerError):
    """More than one row exists for a key that must be unique."""

    code = "INTEGRITY_VIOLATION"


class BackendUnavailable(TrackerError):
    """The database could not be reached or rejected a statement."""

    code = "BACKEND_UNAVAILABLE"
