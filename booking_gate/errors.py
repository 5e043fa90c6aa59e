"""
Error taxonomy for booking decisions.

Every per-request outcome that is not a success is one of these exceptions.
Each carries the HTTP-style status code the collaborator should surface, so
the engine can turn any of them into a BookingResult without a lookup table.
"""

from datetime import datetime
from typing import Any, Optional


class BookingError(Exception):
    """Base class for all booking-time denials and lifecycle errors."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(BookingError):
    """Missing or malformed request fields. Never retried."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "errors": self.errors}


class NotFoundError(BookingError):
    """Unknown owner or appointment."""

    status_code = 404


class RateLimitExceeded(BookingError):
    """Phone number used up its booking requests for the current window."""

    status_code = 429

    def __init__(self, message: str, reset_time: datetime) -> None:
        super().__init__(message)
        self.reset_time = reset_time

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "reset_time": self.reset_time.isoformat()}


class ClientBlocked(BookingError):
    """Owner has blocked this phone number."""

    status_code = 403


class OutsideWorkingHours(BookingError):
    """Requested interval is not inside the owner's open hours."""

    status_code = 403


class SlotConflict(BookingError):
    """Requested interval overlaps an active appointment."""

    status_code = 409

    def __init__(
        self,
        message: str,
        conflicting_appointment_id: Optional[str] = None,
        suggested_times: Optional[list[datetime]] = None,
    ) -> None:
        super().__init__(message)
        self.conflicting_appointment_id = conflicting_appointment_id
        self.suggested_times = suggested_times or []

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "conflicting_appointment_id": self.conflicting_appointment_id,
            "suggested_times": [t.isoformat() for t in self.suggested_times],
        }


class InvalidTransitionError(BookingError):
    """Raised when a lifecycle transition is not valid from the current status."""

    status_code = 409


class ReservationExpiredError(BookingError):
    """Pending reservation outlived its TTL before confirmation."""

    status_code = 410


class TravelTimeUnavailable(Exception):
    """Travel-time provider could not produce an estimate.

    Recovered locally by the travel lookup; never surfaced as a booking failure.
    """


class AmbiguousLocalTimeError(Exception):
    """Local wall-clock time is skipped or repeated by a DST transition."""


class ConcurrentModificationError(Exception):
    """Owner calendar changed between validation and insert."""
