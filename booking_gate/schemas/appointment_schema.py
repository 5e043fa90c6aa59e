"""Appointment records and their status enum."""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from booking_gate.config import settings


class AppointmentStatus(str, Enum):
    """All possible states in a reservation lifecycle."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    NO_SHOW = "no_show"
    COMPLETED = "completed"


# Statuses that never block a slot.
INACTIVE_STATUSES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.EXPIRED,
    AppointmentStatus.NO_SHOW,
})

TERMINAL_STATUSES = INACTIVE_STATUSES | {AppointmentStatus.COMPLETED}


def _new_appointment_id() -> str:
    return f"APT-{uuid.uuid4().hex[:8].upper()}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusChange(BaseModel):
    """Audit entry appended on every status change."""
    status: AppointmentStatus
    at: datetime
    actor: Optional[str] = None
    reason: Optional[str] = None


class Appointment(BaseModel):
    """A booked (or tentatively booked) interval on an owner's calendar."""

    id: str = Field(default_factory=_new_appointment_id)
    owner_id: str
    client_id: str
    phone: str
    client_name: str = ""
    start: datetime
    duration_minutes: int = Field(gt=0)
    travel_minutes: int = Field(default=0, ge=0)
    buffer_minutes: int = Field(default=0, ge=0)
    travel_provisional: bool = False
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime = Field(default_factory=_utcnow)
    ttl_minutes: int = Field(default=settings.schedule.pending_ttl_minutes, gt=0)
    address: Optional[str] = None
    service_ids: list[str] = Field(default_factory=list)
    message: Optional[str] = None
    history: list[StatusChange] = Field(default_factory=list)

    @field_validator("start", "created_at")
    @classmethod
    def _require_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("timestamps must be timezone-aware")
        return value

    @property
    def service_end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    @property
    def end(self) -> datetime:
        """End of the effective occupied interval (service + travel + buffer)."""
        return self.start + timedelta(
            minutes=self.duration_minutes + self.travel_minutes + self.buffer_minutes
        )

    @property
    def expires_at(self) -> datetime:
        return self.created_at + timedelta(minutes=self.ttl_minutes)

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_lapsed(self, now: datetime) -> bool:
        """Pending and past its TTL, whether or not a sweep has run yet."""
        return self.status == AppointmentStatus.PENDING and now > self.expires_at
