"""Booking request, result and slot data models."""

import datetime as dt
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from booking_gate.schemas.appointment_schema import Appointment
from booking_gate.utils import is_valid_phone, normalize_phone

MIN_NAME_LENGTH = 2
MAX_MESSAGE_LENGTH = 500
# Leaves room for day-window arithmetic in UTC near the end of the calendar.
LATEST_BOOKING_DATE = dt.date.max - dt.timedelta(days=7)


class ServiceItem(BaseModel):
    """One entry in an owner's service catalog."""
    id: str
    name: str
    duration_minutes: int = Field(gt=0)
    price: Optional[str] = None


class BookingRequest(BaseModel):
    """Validated public booking request."""
    owner_id: str = Field(min_length=1)
    phone: str
    client_name: str
    date: dt.date
    time: dt.time
    service_ids: list[str] = Field(min_length=1)
    message: Optional[str] = Field(default=None, max_length=MAX_MESSAGE_LENGTH)
    address: Optional[str] = None
    travel: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        if not is_valid_phone(value):
            raise ValueError("phone number must contain 7 to 15 digits")
        return normalize_phone(value)

    @field_validator("date")
    @classmethod
    def _check_date_range(cls, value: dt.date) -> dt.date:
        if value > LATEST_BOOKING_DATE:
            raise ValueError(f"date must be on or before {LATEST_BOOKING_DATE.isoformat()}")
        return value

    @field_validator("client_name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < MIN_NAME_LENGTH:
            raise ValueError(f"client name must be at least {MIN_NAME_LENGTH} characters")
        return value

    @field_validator("address")
    @classmethod
    def _blank_address_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def needs_travel(self) -> bool:
        """Travel applies only with an address; an explicit flag can opt out."""
        if self.address is None:
            return False
        return True if self.travel is None else self.travel


class SlotBlockReason(str, Enum):
    DAY_DISABLED = "day_disabled"
    OUTSIDE_HOURS = "outside_hours"
    BREAK = "break"
    OCCUPIED = "occupied"


class Slot(BaseModel):
    """Single fixed-width slot in the availability view."""
    start: dt.datetime
    end: dt.datetime
    blocked: bool = False
    reason: Optional[SlotBlockReason] = None
    label: Optional[str] = None
    appointment_id: Optional[str] = None


class RateLimitInfo(BaseModel):
    remaining_requests: int
    reset_time: dt.datetime


class BookingResult(BaseModel):
    """Outcome of a booking attempt, shaped for the HTTP collaborator."""
    success: bool
    status_code: int
    message: str = ""
    appointment: Optional[Appointment] = None
    rate_limit: Optional[RateLimitInfo] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    errors: list[dict[str, Any]] = Field(default_factory=list)
    reset_time: Optional[dt.datetime] = None
    conflicting_appointment_id: Optional[str] = None
    suggested_times: list[dt.datetime] = Field(default_factory=list)
