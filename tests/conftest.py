"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

import pytest

from booking_gate.engine import BookingEngine
from booking_gate.scheduling.calendar import ScheduleCalendar
from booking_gate.scheduling.lifecycle import ReservationLifecycle
from booking_gate.scheduling.travel import TravelTimeLookup
from booking_gate.schemas.appointment_schema import Appointment, AppointmentStatus
from booking_gate.schemas.schedule_schema import BreakInterval, OwnerProfile, ScheduleDay, Weekday
from booking_gate.stores.memory import (
    InMemoryAppointmentStore,
    InMemoryBlockStore,
    InMemoryOwnerStore,
    InMemoryRateLimitStore,
)
from booking_gate.stores.services import SAMPLE_CATALOG

TZ = "America/New_York"
OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"
HOME_BASE = "12 Bedford Ave, Brooklyn, NY"

# Monday 2025-07-07 10:00 EDT; bookings go on Tuesday 2025-07-08.
NOW = datetime(2025, 7, 7, 14, 0, tzinfo=timezone.utc)
DAY = date(2025, 7, 8)
SUNDAY = date(2025, 7, 13)


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def local(day: date, hour: int, minute: int = 0, tz: str = TZ) -> datetime:
    """UTC instant of a wall-clock time in ``tz``."""
    return datetime.combine(day, time(hour, minute), tzinfo=ZoneInfo(tz)).astimezone(timezone.utc)


def make_schedule() -> dict[Weekday, ScheduleDay]:
    weekday = ScheduleDay(
        start=time(9, 0), end=time(17, 0),
        breaks=[BreakInterval(start=time(12, 0), end=time(13, 0), label="Lunch")],
    )
    return {
        **{day: weekday for day in list(Weekday)[:5]},
        Weekday.SATURDAY: ScheduleDay(start=time(10, 0), end=time(14, 0)),
        Weekday.SUNDAY: ScheduleDay(enabled=False, start=time(9, 0), end=time(17, 0)),
    }


def make_profile(owner_id: str = OWNER_ID, **overrides) -> OwnerProfile:
    fields = {
        "owner_id": owner_id,
        "timezone": TZ,
        "schedule": make_schedule(),
        "home_base_address": HOME_BASE,
        "travel_enabled": False,
        "grace_minutes": 5,
        "default_travel_minutes": 15,
    }
    fields.update(overrides)
    return OwnerProfile(**fields)


def make_appointment(
    start: datetime,
    duration: int = 30,
    status: AppointmentStatus = AppointmentStatus.PENDING,
    owner_id: str = OWNER_ID,
    created_at: datetime = NOW,
    travel: int = 0,
    buffer: int = 0,
    address: Optional[str] = None,
    **kwargs,
) -> Appointment:
    """Helper to create an Appointment with sensible defaults."""
    return Appointment(
        owner_id=owner_id,
        client_id=kwargs.pop("client_id", "5551234567"),
        phone=kwargs.pop("phone", "5551234567"),
        client_name=kwargs.pop("client_name", "Jane Doe"),
        start=start,
        duration_minutes=duration,
        travel_minutes=travel,
        buffer_minutes=buffer,
        status=status,
        created_at=created_at,
        ttl_minutes=kwargs.pop("ttl_minutes", 30),
        address=address,
        **kwargs,
    )


def make_request(**overrides) -> dict:
    """Raw booking request payload as the HTTP layer would pass it."""
    payload = {
        "owner_id": OWNER_ID,
        "phone": "(555) 123-4567",
        "client_name": "Jane Doe",
        "date": DAY.isoformat(),
        "time": "10:00",
        "service_ids": ["haircut"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def appointment_store():
    return InMemoryAppointmentStore()


@pytest.fixture
def rate_limit_store():
    return InMemoryRateLimitStore()


@pytest.fixture
def block_store():
    return InMemoryBlockStore()


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def owner_store(profile):
    store = InMemoryOwnerStore()
    store.save_profile(profile)
    store.save_services(OWNER_ID, SAMPLE_CATALOG)
    store.save_profile(make_profile(OTHER_OWNER_ID))
    store.save_services(OTHER_OWNER_ID, SAMPLE_CATALOG)
    return store


@pytest.fixture
def calendar(profile):
    return ScheduleCalendar.for_owner(profile)


@pytest.fixture
def lifecycle(appointment_store, clock):
    return ReservationLifecycle(appointment_store, clock)


def build_engine(
    appointment_store,
    rate_limit_store,
    block_store,
    owner_store,
    clock,
    provider=None,
    timeout_sec: float = 1.0,
) -> BookingEngine:
    return BookingEngine(
        appointments=appointment_store,
        rate_limits=rate_limit_store,
        blocks=block_store,
        owners=owner_store,
        travel_lookup=TravelTimeLookup(provider, default_minutes=15, timeout_sec=timeout_sec),
        clock=clock,
        suggestions_limit=3,
    )


@pytest.fixture
def engine(appointment_store, rate_limit_store, block_store, owner_store, clock):
    eng = build_engine(appointment_store, rate_limit_store, block_store, owner_store, clock)
    yield eng
    eng.shutdown()
