from booking_gate.scheduling.calendar import FALLBACK_WINDOW, ScheduleCalendar
from booking_gate.scheduling.conflicts import (
    Interval,
    active_appointments,
    find_conflicts,
    has_buffer,
    overlaps,
)
from booking_gate.scheduling.lifecycle import LifecycleTrigger, ReservationLifecycle
from booking_gate.scheduling.slots import SlotAvailabilityEngine
from booking_gate.scheduling.timezones import TimeNormalizer
from booking_gate.scheduling.travel import (
    TravelBufferCalculator,
    TravelEstimate,
    TravelTimeLookup,
    travel_origin,
)

__all__ = [
    "FALLBACK_WINDOW",
    "ScheduleCalendar",
    "Interval",
    "active_appointments",
    "find_conflicts",
    "has_buffer",
    "overlaps",
    "LifecycleTrigger",
    "ReservationLifecycle",
    "SlotAvailabilityEngine",
    "TimeNormalizer",
    "TravelBufferCalculator",
    "TravelEstimate",
    "TravelTimeLookup",
    "travel_origin",
]
