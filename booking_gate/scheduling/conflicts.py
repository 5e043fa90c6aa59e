"""
Overlap and buffer predicates over half-open time intervals.

All intervals are ``[start, end)``: two intervals that only share a
boundary instant do not overlap.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from booking_gate.schemas.appointment_schema import Appointment


@dataclass(frozen=True)
class Interval:
    """Half-open absolute time interval."""
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"interval end {self.end} precedes start {self.start}")

    @property
    def minutes(self) -> int:
        return int((self.end - self.start) / timedelta(minutes=1))

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end

    def covers(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


IntervalLike = Union[Interval, Appointment]


def as_interval(value: IntervalLike) -> Interval:
    """Effective occupied interval of an appointment, or the interval itself."""
    if isinstance(value, Appointment):
        return Interval(value.start, value.end)
    return value


def overlaps(a: IntervalLike, b: IntervalLike) -> bool:
    first, second = as_interval(a), as_interval(b)
    return first.start < second.end and first.end > second.start


def gap_minutes(a: IntervalLike, b: IntervalLike) -> float:
    """Minutes between the earlier interval's end and the later one's start."""
    first, second = sorted((as_interval(a), as_interval(b)), key=lambda i: i.start)
    return (second.start - first.end) / timedelta(minutes=1)


def has_buffer(a: IntervalLike, b: IntervalLike, min_minutes: int) -> bool:
    """True iff the two intervals are separated by at least ``min_minutes``."""
    if overlaps(a, b):
        return False
    return gap_minutes(a, b) >= min_minutes


def active_appointments(
    appointments: Iterable[Appointment], now: Optional[datetime] = None
) -> list[Appointment]:
    """
    Drop appointments that can never block a slot.

    Cancelled, expired and no-show rows are always dropped. When ``now`` is
    given, pending rows already past their TTL are dropped as well, so a
    lapsed hold stops blocking even before the sweep has run.
    """
    return [
        appt for appt in appointments
        if appt.is_active and not (now is not None and appt.is_lapsed(now))
    ]


def find_conflicts(
    candidate: IntervalLike,
    existing: Iterable[Appointment],
    now: Optional[datetime] = None,
    exclude_id: Optional[str] = None,
) -> list[Appointment]:
    """Active appointments overlapping the candidate, in encounter order."""
    interval = as_interval(candidate)
    if exclude_id is None and isinstance(candidate, Appointment):
        exclude_id = candidate.id
    return [
        appt for appt in active_appointments(existing, now)
        if appt.id != exclude_id and overlaps(interval, appt)
    ]
