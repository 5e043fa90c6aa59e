"""
Fixed-granularity availability view for one owner-day.

Slots step through the display range (working hours widened to show
out-of-hours appointments). Each slot is blocked for the first matching
reason, checked in this order: disabled day, outside working hours, break,
occupied. Whenever an active appointment overlaps a slot, its id is
attached even if another reason already blocks it.

Reads here are lock-free; a slot may turn out to be taken by the time a
booking for it is attempted.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from booking_gate.config import settings
from booking_gate.scheduling.calendar import ScheduleCalendar
from booking_gate.scheduling.conflicts import Interval, active_appointments, find_conflicts
from booking_gate.schemas.appointment_schema import Appointment
from booking_gate.schemas.booking_schema import Slot, SlotBlockReason

logger = logging.getLogger(__name__)


class SlotAvailabilityEngine:
    """Builds the slot grid and finds alternative start times."""

    def __init__(self, granularity_minutes: int = settings.schedule.slot_granularity_minutes) -> None:
        if granularity_minutes <= 0:
            raise ValueError(f"granularity must be positive, got {granularity_minutes}")
        self.granularity_minutes = granularity_minutes

    def _step(self, granularity: Optional[int]) -> timedelta:
        minutes = self.granularity_minutes if granularity is None else granularity
        if minutes <= 0:
            raise ValueError(f"granularity must be positive, got {minutes}")
        return timedelta(minutes=minutes)

    def generate_slots(
        self,
        day: date,
        granularity: Optional[int],
        existing: Iterable[Appointment],
        calendar: ScheduleCalendar,
        now: Optional[datetime] = None,
    ) -> list[Slot]:
        """
        Availability grid for ``day`` in the calendar's timezone.

        Args:
            day: Local calendar date.
            granularity: Slot width in minutes; ``None`` uses the engine default.
            existing: The owner's appointments around ``day``. Inactive rows
                are ignored, as are lapsed pending rows when ``now`` is given.
            calendar: The owner's working-hours calendar.
            now: Current instant, used to ignore pending holds past their TTL.

        Raises:
            ValueError: If granularity is not positive.
        """
        step = self._step(granularity)
        active = active_appointments(existing, now)

        display = calendar.effective_display_range(day, active)
        enabled = calendar.is_enabled(day)
        working = calendar.working_interval(day)
        breaks = calendar.break_intervals(day)

        slots: list[Slot] = []
        cursor = display.start
        while cursor < display.end:
            interval = Interval(cursor, min(cursor + step, display.end))
            reason: Optional[SlotBlockReason] = None
            label: Optional[str] = None

            if not enabled:
                reason = SlotBlockReason.DAY_DISABLED
            elif working is None or not working.contains(interval):
                reason = SlotBlockReason.OUTSIDE_HOURS
            else:
                for brk, brk_label in breaks:
                    if brk.start < interval.end and brk.end > interval.start:
                        reason, label = SlotBlockReason.BREAK, brk_label
                        break

            conflicts = find_conflicts(interval, active)
            appointment_id = conflicts[0].id if conflicts else None
            if reason is None and conflicts:
                reason = SlotBlockReason.OCCUPIED

            slots.append(Slot(
                start=interval.start,
                end=interval.end,
                blocked=reason is not None,
                reason=reason,
                label=label,
                appointment_id=appointment_id,
            ))
            cursor = interval.end

        logger.debug(
            "Generated %d slots for %s (%d blocked)",
            len(slots), day.isoformat(), sum(1 for s in slots if s.blocked),
        )
        return slots

    def suggest_start_times(
        self,
        day: date,
        total_minutes: int,
        service_minutes: int,
        existing: Iterable[Appointment],
        calendar: ScheduleCalendar,
        limit: int = settings.schedule.suggested_times_limit,
        granularity: Optional[int] = None,
        now: Optional[datetime] = None,
        near: Optional[datetime] = None,
    ) -> list[datetime]:
        """
        Bookable start times on ``day`` for a request of the given length.

        A start qualifies when the service itself fits inside one open
        interval and the whole occupied interval (service, travel, grace)
        overlaps no active appointment. Starts at or after ``near`` come
        first, then earlier ones closest first. Starts before ``now`` are
        never offered.
        """
        if limit <= 0:
            return []
        step = self._step(granularity)
        active = active_appointments(existing, now)

        candidates: list[datetime] = []
        for open_interval in calendar.open_intervals_for(day):
            cursor = open_interval.start
            while cursor + timedelta(minutes=service_minutes) <= open_interval.end:
                occupied = Interval(cursor, cursor + timedelta(minutes=total_minutes))
                if (now is None or cursor >= now) and not find_conflicts(occupied, active):
                    candidates.append(cursor)
                cursor += step

        if near is not None:
            later = [c for c in candidates if c >= near]
            earlier = sorted((c for c in candidates if c < near), reverse=True)
            candidates = later + earlier
        return candidates[:limit]
