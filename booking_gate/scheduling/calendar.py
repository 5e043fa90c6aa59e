"""
Per-weekday working hours resolved into absolute open intervals.

The calendar answers two different questions and keeps them apart:

* ``open_intervals_for`` is strict and drives booking acceptance;
* ``effective_display_range`` is permissive and only widens the
  availability view so out-of-hours appointments stay visible.

A weekday with no configuration uses ``FALLBACK_WINDOW`` instead of
failing closed.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from booking_gate.config import settings
from booking_gate.scheduling.conflicts import Interval
from booking_gate.scheduling.timezones import TimeNormalizer
from booking_gate.schemas.appointment_schema import Appointment
from booking_gate.schemas.schedule_schema import OwnerProfile, ScheduleDay, Weekday
from booking_gate.utils import minutes_of, parse_clock

logger = logging.getLogger(__name__)

FALLBACK_WINDOW = ScheduleDay(
    enabled=True,
    start=parse_clock(settings.schedule.fallback_day_start),
    end=parse_clock(settings.schedule.fallback_day_end),
)


class ScheduleCalendar:
    """Working-hours view of one owner's week in the owner's timezone."""

    def __init__(
        self,
        schedule: Optional[dict[Weekday, ScheduleDay]] = None,
        timezone_name: Optional[str] = None,
    ) -> None:
        self.schedule: dict[Weekday, ScheduleDay] = dict(schedule or {})
        self.normalizer = TimeNormalizer(timezone_name)

    @classmethod
    def for_owner(cls, profile: OwnerProfile) -> "ScheduleCalendar":
        return cls(profile.schedule, profile.timezone)

    def day_config(self, day: date) -> ScheduleDay:
        weekday = Weekday.of(day)
        config = self.schedule.get(weekday)
        if config is None:
            logger.debug("No hours configured for %s, using fallback window", weekday.value)
            return FALLBACK_WINDOW
        return config

    def is_enabled(self, day: date) -> bool:
        return self.day_config(day).enabled

    def _at(self, day: date, value: time) -> datetime:
        return self.normalizer.to_instant(day, value)

    def working_interval(self, day: date) -> Optional[Interval]:
        config = self.day_config(day)
        if not config.enabled:
            return None
        return Interval(self._at(day, config.start), self._at(day, config.end))

    def break_intervals(self, day: date) -> list[tuple[Interval, str]]:
        config = self.day_config(day)
        if not config.enabled:
            return []
        return sorted(
            (
                (Interval(self._at(day, brk.start), self._at(day, brk.end)), brk.label)
                for brk in config.breaks
            ),
            key=lambda item: item[0].start,
        )

    def open_intervals_for(self, day: date) -> list[Interval]:
        """Working interval minus every break; empty for a disabled day."""
        working = self.working_interval(day)
        if working is None:
            return []

        intervals: list[Interval] = []
        cursor = working.start
        for brk, _label in self.break_intervals(day):
            if brk.start > cursor:
                intervals.append(Interval(cursor, brk.start))
            cursor = max(cursor, brk.end)
        if cursor < working.end:
            intervals.append(Interval(cursor, working.end))
        return intervals

    def break_at(self, instant: datetime) -> Optional[tuple[Interval, str]]:
        """The break covering ``instant`` and its label, if any."""
        day = self.normalizer.local_date(instant)
        for brk, label in self.break_intervals(day):
            if brk.covers(instant):
                return brk, label
        return None

    def break_label(self, interval: Interval) -> Optional[str]:
        """Label of the first break the interval touches, if any."""
        day = self.normalizer.local_date(interval.start)
        for brk, label in self.break_intervals(day):
            if brk.start < interval.end and brk.end > interval.start:
                return label
        return None

    def contains(self, interval: Interval) -> bool:
        """Whether the interval lies entirely inside one open interval."""
        day = self.normalizer.local_date(interval.start)
        return any(open_.contains(interval) for open_ in self.open_intervals_for(day))

    def effective_display_range(
        self, day: date, appointments: Iterable[Appointment] = ()
    ) -> Interval:
        """
        Display window for ``day``, widened to show out-of-hours appointments.

        Starts from the configured hours (or the fallback window when the
        day is disabled) and expands down to the start hour of any earlier
        appointment and up to the hour boundary after any later one.
        """
        config = self.day_config(day)
        base = config if config.enabled else FALLBACK_WINDOW
        range_start = self.normalizer.at_minutes(day, minutes_of(base.start))
        range_end = self.normalizer.at_minutes(day, minutes_of(base.end))

        day_start, day_end = self.normalizer.day_bounds(day)
        for appt in appointments:
            if not day_start <= appt.start < day_end:
                continue
            local_start = self.normalizer.to_local(appt.start)
            hour_floor = self._at(day, time(local_start.hour))
            range_start = min(range_start, hour_floor)

            local_end = self.normalizer.to_local(appt.end)
            end_floor = self._at(local_end.date(), time(local_end.hour))
            hour_ceil = end_floor if end_floor == appt.end else end_floor + timedelta(hours=1)
            range_end = max(range_end, hour_ceil)

        return Interval(range_start, range_end)
