"""
Wall-clock to absolute-instant conversion for owner timezones.

All downstream arithmetic runs on UTC instants; this is the only module
that reasons about local wall-clock ambiguity. DST is resolved
deterministically:

* a repeated local time (fall-back) resolves to its first occurrence;
* a skipped local time (spring-forward) resolves to the first valid
  instant after the gap, i.e. the transition itself.

Usage:
    tn = TimeNormalizer("America/New_York")
    start = tn.to_instant(date(2025, 3, 9), time(2, 30))  # 07:00 UTC
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_gate.config import settings
from booking_gate.errors import AmbiguousLocalTimeError

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def get_zone(name: Optional[str]) -> ZoneInfo:
    """Resolve a timezone name, falling back to the configured default."""
    target = name or settings.schedule.default_timezone
    try:
        return ZoneInfo(target)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown timezone %r, using %s", target, settings.schedule.default_timezone
        )
        return ZoneInfo(settings.schedule.default_timezone)


def _wall_clock(instant: datetime, tz: ZoneInfo) -> datetime:
    # via UTC: astimezone() is a no-op when the tzinfo is already ``tz``
    return instant.astimezone(timezone.utc).astimezone(tz).replace(tzinfo=None)


def _gap_end(naive: datetime, tz: ZoneInfo) -> datetime:
    """First valid UTC instant after the spring-forward gap containing ``naive``."""
    before = naive.replace(tzinfo=tz, fold=0).utcoffset()
    after = naive.replace(tzinfo=tz, fold=1).utcoffset()
    lo = int((naive - after).replace(tzinfo=timezone.utc).timestamp())
    hi = int((naive - before).replace(tzinfo=timezone.utc).timestamp())
    # offset(lo) == before, offset(hi) == after; the transition lies in between
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if datetime.fromtimestamp(mid, tz).utcoffset() == before:
            lo = mid
        else:
            hi = mid
    return datetime.fromtimestamp(hi, timezone.utc)


class TimeNormalizer:
    """Converts wall-clock times in one timezone into absolute instants."""

    def __init__(self, timezone_name: Optional[str] = None) -> None:
        self.zone = get_zone(timezone_name)

    @property
    def timezone_name(self) -> str:
        return self.zone.key

    def is_nonexistent(self, day: date, time_of_day: time) -> bool:
        naive = datetime.combine(day, time_of_day)
        return _wall_clock(naive.replace(tzinfo=self.zone, fold=0), self.zone) != naive

    def is_ambiguous(self, day: date, time_of_day: time) -> bool:
        if self.is_nonexistent(day, time_of_day):
            return False
        naive = datetime.combine(day, time_of_day)
        first = naive.replace(tzinfo=self.zone, fold=0).utcoffset()
        second = naive.replace(tzinfo=self.zone, fold=1).utcoffset()
        return first != second

    def to_instant(self, day: date, time_of_day: time, strict: bool = False) -> datetime:
        """
        Convert a local date and time to a UTC instant.

        Args:
            day: Local calendar date.
            time_of_day: Local wall-clock time.
            strict: Raise instead of resolving skipped or repeated times.

        Raises:
            AmbiguousLocalTimeError: Only when ``strict`` is set and the
                local time falls in a DST gap or fold.
        """
        naive = datetime.combine(day, time_of_day.replace(tzinfo=None))
        if self.is_nonexistent(day, time_of_day):
            if strict:
                raise AmbiguousLocalTimeError(
                    f"{naive.isoformat()} does not exist in {self.timezone_name}"
                )
            resolved = _gap_end(naive, self.zone)
            logger.warning(
                "Skipped local time %s in %s resolved to %s",
                naive.isoformat(), self.timezone_name, resolved.isoformat(),
            )
            return resolved
        if self.is_ambiguous(day, time_of_day):
            if strict:
                raise AmbiguousLocalTimeError(
                    f"{naive.isoformat()} occurs twice in {self.timezone_name}"
                )
            logger.warning(
                "Repeated local time %s in %s resolved to its first occurrence",
                naive.isoformat(), self.timezone_name,
            )
        return naive.replace(tzinfo=self.zone, fold=0).astimezone(timezone.utc)

    def at_minutes(self, day: date, minutes: int) -> datetime:
        """Instant for ``minutes`` past local midnight of ``day``; rolls into later days."""
        days, remainder = divmod(minutes, MINUTES_PER_DAY)
        return self.to_instant(
            day + timedelta(days=days), time(remainder // 60, remainder % 60)
        )

    def to_local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.zone)

    def local_date(self, instant: datetime) -> date:
        return self.to_local(instant).date()

    def day_bounds(self, day: date) -> tuple[datetime, datetime]:
        """UTC instants of local midnight for ``day`` and the day after."""
        return (
            self.to_instant(day, time(0, 0)),
            self.to_instant(day + timedelta(days=1), time(0, 0)),
        )
