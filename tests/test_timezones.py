"""Tests for wall-clock to instant conversion across DST transitions."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from booking_gate.config import settings
from booking_gate.errors import AmbiguousLocalTimeError
from booking_gate.scheduling.timezones import TimeNormalizer, get_zone

from tests.conftest import TZ, make_appointment

SPRING_FORWARD = date(2025, 3, 9)
FALL_BACK = date(2025, 11, 2)


@pytest.fixture
def normalizer():
    return TimeNormalizer(TZ)


class TestRegularTimes:
    def test_summer_time(self, normalizer):
        assert normalizer.to_instant(date(2025, 7, 8), time(10, 0)) == datetime(
            2025, 7, 8, 14, 0, tzinfo=timezone.utc
        )

    def test_winter_time(self, normalizer):
        assert normalizer.to_instant(date(2025, 1, 15), time(10, 0)) == datetime(
            2025, 1, 15, 15, 0, tzinfo=timezone.utc
        )

    def test_result_is_utc(self, normalizer):
        instant = normalizer.to_instant(date(2025, 7, 8), time(10, 0))
        assert instant.utcoffset() == timedelta(0)

    def test_to_local_round_trip(self, normalizer):
        instant = normalizer.to_instant(date(2025, 7, 8), time(16, 45))
        local = normalizer.to_local(instant)
        assert (local.date(), local.time()) == (date(2025, 7, 8), time(16, 45))


class TestSpringForwardGap:
    def test_skipped_time_detected(self, normalizer):
        assert normalizer.is_nonexistent(SPRING_FORWARD, time(2, 30))
        assert not normalizer.is_nonexistent(SPRING_FORWARD, time(3, 30))

    def test_skipped_time_resolves_to_transition(self, normalizer):
        assert normalizer.to_instant(SPRING_FORWARD, time(2, 30)) == datetime(
            2025, 3, 9, 7, 0, tzinfo=timezone.utc
        )

    def test_every_skipped_time_resolves_to_same_instant(self, normalizer):
        first = normalizer.to_instant(SPRING_FORWARD, time(2, 0))
        last = normalizer.to_instant(SPRING_FORWARD, time(2, 59))
        assert first == last

    def test_resolved_instant_is_three_am_local(self, normalizer):
        local = normalizer.to_local(normalizer.to_instant(SPRING_FORWARD, time(2, 30)))
        assert local.time() == time(3, 0)

    def test_strict_rejects_skipped_time(self, normalizer):
        with pytest.raises(AmbiguousLocalTimeError, match="does not exist"):
            normalizer.to_instant(SPRING_FORWARD, time(2, 30), strict=True)

    def test_hour_long_appointment_at_transition(self, normalizer):
        start = normalizer.to_instant(SPRING_FORWARD, time(2, 0))
        appt = make_appointment(start, duration=60)
        assert appt.end - appt.start == timedelta(hours=1)
        assert normalizer.to_local(appt.end).time() == time(4, 0)

    def test_appointment_spanning_gap_shows_offset_later(self, normalizer):
        start = normalizer.to_instant(SPRING_FORWARD, time(1, 30))
        appt = make_appointment(start, duration=60)
        assert appt.end - appt.start == timedelta(hours=1)
        # one hour of absolute time reads as two on the wall clock
        assert normalizer.to_local(appt.end).time() == time(3, 30)
        assert normalizer.to_local(appt.end).utcoffset() == timedelta(hours=-4)

    def test_resolution_is_logged(self, normalizer, caplog):
        with caplog.at_level("WARNING", logger="booking_gate.scheduling.timezones"):
            normalizer.to_instant(SPRING_FORWARD, time(2, 30))
        assert "Skipped local time" in caplog.text

    def test_short_day(self, normalizer):
        start, end = normalizer.day_bounds(SPRING_FORWARD)
        assert end - start == timedelta(hours=23)


class TestFallBackFold:
    def test_repeated_time_detected(self, normalizer):
        assert normalizer.is_ambiguous(FALL_BACK, time(1, 30))
        assert not normalizer.is_ambiguous(FALL_BACK, time(3, 0))

    def test_repeated_time_resolves_to_first_occurrence(self, normalizer):
        assert normalizer.to_instant(FALL_BACK, time(1, 30)) == datetime(
            2025, 11, 2, 5, 30, tzinfo=timezone.utc
        )

    def test_strict_rejects_repeated_time(self, normalizer):
        with pytest.raises(AmbiguousLocalTimeError, match="occurs twice"):
            normalizer.to_instant(FALL_BACK, time(1, 30), strict=True)

    def test_resolution_is_logged(self, normalizer, caplog):
        with caplog.at_level("WARNING", logger="booking_gate.scheduling.timezones"):
            normalizer.to_instant(FALL_BACK, time(1, 30))
        assert "first occurrence" in caplog.text

    def test_long_day(self, normalizer):
        start, end = normalizer.day_bounds(FALL_BACK)
        assert end - start == timedelta(hours=25)


class TestHelpers:
    def test_at_minutes_rolls_into_next_day(self, normalizer):
        day = date(2025, 7, 8)
        assert normalizer.at_minutes(day, 24 * 60 + 60) == normalizer.to_instant(
            day + timedelta(days=1), time(1, 0)
        )

    def test_local_date_crosses_midnight(self, normalizer):
        instant = datetime(2025, 7, 9, 2, 0, tzinfo=timezone.utc)  # 22:00 on the 8th
        assert normalizer.local_date(instant) == date(2025, 7, 8)

    def test_unknown_timezone_falls_back(self):
        normalizer = TimeNormalizer("Mars/Olympus_Mons")
        assert normalizer.timezone_name == settings.schedule.default_timezone

    def test_none_uses_default(self):
        assert get_zone(None).key == settings.schedule.default_timezone

    def test_other_zone(self):
        normalizer = TimeNormalizer("Europe/London")
        assert normalizer.to_instant(date(2025, 7, 8), time(10, 0)) == datetime(
            2025, 7, 8, 9, 0, tzinfo=timezone.utc
        )
