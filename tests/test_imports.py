"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestSchemaImports:
    def test_import_appointment_schema(self):
        from booking_gate.schemas.appointment_schema import (
            Appointment, AppointmentStatus, INACTIVE_STATUSES,
        )
        assert AppointmentStatus.NO_SHOW == "no_show"
        assert AppointmentStatus.COMPLETED not in INACTIVE_STATUSES

    def test_import_booking_schema(self):
        from booking_gate.schemas.booking_schema import BookingRequest, BookingResult, Slot
        assert BookingRequest is not None

    def test_import_schedule_schema(self):
        from booking_gate.schemas.schedule_schema import Weekday
        assert len(Weekday) == 7

    def test_import_antispam_schema(self):
        from booking_gate.schemas.antispam_schema import GateStats
        assert GateStats().total_requests == 0


class TestPackageImports:
    def test_scheduling_package(self):
        from booking_gate.scheduling import (
            FALLBACK_WINDOW, ReservationLifecycle, ScheduleCalendar,
            SlotAvailabilityEngine, TimeNormalizer, TravelBufferCalculator,
        )
        assert FALLBACK_WINDOW.enabled

    def test_gating_package(self):
        from booking_gate.gating import AntiSpamGate, BlockList, RateLimiter
        assert callable(RateLimiter)

    def test_stores_package(self):
        from booking_gate.stores import AppointmentStore, InMemoryAppointmentStore
        assert issubclass(InMemoryAppointmentStore, AppointmentStore)

    def test_engine(self):
        from booking_gate.engine import BookingEngine
        assert callable(BookingEngine)


class TestErrorTaxonomy:
    def test_status_codes(self):
        from booking_gate.errors import (
            ClientBlocked, InvalidTransitionError, NotFoundError, OutsideWorkingHours,
            RateLimitExceeded, ReservationExpiredError, SlotConflict, ValidationError,
        )
        assert ValidationError.status_code == 400
        assert ClientBlocked.status_code == 403
        assert OutsideWorkingHours.status_code == 403
        assert NotFoundError.status_code == 404
        assert SlotConflict.status_code == 409
        assert InvalidTransitionError.status_code == 409
        assert ReservationExpiredError.status_code == 410
        assert RateLimitExceeded.status_code == 429

    def test_payloads(self):
        from datetime import datetime, timezone

        from booking_gate.errors import RateLimitExceeded, SlotConflict
        reset = datetime(2025, 7, 8, 14, 0, tzinfo=timezone.utc)
        assert RateLimitExceeded("slow down", reset).to_payload() == {
            "error": "slow down", "reset_time": "2025-07-08T14:00:00+00:00",
        }
        assert SlotConflict("taken", "APT-1").to_payload() == {
            "error": "taken", "conflicting_appointment_id": "APT-1", "suggested_times": [],
        }


class TestConfigImport:
    def test_import_config(self):
        from booking_gate.config import settings
        assert settings.schedule.slot_granularity_minutes >= 1
        assert settings.antispam.max_requests_per_window >= 1


class TestConsoleDemo:
    def test_console_demo_imports(self):
        from console_demo import ConsoleDemo
        demo = ConsoleDemo()
        try:
            assert demo.engine.calendar_for("barber-1").normalizer.timezone_name == "America/New_York"
        finally:
            demo.engine.shutdown()
