"""Tests for request and appointment model validation."""

from datetime import date, datetime, time, timedelta

import pytest
from pydantic import ValidationError

from booking_gate.schemas.appointment_schema import Appointment, AppointmentStatus
from booking_gate.schemas.booking_schema import BookingRequest

from tests.conftest import DAY, NOW, local, make_appointment, make_request


class TestBookingRequest:
    def test_parses_date_and_time(self):
        request = BookingRequest.model_validate(make_request())
        assert request.date == date(2025, 7, 8)
        assert request.time == time(10, 0)

    def test_normalizes_phone(self):
        assert BookingRequest.model_validate(make_request()).phone == "5551234567"

    def test_rejects_short_phone(self):
        with pytest.raises(ValidationError, match="7 to 15 digits"):
            BookingRequest.model_validate(make_request(phone="555-12"))

    def test_rejects_date_at_end_of_calendar(self):
        with pytest.raises(ValidationError, match="on or before"):
            BookingRequest.model_validate(make_request(date="9999-12-31"))

    def test_strips_name(self):
        assert BookingRequest.model_validate(make_request(client_name="  Jo ")).client_name == "Jo"

    def test_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            BookingRequest.model_validate(make_request(client_name=" J "))

    def test_requires_service(self):
        with pytest.raises(ValidationError):
            BookingRequest.model_validate(make_request(service_ids=[]))

    def test_rejects_long_message(self):
        with pytest.raises(ValidationError):
            BookingRequest.model_validate(make_request(message="x" * 501))

    def test_needs_travel_defaults_on_with_address(self):
        assert BookingRequest.model_validate(make_request(address="1 Main St")).needs_travel

    def test_needs_travel_opt_out(self):
        request = BookingRequest.model_validate(make_request(address="1 Main St", travel=False))
        assert not request.needs_travel

    def test_no_address_never_travels(self):
        assert not BookingRequest.model_validate(make_request(travel=True)).needs_travel


class TestAppointment:
    def test_end_includes_travel_and_buffer(self):
        appt = make_appointment(local(DAY, 10), duration=30, travel=15, buffer=5)
        assert appt.service_end == local(DAY, 10, 30)
        assert appt.end == local(DAY, 10, 50)

    def test_expires_at(self):
        appt = make_appointment(local(DAY, 10), created_at=NOW, ttl_minutes=30)
        assert appt.expires_at == NOW + timedelta(minutes=30)

    def test_is_lapsed_only_pending(self):
        later = NOW + timedelta(hours=1)
        assert make_appointment(local(DAY, 10)).is_lapsed(later)
        confirmed = make_appointment(local(DAY, 10), status=AppointmentStatus.CONFIRMED)
        assert not confirmed.is_lapsed(later)

    def test_naive_start_rejected(self):
        with pytest.raises(ValidationError, match="timezone-aware"):
            Appointment(
                owner_id="o", client_id="c", phone="5551234567",
                start=datetime(2025, 7, 8, 10, 0), duration_minutes=30,
            )

    def test_zero_duration_rejected(self):
        with pytest.raises(ValidationError):
            make_appointment(local(DAY, 10), duration=0)

    def test_generated_ids_unique(self):
        assert make_appointment(local(DAY, 10)).id != make_appointment(local(DAY, 10)).id

    def test_terminal_flags(self):
        done = make_appointment(local(DAY, 10), status=AppointmentStatus.COMPLETED)
        assert done.is_terminal
        assert done.is_active
