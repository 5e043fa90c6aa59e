"""Tests for owner-facing booking summaries."""

from datetime import datetime

from booking_gate.messages import build_alternative_times_message, build_booking_request_message
from booking_gate.stores.services import SAMPLE_CATALOG

from tests.conftest import DAY, local, make_appointment

LOCAL_START = datetime(2025, 7, 8, 14, 0)
HAIRCUT = [SAMPLE_CATALOG[0]]


class TestBookingRequestMessage:
    def test_travel_no(self):
        appt = make_appointment(local(DAY, 14))
        text = build_booking_request_message(appt, HAIRCUT, LOCAL_START, travel_applies=False)
        assert "Travel: No" in text
        assert "Travel Time" not in text

    def test_travel_flag_without_address_is_no(self):
        appt = make_appointment(local(DAY, 14))
        text = build_booking_request_message(appt, HAIRCUT, LOCAL_START, travel_applies=True)
        assert "Travel: No" in text

    def test_travel_yes_with_address(self):
        appt = make_appointment(
            local(DAY, 14), address="456 Oak Street, Brooklyn, NY 11201", travel=22
        )
        text = build_booking_request_message(appt, HAIRCUT, LOCAL_START, travel_applies=True)
        assert "Travel: Yes - 456 Oak Street, Brooklyn, NY 11201" in text
        assert "Travel Time: 22 min" in text
        assert "(estimated)" not in text

    def test_provisional_marker(self):
        appt = make_appointment(
            local(DAY, 14), address="1 Main St", travel=15, travel_provisional=True
        )
        text = build_booking_request_message(appt, HAIRCUT, LOCAL_START, travel_applies=True)
        assert "Travel Time: 15 min (estimated)" in text

    def test_header_fields(self):
        appt = make_appointment(local(DAY, 14), message="Looking forward to it")
        text = build_booking_request_message(appt, SAMPLE_CATALOG[:2], LOCAL_START, False)
        assert text.splitlines()[0] == "New booking request from Jane Doe"
        assert "Date: 2025-07-08" in text
        assert "Time: 14:00" in text
        assert "Services: Haircut, Beard Trim" in text
        assert "Phone: 5551234567" in text
        assert "Message: Looking forward to it" in text

    def test_message_omitted_when_empty(self):
        appt = make_appointment(local(DAY, 14))
        text = build_booking_request_message(appt, HAIRCUT, LOCAL_START, False)
        assert "Message:" not in text


class TestAlternativeTimesMessage:
    def test_lists_alternatives(self):
        text = build_alternative_times_message(
            LOCAL_START, [datetime(2025, 7, 8, 15, 0), datetime(2025, 7, 8, 15, 30)]
        )
        assert "(2025-07-08 at 14:00) is not available" in text
        assert "  15:00" in text
        assert "  15:30" in text

    def test_limit(self):
        alts = [datetime(2025, 7, 8, h, 0) for h in range(9, 16)]
        text = build_alternative_times_message(LOCAL_START, alts, limit=2)
        assert "10:00" in text
        assert "11:00" not in text

    def test_none_open(self):
        text = build_alternative_times_message(LOCAL_START, [])
        assert "different day" in text
