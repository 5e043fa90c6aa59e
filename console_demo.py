"""
Offline console demo that drives the booking engine end to end.

Uses the real engine, anti-spam gate, calendar and lifecycle against
in-memory stores and a canned travel-time table. No network calls, and the
clock is simulated so expiry can be shown without waiting.

Usage:
    python console_demo.py
    python console_demo.py --scenario spam
    python console_demo.py --scenario expiry
"""

import argparse
import time as _time
from datetime import date, datetime, time, timedelta, timezone

from booking_gate.config import settings
from booking_gate.engine import BookingEngine
from booking_gate.errors import TravelTimeUnavailable
from booking_gate.scheduling.travel import TravelTimeLookup
from booking_gate.schemas.booking_schema import BookingResult, Slot
from booking_gate.schemas.schedule_schema import BreakInterval, OwnerProfile, ScheduleDay, Weekday
from booking_gate.stores.memory import (
    InMemoryAppointmentStore,
    InMemoryBlockStore,
    InMemoryOwnerStore,
    InMemoryRateLimitStore,
)
from booking_gate.stores.services import SAMPLE_CATALOG

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

OWNER_ID = "barber-1"
HOME_BASE = "12 Bedford Ave, Brooklyn, NY"
DEMO_DAY = date(2025, 7, 8)  # a Tuesday

# Minutes between known addresses; anything else is "unknown" to the provider.
ROUTES: dict[tuple[str, str], int] = {
    (HOME_BASE, "456 Oak Street, Brooklyn, NY"): 22,
    ("456 Oak Street, Brooklyn, NY", "9 Pier Rd, Queens, NY"): 35,
}
SLOW_ADDRESS = "1 Traffic Jam Way, Newark, NJ"


def demo_travel_provider(origin: str, destination: str) -> float:
    if destination == SLOW_ADDRESS:
        _time.sleep(1.0)
    try:
        return ROUTES[(origin, destination)]
    except KeyError:
        raise TravelTimeUnavailable(f"no route from {origin!r} to {destination!r}") from None


class DemoClock:
    """Manually advanced clock shared by every engine component."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class ConsoleDemo:
    """Runs a scripted booking scenario and narrates each decision."""

    def __init__(self) -> None:
        self.clock = DemoClock(datetime(2025, 7, 7, 14, 0, tzinfo=timezone.utc))
        self.owners = InMemoryOwnerStore()
        weekday = ScheduleDay(
            start=time(9, 0), end=time(18, 0),
            breaks=[BreakInterval(start=time(12, 0), end=time(13, 0), label="Lunch")],
        )
        self.owners.save_profile(OwnerProfile(
            owner_id=OWNER_ID,
            timezone="America/New_York",
            schedule={
                **{day: weekday for day in list(Weekday)[:5]},
                Weekday.SATURDAY: ScheduleDay(start=time(10, 0), end=time(14, 0)),
                Weekday.SUNDAY: ScheduleDay(enabled=False, start=time(9, 0), end=time(17, 0)),
            },
            home_base_address=HOME_BASE,
            travel_enabled=True,
        ))
        self.owners.save_services(OWNER_ID, SAMPLE_CATALOG)
        self.engine = BookingEngine(
            appointments=InMemoryAppointmentStore(),
            rate_limits=InMemoryRateLimitStore(),
            blocks=InMemoryBlockStore(),
            owners=self.owners,
            travel_lookup=TravelTimeLookup(demo_travel_provider, timeout_sec=0.3),
            clock=self.clock,
        )

    SCENARIOS = ("booking", "spam", "block", "conflict", "expiry")

    def say(self, text: str) -> None:
        print(f"{BLUE}[Client] {RESET}{text}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def request(self, phone: str, at: str, services: list[str], **extra: object) -> BookingResult:
        payload = {
            "owner_id": OWNER_ID,
            "phone": phone,
            "client_name": extra.pop("client_name", "Jane Doe"),
            "date": DEMO_DAY.isoformat(),
            "time": at,
            "service_ids": services,
            **extra,
        }
        self.say(f"{phone} asks for {', '.join(services)} at {at}")
        result = self.engine.check_booking_request(payload)
        self.show_result(result)
        return result

    def show_result(self, result: BookingResult) -> None:
        colour = GREEN if result.success else (YELLOW if result.status_code == 409 else RED)
        print(f"{colour}{BOLD}[{result.status_code}]{RESET} {colour}{result.message}{RESET}")
        if result.rate_limit:
            self.system_log(
                f"Remaining requests: {result.rate_limit.remaining_requests} "
                f"(resets {result.rate_limit.reset_time.isoformat()})"
            )
        if result.summary:
            for line in result.summary.splitlines():
                self.system_log(line)
        if result.conflicting_appointment_id:
            self.system_log(f"Conflicts with {result.conflicting_appointment_id}")
        if result.suggested_times:
            tz = self.engine.calendar_for(OWNER_ID).normalizer
            self.system_log("Suggested: " + ", ".join(
                tz.to_local(t).strftime("%H:%M") for t in result.suggested_times
            ))

    def show_slots(self, slots: list[Slot]) -> None:
        tz = self.engine.calendar_for(OWNER_ID).normalizer
        for slot in slots:
            when = tz.to_local(slot.start).strftime("%H:%M")
            if not slot.blocked:
                print(f"  {GREEN}{when} open{RESET}")
                continue
            detail = slot.label or slot.appointment_id or ""
            print(f"  {DIM}{when} {slot.reason.value} {detail}{RESET}")

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    def scenario_booking(self) -> None:
        first = self.request(
            "(555) 123-4567", "10:00", ["haircut"],
            address="456 Oak Street, Brooklyn, NY", message="First visit",
        )
        self.request(
            "(555) 987-6543", "14:00", ["fade", "beard-trim"],
            client_name="Sam Lee", address=SLOW_ADDRESS,
        )
        if first.appointment:
            confirmed = self.engine.confirm(first.appointment.id, actor=OWNER_ID)
            self.system_log(f"Owner confirmed {confirmed.id}: {confirmed.status.value}")
        self.show_slots(self.engine.get_availability(OWNER_ID, DEMO_DAY, granularity=30))

    def scenario_spam(self) -> None:
        for _ in range(settings.antispam.max_requests_per_window + 1):
            self.request("555-000-1111", "09:00", ["kids-cut"], travel=False)
            self.clock.advance(minutes=1)
        self.clock.advance(hours=settings.antispam.window_hours)
        self.system_log("A day later...")
        self.request("555-000-1111", "15:00", ["kids-cut"])
        self.system_log(f"Gate stats: {self.engine.gate_stats().model_dump()}")

    def scenario_block(self) -> None:
        self.engine.block_client(OWNER_ID, "555-222-3333", reason="repeated no-shows")
        self.system_log(f"Blocked: {[e.phone for e in self.engine.blocked_clients(OWNER_ID)]}")
        self.request("555-222-3333", "11:00", ["shave"])
        self.engine.unblock_client(OWNER_ID, "555-222-3333")
        self.system_log("Unblocked")
        self.request("555-222-3333", "11:00", ["shave"])

    def scenario_conflict(self) -> None:
        self.request("555-444-0001", "10:00", ["fade"])
        self.request("555-444-0002", "10:30", ["haircut"])
        self.request("555-444-0003", "12:15", ["haircut"])
        self.request("555-444-0004", "19:00", ["haircut"])

    def scenario_expiry(self) -> None:
        result = self.request("555-666-7777", "16:00", ["haircut"])
        self.clock.advance(minutes=settings.schedule.pending_ttl_minutes + 1)
        expired = self.engine.expire_sweep()
        self.system_log(f"Sweep expired: {expired}")
        if result.appointment:
            appt = self.engine.get_appointment(result.appointment.id)
            self.system_log(f"{appt.id} is now {appt.status.value}")
        self.request("555-888-9999", "16:00", ["haircut"])

    def run_scenario(self, scenario: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  BOOKING GATE - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Owner: {OWNER_ID}  Day: {DEMO_DAY.isoformat()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()
        try:
            getattr(self, f"scenario_{scenario}")()
        finally:
            self.engine.shutdown()
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking gate demo")
    parser.add_argument(
        "--scenario",
        choices=ConsoleDemo.SCENARIOS,
        default="booking",
        help="Scripted scenario to play",
    )
    args = parser.parse_args()
    ConsoleDemo().run_scenario(args.scenario)


if __name__ == "__main__":
    main()
