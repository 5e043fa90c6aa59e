"""
Booking engine facade.

Composes the anti-spam gate, the owner's calendar, travel buffering and the
reservation lifecycle into the operations an HTTP layer calls. A booking
request passes through, in order:

1. Validation: malformed input is a 400 and consumes no allowance
2. AntiSpamGate: rate limit (429), then the owner's block list (403)
3. Owner lookup: unknown owner is a 404
4. Travel buffer: bounded lookup, provisional fallback on failure
5. Lifecycle: working hours (403), conflicts (409), pending insert

Every per-request failure comes back as a ``BookingResult`` carrying the
status code; nothing raised by a single request is fatal to the process.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from booking_gate.config import settings
from booking_gate.errors import (
    BookingError,
    InvalidTransitionError,
    NotFoundError,
    RateLimitExceeded,
    SlotConflict,
    ValidationError,
)
from booking_gate.gating.antispam import AntiSpamGate, BlockList, RateLimiter
from booking_gate.logging_context import get_request_logger, new_request_id
from booking_gate.messages import build_alternative_times_message, build_booking_request_message
from booking_gate.scheduling.calendar import ScheduleCalendar
from booking_gate.scheduling.conflicts import find_conflicts
from booking_gate.scheduling.lifecycle import ReservationLifecycle
from booking_gate.scheduling.slots import SlotAvailabilityEngine
from booking_gate.scheduling.travel import (
    TravelBufferCalculator,
    TravelEstimate,
    TravelTimeLookup,
    TravelTimeProvider,
    travel_origin,
)
from booking_gate.schemas.antispam_schema import BlockEntry, GateStats
from booking_gate.schemas.appointment_schema import Appointment
from booking_gate.schemas.booking_schema import BookingRequest, BookingResult, Slot
from booking_gate.schemas.schedule_schema import OwnerProfile
from booking_gate.stores.base import AppointmentStore, BlockStore, OwnerStore, RateLimitStore
from booking_gate.stores.services import resolve_services, total_duration

logger = get_request_logger(__name__)

ACCEPTED_MESSAGE = "Booking request sent. The provider will confirm shortly."
PAST_START_MESSAGE = "Cannot schedule appointments in the past."
TRAVEL_CONFLICT_MESSAGE = "The updated travel time overlaps another appointment."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingEngine:
    """Entry point for public booking requests and owner actions."""

    def __init__(
        self,
        appointments: AppointmentStore,
        rate_limits: RateLimitStore,
        blocks: BlockStore,
        owners: OwnerStore,
        travel_provider: Optional[TravelTimeProvider] = None,
        travel_lookup: Optional[TravelTimeLookup] = None,
        clock: Callable[[], datetime] = _utcnow,
        suggestions_limit: int = settings.schedule.suggested_times_limit,
    ) -> None:
        self.appointments = appointments
        self.owners = owners
        self.clock = clock
        self.suggestions_limit = suggestions_limit
        self.gate = AntiSpamGate(RateLimiter(rate_limits), BlockList(blocks), clock=clock)
        self.lifecycle = ReservationLifecycle(appointments, clock)
        self.slots = SlotAvailabilityEngine()
        self.travel_lookup = travel_lookup or TravelTimeLookup(travel_provider)
        self.buffers = TravelBufferCalculator()

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def _profile(self, owner_id: str) -> OwnerProfile:
        profile = self.owners.get_profile(owner_id)
        if profile is None:
            raise NotFoundError(f"Owner {owner_id} not found")
        return profile

    def calendar_for(self, owner_id: str) -> ScheduleCalendar:
        return ScheduleCalendar.for_owner(self._profile(owner_id))

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    # ------------------------------------------------------------------ #
    # Booking requests
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate(request: Union[BookingRequest, dict[str, Any]]) -> BookingRequest:
        if isinstance(request, BookingRequest):
            return request
        try:
            return BookingRequest.model_validate(request)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Invalid booking request",
                errors=[
                    {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                    for err in exc.errors()
                ],
            ) from None

    def _estimate_travel(
        self,
        profile: OwnerProfile,
        booking: BookingRequest,
        start: datetime,
        calendar: ScheduleCalendar,
        now: datetime,
    ) -> TravelEstimate:
        day_start, _ = calendar.normalizer.day_bounds(booking.date)
        earlier = self.appointments.list_for_owner(profile.owner_id, day_start, start)
        origin = travel_origin(earlier, start, profile.home_base_address, now)
        return self.travel_lookup.estimate(
            origin, booking.address, profile.default_travel_minutes
        )

    def _suggest(
        self,
        draft: Appointment,
        day: date,
        calendar: ScheduleCalendar,
        now: datetime,
    ) -> list[datetime]:
        day_start, day_end = calendar.normalizer.day_bounds(day)
        existing = self.appointments.list_for_owner(
            draft.owner_id, day_start, day_end + timedelta(days=1)
        )
        total = draft.duration_minutes + draft.travel_minutes + draft.buffer_minutes
        return self.slots.suggest_start_times(
            day, total, draft.duration_minutes, existing, calendar,
            limit=self.suggestions_limit, now=now, near=draft.start,
        )

    def check_booking_request(
        self, request: Union[BookingRequest, dict[str, Any]]
    ) -> BookingResult:
        """
        Validate, gate and reserve one public booking request.

        Returns:
            A 201 result with the pending appointment, the caller's remaining
            allowance and the owner-facing summary; otherwise the failure's
            status code and payload (400, 403, 404, 409 or 429).
        """
        request_id = new_request_id()
        now = self.clock()
        try:
            booking = self._validate(request)
            rate_limit = self.gate.check(booking.owner_id, booking.phone, now)

            profile = self._profile(booking.owner_id)
            services = resolve_services(
                self.owners.get_services(profile.owner_id), booking.service_ids
            )
            calendar = ScheduleCalendar.for_owner(profile)
            start = calendar.normalizer.to_instant(booking.date, booking.time)
            if start < now:
                raise ValidationError(
                    PAST_START_MESSAGE,
                    errors=[
                        {"loc": ["date"], "msg": "requested start is in the past"},
                        {"loc": ["time"], "msg": "requested start is in the past"},
                    ],
                )
            draft = Appointment(
                owner_id=profile.owner_id,
                client_id=booking.phone,
                phone=booking.phone,
                client_name=booking.client_name,
                start=start,
                duration_minutes=total_duration(services),
                address=booking.address,
                service_ids=booking.service_ids,
                message=booking.message,
            )

            travel_applies = profile.travel_enabled and booking.needs_travel
            estimate = (
                self._estimate_travel(profile, booking, start, calendar, now)
                if travel_applies else TravelEstimate(minutes=0)
            )
            draft = self.buffers.apply(draft, estimate, profile.grace_minutes)

            try:
                appointment = self.lifecycle.create(draft, calendar, now)
            except SlotConflict as exc:
                exc.suggested_times = self._suggest(draft, booking.date, calendar, now)
                logger.info("Request %s denied (409): %s", request_id, exc.message)
                result = self._failure(exc)
                result.summary = build_alternative_times_message(
                    calendar.normalizer.to_local(draft.start),
                    [calendar.normalizer.to_local(t) for t in exc.suggested_times],
                )
                return result
        except BookingError as exc:
            logger.info("Request %s denied (%d): %s", request_id, exc.status_code, exc.message)
            return self._failure(exc)

        logger.info(
            "Request %s accepted: %s for owner %s, %d request(s) left",
            request_id, appointment.id, appointment.owner_id, rate_limit.remaining_requests,
        )
        return BookingResult(
            success=True,
            status_code=201,
            message=ACCEPTED_MESSAGE,
            appointment=appointment,
            rate_limit=rate_limit,
            summary=build_booking_request_message(
                appointment, services, calendar.normalizer.to_local(appointment.start),
                travel_applies,
            ),
        )

    @staticmethod
    def _failure(exc: BookingError) -> BookingResult:
        result = BookingResult(
            success=False,
            status_code=exc.status_code,
            message=exc.message,
            error=exc.message,
        )
        if isinstance(exc, ValidationError):
            result.errors = exc.errors
        elif isinstance(exc, RateLimitExceeded):
            result.reset_time = exc.reset_time
        elif isinstance(exc, SlotConflict):
            result.conflicting_appointment_id = exc.conflicting_appointment_id
            result.suggested_times = exc.suggested_times
        return result

    # ------------------------------------------------------------------ #
    # Availability and housekeeping
    # ------------------------------------------------------------------ #

    def get_availability(
        self, owner_id: str, day: date, granularity: Optional[int] = None
    ) -> list[Slot]:
        """Slot grid for ``day`` in the owner's timezone."""
        calendar = self.calendar_for(owner_id)
        day_start, day_end = calendar.normalizer.day_bounds(day)
        existing = self.appointments.list_for_owner(owner_id, day_start, day_end)
        return self.slots.generate_slots(day, granularity, existing, calendar, now=self.clock())

    def expire_sweep(self, now: Optional[datetime] = None) -> list[str]:
        return self.lifecycle.expire_sweep(now or self.clock())

    def refresh_travel_estimate(
        self, appointment_id: str, real_minutes: Optional[int] = None
    ) -> Appointment:
        """
        Replace a provisional travel estimate with a real one.

        With no ``real_minutes`` the provider is asked again; if it still
        cannot answer, the appointment is returned unchanged.

        Raises:
            SlotConflict: The longer interval would overlap another active
                appointment. The stored row is left as it was.
            InvalidTransitionError: The appointment or the owner's calendar
                changed while the estimate was being refreshed.
        """
        owner_id = self.get_appointment(appointment_id).owner_id
        # version first: the write below fails if anything lands after this read
        version = self.appointments.version(owner_id)
        appointment = self.get_appointment(appointment_id)
        if not appointment.travel_provisional:
            return appointment
        if real_minutes is None:
            profile = self._profile(appointment.owner_id)
            calendar = ScheduleCalendar.for_owner(profile)
            day_start, _ = calendar.normalizer.day_bounds(
                calendar.normalizer.local_date(appointment.start)
            )
            earlier = self.appointments.list_for_owner(
                appointment.owner_id, day_start, appointment.start
            )
            origin = travel_origin(earlier, appointment.start, profile.home_base_address)
            estimate = self.travel_lookup.estimate(origin, appointment.address)
            if estimate.provisional:
                return appointment
            real_minutes = estimate.minutes

        updated = self.buffers.recompute(appointment, real_minutes)
        if updated.end > appointment.end:
            existing = self.appointments.list_for_owner(
                appointment.owner_id, updated.start, updated.end
            )
            conflicts = find_conflicts(updated, existing, self.clock())
            if conflicts:
                logger.info(
                    "Travel refresh for %s denied: overlaps %s",
                    appointment_id, conflicts[0].id,
                )
                raise SlotConflict(TRAVEL_CONFLICT_MESSAGE, conflicts[0].id)
        if not self.appointments.replace_if_status(
            updated, appointment.status, expected_version=version
        ):
            raise InvalidTransitionError(
                f"Appointment {appointment_id} changed while refreshing travel time"
            )
        return updated

    # ------------------------------------------------------------------ #
    # Owner actions
    # ------------------------------------------------------------------ #

    def confirm(self, appointment_id: str, actor: Optional[str] = None) -> Appointment:
        return self.lifecycle.confirm(appointment_id, actor)

    def cancel(self, appointment_id: str, actor: str, reason: Optional[str] = None) -> Appointment:
        return self.lifecycle.cancel(appointment_id, actor, reason)

    def complete(self, appointment_id: str, actor: Optional[str] = None) -> Appointment:
        return self.lifecycle.complete(appointment_id, actor)

    def mark_no_show(self, appointment_id: str, actor: Optional[str] = None) -> Appointment:
        return self.lifecycle.mark_no_show(appointment_id, actor)

    def block_client(self, owner_id: str, phone: str, reason: Optional[str] = None) -> bool:
        return self.gate.block_list.block(owner_id, phone, reason, now=self.clock())

    def unblock_client(self, owner_id: str, phone: str) -> bool:
        return self.gate.block_list.unblock(owner_id, phone)

    def blocked_clients(self, owner_id: str) -> list[BlockEntry]:
        return self.gate.block_list.blocked_clients(owner_id)

    def gate_stats(self) -> GateStats:
        return self.gate.stats()

    def shutdown(self) -> None:
        self.travel_lookup.shutdown()
