"""
Reservation lifecycle as an explicit state machine.

Every status change is a row in ``TRANSITIONS``; anything not listed is
rejected with the triggers that would have been valid. Changes are written
with compare-and-set on the status that was read, so a confirmation racing
the expiry sweep resolves to whichever lands first and the loser sees an
error instead of overwriting it.

Usage:
    lifecycle = ReservationLifecycle(store)
    appt = lifecycle.create(draft, calendar)
    lifecycle.confirm(appt.id)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from booking_gate.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    OutsideWorkingHours,
    ReservationExpiredError,
    SlotConflict,
)
from booking_gate.scheduling.calendar import ScheduleCalendar
from booking_gate.scheduling.conflicts import Interval, find_conflicts
from booking_gate.schemas.appointment_schema import Appointment, AppointmentStatus, StatusChange
from booking_gate.stores.base import AppointmentStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
MAX_CREATE_ATTEMPTS = 2


class LifecycleTrigger(str, Enum):
    """Events that move a reservation between statuses."""
    CONFIRM = "confirm"
    CANCEL = "cancel"
    EXPIRE = "expire"
    MARK_NO_SHOW = "mark_no_show"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    trigger: LifecycleTrigger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReservationLifecycle:
    """Creates reservations and drives them through their statuses."""

    TRANSITIONS: list[Transition] = [
        # --- Awaiting owner ---
        Transition(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED,
                   LifecycleTrigger.CONFIRM),
        Transition(AppointmentStatus.PENDING, AppointmentStatus.CANCELLED,
                   LifecycleTrigger.CANCEL),
        Transition(AppointmentStatus.PENDING, AppointmentStatus.EXPIRED,
                   LifecycleTrigger.EXPIRE),
        Transition(AppointmentStatus.PENDING, AppointmentStatus.NO_SHOW,
                   LifecycleTrigger.MARK_NO_SHOW),

        # --- Confirmed ---
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED,
                   LifecycleTrigger.CANCEL),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.NO_SHOW,
                   LifecycleTrigger.MARK_NO_SHOW),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED,
                   LifecycleTrigger.COMPLETE),
    ]

    def __init__(
        self,
        store: AppointmentStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.clock = clock

    @classmethod
    def get_valid_triggers(cls, status: AppointmentStatus) -> list[LifecycleTrigger]:
        """Return all triggers valid from ``status``."""
        return [t.trigger for t in cls.TRANSITIONS if t.from_status == status]

    def _find(self, status: AppointmentStatus, trigger: LifecycleTrigger) -> Transition:
        for t in self.TRANSITIONS:
            if t.from_status == status and t.trigger == trigger:
                return t
        valid = [t.value for t in self.get_valid_triggers(status)]
        raise InvalidTransitionError(
            f"No valid transition from '{status.value}' with trigger "
            f"'{trigger.value}'. Valid triggers: {valid}"
        )

    def _load(self, appointment_id: str) -> Appointment:
        appointment = self.store.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def _apply(
        self,
        appointment: Appointment,
        trigger: LifecycleTrigger,
        now: datetime,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Optional[Appointment]:
        """Write the transition; None if the stored status moved underneath us."""
        t = self._find(appointment.status, trigger)
        updated = appointment.model_copy(update={
            "status": t.to_status,
            "history": appointment.history + [
                StatusChange(status=t.to_status, at=now, actor=actor, reason=reason)
            ],
        })
        if not self.store.replace_if_status(updated, appointment.status):
            return None
        logger.debug(
            "Appointment %s: %s -> %s (trigger: %s, actor: %s)",
            appointment.id, appointment.status.value, t.to_status.value,
            trigger.value, actor,
        )
        return updated

    def _transition(
        self,
        appointment_id: str,
        trigger: LifecycleTrigger,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Appointment:
        now = now or self.clock()
        appointment = self._load(appointment_id)
        updated = self._apply(appointment, trigger, now, actor, reason)
        if updated is None:
            current = self._load(appointment_id)
            raise InvalidTransitionError(
                f"Appointment {appointment_id} changed to '{current.status.value}' "
                f"before '{trigger.value}' could be applied"
            )
        return updated

    def create(
        self,
        appointment: Appointment,
        calendar: ScheduleCalendar,
        now: Optional[datetime] = None,
    ) -> Appointment:
        """
        Insert a pending reservation if its slot is open and free.

        The service itself must lie inside one open interval; the whole
        occupied interval (service, travel, grace) must overlap no active
        appointment. A calendar write that lands between validation and
        insert triggers one transparent re-validation.

        Raises:
            OutsideWorkingHours: Service interval is not inside working hours.
            SlotConflict: The occupied interval overlaps an active appointment,
                or the calendar kept changing under the insert.
        """
        now = now or self.clock()
        if not calendar.contains(Interval(appointment.start, appointment.service_end)):
            raise OutsideWorkingHours("The requested time is outside working hours.")

        pending = appointment.model_copy(update={
            "status": AppointmentStatus.PENDING,
            "created_at": now,
            "history": [StatusChange(status=AppointmentStatus.PENDING, at=now)],
        })
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            version = self.store.version(pending.owner_id)
            existing = self.store.list_for_owner(pending.owner_id, pending.start, pending.end)
            conflicts = find_conflicts(pending, existing, now)
            if conflicts:
                raise SlotConflict(
                    "The requested time overlaps an existing appointment.",
                    conflicting_appointment_id=conflicts[0].id,
                )
            try:
                self.store.insert_if_version(pending, version)
            except ConcurrentModificationError as exc:
                logger.info("Insert attempt %d for %s lost a race: %s", attempt, pending.id, exc)
                continue
            logger.info(
                "Created pending appointment %s for owner %s at %s",
                pending.id, pending.owner_id, pending.start.isoformat(),
            )
            return pending

        raise SlotConflict("The calendar changed while booking; please pick a time again.")

    def confirm(self, appointment_id: str, actor: Optional[str] = None,
                now: Optional[datetime] = None) -> Appointment:
        """
        Confirm a pending reservation.

        Raises:
            InvalidTransitionError: Not pending.
            ReservationExpiredError: The hold outlived its TTL; the row is
                moved to ``expired`` as part of this call.
        """
        now = now or self.clock()
        appointment = self._load(appointment_id)
        if appointment.is_lapsed(now):
            self._apply(
                appointment, LifecycleTrigger.EXPIRE, now,
                actor=SYSTEM_ACTOR, reason="not confirmed before expiry",
            )
            raise ReservationExpiredError(
                f"Appointment {appointment_id} expired at {appointment.expires_at.isoformat()}"
            )
        return self._transition(appointment_id, LifecycleTrigger.CONFIRM, actor, now=now)

    def cancel(self, appointment_id: str, actor: str, reason: Optional[str] = None,
               now: Optional[datetime] = None) -> Appointment:
        return self._transition(appointment_id, LifecycleTrigger.CANCEL, actor, reason, now)

    def complete(self, appointment_id: str, actor: Optional[str] = None,
                 now: Optional[datetime] = None) -> Appointment:
        return self._transition(appointment_id, LifecycleTrigger.COMPLETE, actor, now=now)

    def mark_no_show(self, appointment_id: str, actor: Optional[str] = None,
                     now: Optional[datetime] = None) -> Appointment:
        return self._transition(appointment_id, LifecycleTrigger.MARK_NO_SHOW, actor, now=now)

    def expire_sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Expire every pending row past its TTL. Idempotent; returns the ids expired."""
        now = now or self.clock()
        expired: list[str] = []
        for appointment in self.store.list_by_status(AppointmentStatus.PENDING):
            if not appointment.is_lapsed(now):
                continue
            updated = self._apply(
                appointment, LifecycleTrigger.EXPIRE, now,
                actor=SYSTEM_ACTOR, reason="not confirmed before expiry",
            )
            if updated is not None:
                expired.append(appointment.id)
        if expired:
            logger.info("Expired %d pending appointment(s): %s", len(expired), expired)
        return expired
