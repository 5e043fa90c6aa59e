"""
Travel-aware buffering of appointment intervals.

The driving-time lookup is an external collaborator. ``TravelTimeLookup``
calls it on a worker pool with a bounded timeout and substitutes the
configured default when it is slow, failing, or not configured. Such
estimates are flagged provisional: they are still enforced for conflicts,
and may later be replaced by a real value through
``TravelBufferCalculator.recompute``, which never shrinks an interval that
is already holding a slot.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from booking_gate.config import settings
from booking_gate.errors import TravelTimeUnavailable
from booking_gate.scheduling.conflicts import Interval, active_appointments
from booking_gate.schemas.appointment_schema import Appointment

logger = logging.getLogger(__name__)

TravelTimeProvider = Callable[[str, str], float]


@dataclass(frozen=True)
class TravelEstimate:
    """Travel minutes from origin to destination, possibly a fallback."""
    minutes: int
    provisional: bool = False
    origin: Optional[str] = None
    destination: Optional[str] = None
    error: Optional[str] = None


class TravelTimeLookup:
    """Bounded-latency wrapper around an external travel-time provider."""

    def __init__(
        self,
        provider: Optional[TravelTimeProvider] = None,
        default_minutes: int = settings.travel.default_travel_minutes,
        timeout_sec: float = settings.travel.lookup_timeout_sec,
        max_workers: int = settings.travel.lookup_workers,
    ) -> None:
        self.provider = provider
        self.default_minutes = default_minutes
        self.timeout_sec = timeout_sec
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="travel-lookup"
        )

    def _fallback(
        self, origin: Optional[str], destination: Optional[str],
        minutes: int, error: str,
    ) -> TravelEstimate:
        logger.warning(
            "Travel time unavailable (%s -> %s): %s; using %d min",
            origin, destination, error, minutes,
        )
        return TravelEstimate(
            minutes=minutes, provisional=True,
            origin=origin, destination=destination, error=error,
        )

    def estimate(
        self,
        origin: Optional[str],
        destination: Optional[str],
        default_minutes: Optional[int] = None,
    ) -> TravelEstimate:
        """Return a travel estimate, never blocking longer than the timeout."""
        fallback = self.default_minutes if default_minutes is None else default_minutes

        if not origin or not destination:
            return self._fallback(origin, destination, fallback, "missing address")
        if origin.strip().lower() == destination.strip().lower():
            return TravelEstimate(minutes=0, origin=origin, destination=destination)
        if self.provider is None:
            return self._fallback(origin, destination, fallback, "no travel-time provider")

        future = self._executor.submit(self.provider, origin, destination)
        try:
            raw = future.result(timeout=self.timeout_sec)
        except FutureTimeoutError:
            future.cancel()
            return self._fallback(
                origin, destination, fallback, f"timed out after {self.timeout_sec}s"
            )
        except TravelTimeUnavailable as exc:
            return self._fallback(origin, destination, fallback, str(exc) or "unavailable")
        except Exception as exc:  # provider faults never fail a booking
            logger.debug("Travel provider raised", exc_info=True)
            return self._fallback(origin, destination, fallback, f"provider error: {exc}")

        if raw is None or raw < 0:
            return self._fallback(origin, destination, fallback, f"invalid estimate {raw!r}")
        return TravelEstimate(minutes=math.ceil(raw), origin=origin, destination=destination)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


def travel_origin(
    appointments: Iterable[Appointment],
    start: datetime,
    home_base: Optional[str],
    now: Optional[datetime] = None,
) -> Optional[str]:
    """Address the owner travels from: the previous same-day appointment, else home base."""
    earlier = [
        appt for appt in active_appointments(appointments, now)
        if appt.start < start and appt.address
        and start - appt.start < timedelta(days=1)
    ]
    if earlier:
        return max(earlier, key=lambda appt: appt.start).address
    return home_base


class TravelBufferCalculator:
    """Turns service duration, travel and grace minutes into an occupied interval."""

    def __init__(self, grace_minutes: int = settings.travel.grace_buffer_minutes) -> None:
        self.grace_minutes = grace_minutes

    def effective_interval(
        self,
        appointment: Appointment,
        travel_minutes: int,
        grace_minutes: Optional[int] = None,
    ) -> Interval:
        grace = self.grace_minutes if grace_minutes is None else grace_minutes
        total = appointment.duration_minutes + travel_minutes + grace
        return Interval(appointment.start, appointment.start + timedelta(minutes=total))

    def apply(
        self,
        appointment: Appointment,
        estimate: TravelEstimate,
        grace_minutes: Optional[int] = None,
    ) -> Appointment:
        """Copy of ``appointment`` carrying the estimate and grace buffer."""
        grace = self.grace_minutes if grace_minutes is None else grace_minutes
        return appointment.model_copy(update={
            "travel_minutes": estimate.minutes,
            "buffer_minutes": grace,
            "travel_provisional": estimate.provisional,
        })

    def recompute(self, appointment: Appointment, real_minutes: int) -> Appointment:
        """
        Replace a provisional travel estimate with a real value.

        The occupied interval may grow but never shrinks, so a slot already
        held by this appointment is not silently re-opened.
        """
        if not appointment.travel_provisional:
            logger.debug("Appointment %s has a final travel estimate", appointment.id)
            return appointment
        travel = max(appointment.travel_minutes, math.ceil(real_minutes))
        if travel != real_minutes:
            logger.info(
                "Keeping %d travel minutes for %s (real estimate %d would shrink it)",
                travel, appointment.id, real_minutes,
            )
        return appointment.model_copy(update={
            "travel_minutes": travel,
            "travel_provisional": False,
        })
