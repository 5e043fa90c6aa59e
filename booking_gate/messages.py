"""Plain-text summaries sent to the owner and offered to the client."""

from datetime import datetime
from typing import Optional

from booking_gate.schemas.appointment_schema import Appointment
from booking_gate.schemas.booking_schema import ServiceItem


def build_booking_request_message(
    appointment: Appointment,
    services: list[ServiceItem],
    local_start: datetime,
    travel_applies: bool,
) -> str:
    """Build the booking-request summary shown to the owner."""
    lines = [
        f"New booking request from {appointment.client_name}",
        f"Date: {local_start.strftime('%Y-%m-%d')}",
        f"Time: {local_start.strftime('%H:%M')}",
        f"Services: {', '.join(item.name for item in services)}",
    ]
    if travel_applies and appointment.address:
        lines.append(f"Travel: Yes - {appointment.address}")
        marker = " (estimated)" if appointment.travel_provisional else ""
        lines.append(f"Travel Time: {appointment.travel_minutes} min{marker}")
    else:
        lines.append("Travel: No")
    lines.append(f"Phone: {appointment.phone}")
    if appointment.message:
        lines.append(f"Message: {appointment.message}")
    return "\n".join(lines)


def build_alternative_times_message(
    requested: datetime,
    alternatives: list[datetime],
    limit: Optional[int] = None,
) -> str:
    """Build the text offered when the requested time is taken."""
    lines = [
        f"The requested time ({requested.strftime('%Y-%m-%d')} at "
        f"{requested.strftime('%H:%M')}) is not available."
    ]
    shown = alternatives if limit is None else alternatives[:limit]
    if not shown:
        lines.append("No other times are open that day. Please try a different day.")
        return "\n".join(lines)
    lines.append("Open times that day:")
    for alt in shown:
        lines.append(f"  {alt.strftime('%H:%M')}")
    return "\n".join(lines)
