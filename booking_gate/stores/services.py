"""Owner service catalogs: lookup and duration totals."""

import logging
from typing import Iterable

from booking_gate.errors import ValidationError
from booking_gate.schemas.booking_schema import ServiceItem

logger = logging.getLogger(__name__)

SAMPLE_CATALOG: list[ServiceItem] = [
    ServiceItem(id="haircut", name="Haircut", duration_minutes=30, price="$35"),
    ServiceItem(id="beard-trim", name="Beard Trim", duration_minutes=15, price="$15"),
    ServiceItem(id="fade", name="Skin Fade", duration_minutes=45, price="$45"),
    ServiceItem(id="kids-cut", name="Kids Cut", duration_minutes=20, price="$25"),
    ServiceItem(id="shave", name="Hot Towel Shave", duration_minutes=30, price="$30"),
]


def resolve_services(catalog: Iterable[ServiceItem], service_ids: list[str]) -> list[ServiceItem]:
    """Look up every requested id in the owner's catalog, preserving order.

    Raises:
        ValidationError: If any id is not in the catalog.
    """
    by_id = {item.id: item for item in catalog}
    unknown = [sid for sid in service_ids if sid not in by_id]
    if unknown:
        logger.info("Unknown service ids requested: %s", unknown)
        raise ValidationError(
            "Unknown service selected",
            errors=[
                {"loc": ["service_ids"], "msg": f"unknown service id {sid!r}"}
                for sid in unknown
            ],
        )
    return [by_id[sid] for sid in service_ids]


def total_duration(services: Iterable[ServiceItem]) -> int:
    """Sum of service durations in minutes."""
    return sum(item.duration_minutes for item in services)
