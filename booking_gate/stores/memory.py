"""
Thread-safe in-memory repositories.

Rows are copied on the way in and out so callers can never mutate stored
state without going through the store. Each store has a ``reset()`` used by
test fixtures for isolation.
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Optional

from booking_gate.errors import ConcurrentModificationError
from booking_gate.schemas.antispam_schema import BlockEntry, RateLimitEntry
from booking_gate.schemas.appointment_schema import Appointment, AppointmentStatus
from booking_gate.schemas.booking_schema import ServiceItem
from booking_gate.schemas.schedule_schema import OwnerProfile
from booking_gate.stores.base import (
    AppointmentStore,
    BlockStore,
    OwnerStore,
    RateLimitStore,
    RateLimitUpdate,
    T,
)

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64


class InMemoryAppointmentStore(AppointmentStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, Appointment] = {}
        self._versions: dict[str, int] = defaultdict(int)

    def get(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            row = self._rows.get(appointment_id)
            return row.model_copy(deep=True) if row else None

    def list_for_owner(
        self,
        owner_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Appointment]:
        with self._lock:
            rows = [
                row for row in self._rows.values()
                if row.owner_id == owner_id
                and (start is None or row.end > start)
                and (end is None or row.start < end)
            ]
            return [row.model_copy(deep=True) for row in sorted(rows, key=lambda r: r.start)]

    def list_by_status(self, status: AppointmentStatus) -> list[Appointment]:
        with self._lock:
            return [row.model_copy(deep=True) for row in self._rows.values() if row.status == status]

    def version(self, owner_id: str) -> int:
        with self._lock:
            return self._versions[owner_id]

    def insert_if_version(self, appointment: Appointment, expected_version: int) -> int:
        with self._lock:
            current = self._versions[appointment.owner_id]
            if current != expected_version:
                raise ConcurrentModificationError(
                    f"Calendar for {appointment.owner_id} moved from version "
                    f"{expected_version} to {current}"
                )
            if appointment.id in self._rows:
                raise ConcurrentModificationError(f"Appointment {appointment.id} already exists")
            self._rows[appointment.id] = appointment.model_copy(deep=True)
            self._versions[appointment.owner_id] = current + 1
            return current + 1

    def replace_if_status(
        self,
        appointment: Appointment,
        expected_status: AppointmentStatus,
        expected_version: Optional[int] = None,
    ) -> bool:
        with self._lock:
            stored = self._rows.get(appointment.id)
            if stored is None or stored.status != expected_status:
                return False
            if expected_version is not None and self._versions[appointment.owner_id] != expected_version:
                return False
            self._rows[appointment.id] = appointment.model_copy(deep=True)
            self._versions[appointment.owner_id] += 1
            return True

    def reset(self) -> None:
        with self._lock:
            self._rows.clear()
            self._versions.clear()


class InMemoryRateLimitStore(RateLimitStore):
    """
    Counters keyed by phone.

    Keys hash onto a fixed set of striped locks, so memory stays bounded no
    matter how many numbers are seen. Two phones sharing a stripe only
    serialize, they never see each other's entry.
    """

    def __init__(self, stripes: int = LOCK_STRIPES) -> None:
        if stripes < 1:
            raise ValueError(f"stripes must be >= 1, got {stripes}")
        self._stripes = [threading.Lock() for _ in range(stripes)]
        self._entries: dict[str, RateLimitEntry] = {}

    def _lock_for(self, phone: str) -> threading.Lock:
        return self._stripes[hash(phone) % len(self._stripes)]

    def get(self, phone: str) -> Optional[RateLimitEntry]:
        entry = self._entries.get(phone)
        return entry.model_copy() if entry else None

    def update(self, phone: str, fn: RateLimitUpdate[T]) -> T:
        with self._lock_for(phone):
            current = self._entries.get(phone)
            replacement, result = fn(current.model_copy() if current else None)
            if replacement is not None:
                self._entries[phone] = replacement.model_copy()
            return result

    def reset(self) -> None:
        self._entries.clear()


class InMemoryBlockStore(BlockStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], BlockEntry] = {}

    def add(self, entry: BlockEntry) -> bool:
        key = (entry.owner_id, entry.phone)
        with self._lock:
            if key in self._entries:
                return False
            self._entries[key] = entry.model_copy()
            return True

    def remove(self, owner_id: str, phone: str) -> bool:
        with self._lock:
            return self._entries.pop((owner_id, phone), None) is not None

    def get(self, owner_id: str, phone: str) -> Optional[BlockEntry]:
        with self._lock:
            entry = self._entries.get((owner_id, phone))
            return entry.model_copy() if entry else None

    def list_for_owner(self, owner_id: str) -> list[BlockEntry]:
        with self._lock:
            entries = [e for (owner, _), e in self._entries.items() if owner == owner_id]
            return [e.model_copy() for e in sorted(entries, key=lambda e: e.blocked_at)]

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


class InMemoryOwnerStore(OwnerStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._profiles: dict[str, OwnerProfile] = {}
        self._services: dict[str, list[ServiceItem]] = {}

    def get_profile(self, owner_id: str) -> Optional[OwnerProfile]:
        with self._lock:
            profile = self._profiles.get(owner_id)
            return profile.model_copy(deep=True) if profile else None

    def save_profile(self, profile: OwnerProfile) -> None:
        with self._lock:
            self._profiles[profile.owner_id] = profile.model_copy(deep=True)
        logger.debug("Saved profile for owner %s", profile.owner_id)

    def get_services(self, owner_id: str) -> list[ServiceItem]:
        with self._lock:
            return [item.model_copy() for item in self._services.get(owner_id, [])]

    def save_services(self, owner_id: str, services: list[ServiceItem]) -> None:
        with self._lock:
            self._services[owner_id] = [item.model_copy() for item in services]

    def reset(self) -> None:
        with self._lock:
            self._profiles.clear()
            self._services.clear()
