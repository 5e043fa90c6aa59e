"""
Repository interfaces consumed by the booking engine.

The engine never touches storage directly. Production deployments back
these with a database; ``booking_gate.stores.memory`` provides thread-safe
in-process implementations for tests and the demo.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, TypeVar

from booking_gate.schemas.antispam_schema import BlockEntry, RateLimitEntry
from booking_gate.schemas.appointment_schema import Appointment, AppointmentStatus
from booking_gate.schemas.booking_schema import ServiceItem
from booking_gate.schemas.schedule_schema import OwnerProfile

T = TypeVar("T")

# Receives the current entry (None if the phone has none) and returns the
# entry to store (None leaves it unchanged) together with the caller's result.
RateLimitUpdate = Callable[[Optional[RateLimitEntry]], tuple[Optional[RateLimitEntry], T]]


class AppointmentStore(ABC):
    """Owner calendars with optimistic, versioned writes."""

    @abstractmethod
    def get(self, appointment_id: str) -> Optional[Appointment]:
        pass

    @abstractmethod
    def list_for_owner(
        self,
        owner_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Appointment]:
        """Appointments whose occupied interval overlaps ``[start, end)``."""

    @abstractmethod
    def list_by_status(self, status: AppointmentStatus) -> list[Appointment]:
        pass

    @abstractmethod
    def version(self, owner_id: str) -> int:
        """Monotonic counter bumped on every write to the owner's calendar."""

    @abstractmethod
    def insert_if_version(self, appointment: Appointment, expected_version: int) -> int:
        """
        Insert ``appointment`` only if the owner's calendar is unchanged.

        Returns:
            The owner's new version.

        Raises:
            ConcurrentModificationError: If the version moved since it was read.
        """

    @abstractmethod
    def replace_if_status(
        self,
        appointment: Appointment,
        expected_status: AppointmentStatus,
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Store ``appointment`` only if the stored row still has ``expected_status``.

        With ``expected_version`` the owner's calendar must also be unchanged
        since it was read. Returns False when either check fails.
        """


class RateLimitStore(ABC):
    """Per-phone request counters."""

    @abstractmethod
    def get(self, phone: str) -> Optional[RateLimitEntry]:
        pass

    @abstractmethod
    def update(self, phone: str, fn: RateLimitUpdate[T]) -> T:
        """Run ``fn`` on the phone's entry as one atomic read-modify-write."""


class BlockStore(ABC):
    """Owner-scoped phone denylist."""

    @abstractmethod
    def add(self, entry: BlockEntry) -> bool:
        """False if the phone is already blocked for the owner."""

    @abstractmethod
    def remove(self, owner_id: str, phone: str) -> bool:
        """False if the phone was not blocked for the owner."""

    @abstractmethod
    def get(self, owner_id: str, phone: str) -> Optional[BlockEntry]:
        pass

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> list[BlockEntry]:
        pass


class OwnerStore(ABC):
    """Owner profiles and their service catalogs."""

    @abstractmethod
    def get_profile(self, owner_id: str) -> Optional[OwnerProfile]:
        pass

    @abstractmethod
    def save_profile(self, profile: OwnerProfile) -> None:
        pass

    @abstractmethod
    def get_services(self, owner_id: str) -> list[ServiceItem]:
        pass

    @abstractmethod
    def save_services(self, owner_id: str, services: list[ServiceItem]) -> None:
        pass
