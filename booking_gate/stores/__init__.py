from booking_gate.stores.base import AppointmentStore, BlockStore, OwnerStore, RateLimitStore
from booking_gate.stores.memory import (
    InMemoryAppointmentStore,
    InMemoryBlockStore,
    InMemoryOwnerStore,
    InMemoryRateLimitStore,
)

__all__ = [
    "AppointmentStore",
    "BlockStore",
    "OwnerStore",
    "RateLimitStore",
    "InMemoryAppointmentStore",
    "InMemoryBlockStore",
    "InMemoryOwnerStore",
    "InMemoryRateLimitStore",
]
