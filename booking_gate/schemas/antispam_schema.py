"""Rate-limit, block-list and gate statistics models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class RateLimitEntry(BaseModel):
    """Booking request counter for one phone number, shared by all owners."""
    phone: str
    count: int = Field(ge=0)
    window_start: datetime
    window_end: datetime
    last_request_at: Optional[datetime] = None


class BlockEntry(BaseModel):
    """Owner-scoped denylist row."""
    owner_id: str
    phone: str
    reason: Optional[str] = None
    blocked_at: datetime


class RequestLogEntry(BaseModel):
    phone: str
    owner_id: str
    timestamp: datetime
    allowed: bool
    reason: Optional[str] = None


class Requester(BaseModel):
    phone: str
    request_count: int


class GateStats(BaseModel):
    """Anti-spam monitoring counters."""
    total_requests: int = 0
    unique_phone_numbers: int = 0
    blocked_requests: int = 0
    rate_limited_requests: int = 0
    top_requesters: list[Requester] = Field(default_factory=list)
