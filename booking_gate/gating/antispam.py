"""
Two-layer admission gate for public booking requests.

1. RateLimiter: global per phone number, shared by every owner
2. BlockList: per-owner denylist of phone numbers

The layers always run in that order: a rate-limited request is denied with
429 and the block list is never consulted. Both are composed into an
AntiSpamGate, which also keeps a bounded request log for monitoring.
"""

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from booking_gate.config import settings
from booking_gate.errors import ClientBlocked, RateLimitExceeded
from booking_gate.schemas.antispam_schema import (
    BlockEntry,
    GateStats,
    RateLimitEntry,
    Requester,
    RequestLogEntry,
)
from booking_gate.schemas.booking_schema import RateLimitInfo
from booking_gate.stores.base import BlockStore, RateLimitStore
from booking_gate.utils import normalize_phone

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "You've reached your daily limit for booking requests. Please try again tomorrow."
)
BLOCKED_MESSAGE = "This provider is not accepting bookings from this number."
TOP_REQUESTERS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter:
    """Fixed-window request counter per phone number."""

    def __init__(
        self,
        store: RateLimitStore,
        max_requests: int = settings.antispam.max_requests_per_window,
        window: timedelta = timedelta(hours=settings.antispam.window_hours),
    ) -> None:
        self.store = store
        self.max_requests = max_requests
        self.window = window

    def _fresh(self, phone: str, now: datetime) -> RateLimitEntry:
        return RateLimitEntry(
            phone=phone, count=1, window_start=now,
            window_end=now + self.window, last_request_at=now,
        )

    def check(self, phone: str, now: datetime) -> RateLimitInfo:
        """
        Count one request against ``phone``.

        Read, check and increment happen as one atomic unit per phone.

        Raises:
            RateLimitExceeded: The window is used up. Nothing is recorded.
        """
        def step(entry: Optional[RateLimitEntry]):
            if entry is None or now > entry.window_end:
                fresh = self._fresh(phone, now)
                return fresh, (True, fresh)
            if entry.count < self.max_requests:
                bumped = entry.model_copy(update={
                    "count": entry.count + 1, "last_request_at": now,
                })
                return bumped, (True, bumped)
            return None, (False, entry)

        allowed, entry = self.store.update(phone, step)
        if not allowed:
            logger.info("Rate limit hit for %s until %s", phone, entry.window_end.isoformat())
            raise RateLimitExceeded(RATE_LIMIT_MESSAGE, reset_time=entry.window_end)
        return RateLimitInfo(
            remaining_requests=self.max_requests - entry.count,
            reset_time=entry.window_end,
        )

    def status(self, phone: str, now: datetime) -> RateLimitInfo:
        """Remaining allowance without counting a request."""
        entry = self.store.get(phone)
        if entry is None or now > entry.window_end:
            return RateLimitInfo(
                remaining_requests=self.max_requests, reset_time=now + self.window
            )
        return RateLimitInfo(
            remaining_requests=max(self.max_requests - entry.count, 0),
            reset_time=entry.window_end,
        )


class BlockList:
    """Owner-scoped phone denylist."""

    def __init__(self, store: BlockStore) -> None:
        self.store = store

    def block(self, owner_id: str, phone: str, reason: Optional[str] = None,
              now: Optional[datetime] = None) -> bool:
        """Block ``phone`` for ``owner_id``. False if it was already blocked."""
        entry = BlockEntry(
            owner_id=owner_id, phone=normalize_phone(phone),
            reason=reason, blocked_at=now or _utcnow(),
        )
        added = self.store.add(entry)
        if added:
            logger.info("Owner %s blocked %s", owner_id, entry.phone)
        return added

    def unblock(self, owner_id: str, phone: str) -> bool:
        """False if the phone was not blocked for the owner."""
        removed = self.store.remove(owner_id, normalize_phone(phone))
        if removed:
            logger.info("Owner %s unblocked %s", owner_id, normalize_phone(phone))
        return removed

    def is_blocked(self, owner_id: str, phone: str) -> bool:
        return self.store.get(owner_id, normalize_phone(phone)) is not None

    def blocked_clients(self, owner_id: str) -> list[BlockEntry]:
        return self.store.list_for_owner(owner_id)

    def check(self, owner_id: str, phone: str) -> None:
        if self.is_blocked(owner_id, phone):
            logger.info("Blocked number %s attempted to book with %s", phone, owner_id)
            raise ClientBlocked(BLOCKED_MESSAGE)


class AntiSpamGate:
    """
    Admission check run before any scheduling work.

    Rate limiting is global per phone number; blocking is per owner. The
    request log keeps the most recent decisions for ``stats()``.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        block_list: BlockList,
        log_size: int = settings.antispam.request_log_size,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.block_list = block_list
        self.clock = clock
        self._log: deque[RequestLogEntry] = deque(maxlen=log_size)
        self._log_lock = threading.Lock()

    def _record(self, phone: str, owner_id: str, now: datetime,
                allowed: bool, reason: Optional[str] = None) -> None:
        with self._log_lock:
            self._log.append(RequestLogEntry(
                phone=phone, owner_id=owner_id, timestamp=now,
                allowed=allowed, reason=reason,
            ))

    def check(self, owner_id: str, phone: str, now: Optional[datetime] = None) -> RateLimitInfo:
        """
        Admit or deny one booking request.

        Returns:
            The caller's remaining allowance after this request.

        Raises:
            RateLimitExceeded: 429, checked first.
            ClientBlocked: 403, only once the rate limit has passed.
        """
        now = now or self.clock()
        phone = normalize_phone(phone)
        try:
            info = self.rate_limiter.check(phone, now)
        except RateLimitExceeded:
            self._record(phone, owner_id, now, allowed=False, reason="rate_limited")
            raise
        try:
            self.block_list.check(owner_id, phone)
        except ClientBlocked:
            self._record(phone, owner_id, now, allowed=False, reason="blocked")
            raise
        self._record(phone, owner_id, now, allowed=True)
        return info

    def stats(self) -> GateStats:
        with self._log_lock:
            entries = list(self._log)
        per_phone = Counter(entry.phone for entry in entries)
        return GateStats(
            total_requests=len(entries),
            unique_phone_numbers=len(per_phone),
            blocked_requests=sum(1 for e in entries if e.reason == "blocked"),
            rate_limited_requests=sum(1 for e in entries if e.reason == "rate_limited"),
            top_requesters=[
                Requester(phone=phone, request_count=count)
                for phone, count in per_phone.most_common(TOP_REQUESTERS)
            ],
        )

    def clear_log(self) -> None:
        with self._log_lock:
            self._log.clear()
