"""Per-request correlation IDs for booking decisions.

``BookingEngine.check_booking_request`` installs a fresh ID with
``new_request_id()`` before anything else runs. Every logger obtained
through ``get_request_logger`` then stamps that ID on its records. This
covers the gate's allow/deny lines, a travel lookup falling back to its
default, and the lifecycle's insert retries, so one denied or accepted
request can be read back as a single thread in the logs.

The ID lives in a ContextVar, so concurrent requests on different
threads never see each other's ID.

Usage:
    from booking_gate.logging_context import get_request_logger, new_request_id

    logger = get_request_logger(__name__)
    request_id = new_request_id()          # "REQ-1a2b3c4d"
    logger.info("Gate passed")             # record.request_id == request_id
"""

import logging
import uuid
from contextvars import ContextVar

NO_REQUEST_ID = "NO_REQUEST_ID"

_request_id: ContextVar[str] = ContextVar("request_id", default=NO_REQUEST_ID)


def set_request_id(request_id: str) -> None:
    """Adopt an ID chosen by the caller, e.g. one forwarded by the HTTP layer."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """ID of the booking request being handled in this context."""
    return _request_id.get()


def new_request_id() -> str:
    """Start a new booking request: generate an ID and install it."""
    request_id = f"REQ-{uuid.uuid4().hex[:8]}"
    _request_id.set(request_id)
    return request_id


class RequestIdFilter(logging.Filter):
    """Stamps the current booking request's ID on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def get_request_logger(name: str) -> logging.Logger:
    """Module logger carrying the booking request ID.

    Formatters can include ``%(request_id)s``; records logged outside a
    request (owner actions, the expiry sweep) carry ``NO_REQUEST_ID``.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, RequestIdFilter) for f in logger.filters):
        logger.addFilter(RequestIdFilter())
    return logger
