"""Tests for per-request correlation IDs."""

import contextvars
import logging

from booking_gate.logging_context import (
    NO_REQUEST_ID,
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    new_request_id,
    set_request_id,
)


class TestRequestId:
    def test_default_outside_request(self):
        ctx = contextvars.Context()
        assert ctx.run(get_request_id) == NO_REQUEST_ID

    def test_new_id_is_installed(self):
        request_id = new_request_id()
        assert request_id.startswith("REQ-")
        assert get_request_id() == request_id

    def test_ids_are_unique(self):
        assert new_request_id() != new_request_id()

    def test_set_request_id(self):
        set_request_id("REQ-forwarded")
        assert get_request_id() == "REQ-forwarded"


class TestRequestLogger:
    def test_filter_attached_once(self):
        logger = get_request_logger("booking_gate.tests.once")
        get_request_logger("booking_gate.tests.once")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1

    def test_records_carry_request_id(self, caplog):
        logger = get_request_logger("booking_gate.tests.records")
        request_id = new_request_id()
        with caplog.at_level(logging.INFO, logger="booking_gate.tests.records"):
            logger.info("Gate passed")
        assert caplog.records[-1].request_id == request_id
