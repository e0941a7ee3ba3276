"""
Tests for structured JSON logging.
"""

import io
import json
import logging

from footwear_erp.logging_config import LogContext, configure_logging, get_logger

from tests.conftest import create_two_instruction_order


def _lines(stream: io.StringIO):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


class TestStructuredLogging:
    def test_records_are_json_with_extras(self):
        stream = io.StringIO()
        configure_logging(level="DEBUG", stream=stream)

        get_logger("test").info("hello", extra={"size": "9", "quantity": 4})

        [record] = _lines(stream)
        assert record["logger"] == "footwear_erp.test"
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert (record["size"], record["quantity"]) == ("9", 4)

    def test_context_fields_are_attached(self):
        stream = io.StringIO()
        configure_logging(stream=stream)

        with LogContext.bind(actor="wh", operation="allocate"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = _lines(stream)
        assert (inside["actor"], inside["operation"]) == ("wh", "allocate")
        assert "actor" not in outside

    def test_configure_is_idempotent(self):
        stream = io.StringIO()
        configure_logging(stream=stream)
        configure_logging(stream=io.StringIO())

        assert len(logging.getLogger("footwear_erp").handlers) == 1

    def test_service_calls_log_with_actor(self, service):
        stream = io.StringIO()
        configure_logging(stream=stream)
        create_two_instruction_order(service)

        service.allocate("m1", "c1", "p1", {"9": 50}, "B1", "wh")

        records = [r for r in _lines(stream) if r["logger"] == "footwear_erp.allocation"]
        [allocated] = [r for r in records if r["message"] == "receipt allocated"]
        assert allocated["actor"] == "wh"
        assert allocated["operation"] == "allocate"
        assert allocated["to_free_stock"] == 10

    def test_exceptions_are_serialised(self):
        stream = io.StringIO()
        configure_logging(stream=stream)

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("test").error("failed", exc_info=True)

        [record] = _lines(stream)
        assert record["exc_type"] == "RuntimeError"
        assert record["exc_message"] == "boom"
