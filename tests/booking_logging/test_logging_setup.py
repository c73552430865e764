"""Tests for log setup, formatters, filters and context."""

import asyncio
import io
import json
import logging
import sys
from datetime import UTC, datetime

import pytest

from booking_engine.booking_logging import log_booking_context, log_context, setup_logging
from booking_engine.booking_logging.context import ContextFilter, LogContext
from booking_engine.booking_logging.filters import DefaultCorrelationFilter, PIIFilter
from booking_engine.booking_logging.formatters import DevFormatter, JSONFormatter


def make_record(msg: str, name: str = "booking_engine.test") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture
def logger():
    logger = logging.getLogger("booking_engine.test.context")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def captured_records(logger):
    records: list[logging.LogRecord] = []

    class RecordCapture(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    handler = RecordCapture()
    handler.addFilter(ContextFilter())
    logger.addHandler(handler)
    yield records
    logger.removeHandler(handler)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestPIIFilter:
    def test_masks_passenger_email(self):
        record = make_record("Submitting booking for ana.souza@example.com")
        PIIFilter().filter(record)

        assert "[EMAIL]" in record.msg
        assert "ana.souza@example.com" not in record.msg

    def test_masks_phone_number(self):
        record = make_record("Passenger cell 212-555-0100")
        PIIFilter().filter(record)

        assert "[PHONE]" in record.msg
        assert "212-555-0100" not in record.msg

    def test_leaves_plain_messages_alone(self):
        record = make_record("Accepted rate quote")
        PIIFilter().filter(record)

        assert record.msg == "Accepted rate quote"


@pytest.mark.unit
class TestDefaultCorrelationFilter:
    def test_adds_placeholder(self):
        record = make_record("hello")
        DefaultCorrelationFilter().filter(record)
        assert record.correlation_id == "-"

    def test_keeps_existing_value(self):
        record = make_record("hello")
        record.correlation_id = "booking-1"
        DefaultCorrelationFilter().filter(record)
        assert record.correlation_id == "booking-1"


@pytest.mark.unit
class TestLogContext:
    def test_log_context_adds_fields(self, logger, captured_records):
        with log_context(generation=3):
            logger.info("Requesting rates")

        assert captured_records[0].generation == 3

    def test_fields_are_cleared_on_exit(self, logger, captured_records):
        with log_context(generation=3):
            pass
        logger.info("after")

        assert not hasattr(captured_records[0], "generation")
        assert LogContext.get() == {}

    def test_booking_context_sets_correlation_id(self, logger, captured_records):
        with log_booking_context("abc123"):
            logger.info("Booking session started")

        record = captured_records[0]
        assert record.booking_id == "abc123"
        assert record.correlation_id == "abc123"

    def test_nested_contexts_merge(self, logger, captured_records):
        with log_booking_context("abc123"), log_context(reservation_id=4242):
            logger.info("Updating reservation")

        record = captured_records[0]
        assert record.booking_id == "abc123"
        assert record.reservation_id == 4242

    async def test_tasks_inherit_context(self, logger, captured_records):
        async def fetch():
            logger.info("inside task")

        with log_booking_context("abc123"):
            task = asyncio.create_task(fetch())
        await task

        assert captured_records[0].booking_id == "abc123"


@pytest.mark.unit
class TestFormatters:
    def test_json_formatter_includes_context_fields(self):
        record = make_record("Accepted rate quote")
        record.booking_id = "abc123"
        record.generation = 2

        data = json.loads(JSONFormatter(environment="production").format(record))

        assert data["message"] == "Accepted rate quote"
        assert data["level"] == "INFO"
        assert data["env"] == "production"
        assert data["booking_id"] == "abc123"
        assert data["generation"] == 2
        assert "reservation_id" not in data

    def test_json_formatter_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "booking_engine.test", logging.ERROR, "test.py", 1, "failed", (), sys.exc_info()
            )

        data = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in data["exception"]

    def test_dev_formatter(self):
        record = make_record("Accepted rate quote")
        record.correlation_id = "abc123"

        output = DevFormatter().format(record)

        assert "[corr=abc123]" in output
        assert "booking_engine.test: Accepted rate quote" in output

    def test_dev_formatter_appends_bound_fields(self):
        record = make_record("Accepted rate quote")
        record.correlation_id = "abc123"
        record.booking_id = "abc123"
        record.generation = 4
        record.leg_role = "return"

        output = DevFormatter().format(record)

        assert output.endswith("Accepted rate quote {leg_role=return generation=4}")

    def test_json_formatter_uses_record_time(self):
        record = make_record("hello")
        record.created = 1_700_000_000.0

        data = json.loads(JSONFormatter().format(record))

        assert data["timestamp"] == datetime.fromtimestamp(1_700_000_000.0, UTC).isoformat()
        assert "source" not in data

    def test_json_formatter_adds_source_for_warnings(self):
        record = logging.LogRecord(
            "booking_engine.test", logging.WARNING, "/src/coordinator.py", 42, "slow", (), None
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["source"] == "coordinator:42"


@pytest.mark.unit
class TestSetupLogging:
    def test_installs_single_handler(self, restore_root_logger):
        setup_logging(level="debug", json_output=True, environment="staging")

        root = restore_root_logger
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        handler = root.handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)
        assert [type(f) for f in handler.filters] == [
            ContextFilter,
            DefaultCorrelationFilter,
            PIIFilter,
        ]
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_text_output_uses_dev_formatter(self, restore_root_logger):
        setup_logging()

        assert isinstance(restore_root_logger.handlers[0].formatter, DevFormatter)

    def test_bound_correlation_id_wins(self, restore_root_logger):
        setup_logging()
        handler = restore_root_logger.handlers[0]
        record = make_record("hello")

        with log_booking_context("abc123"):
            for log_filter in handler.filters:
                log_filter.filter(record)

        assert record.correlation_id == "abc123"

    def test_custom_quiet_loggers(self, restore_root_logger):
        noisy = logging.getLogger("booking_engine.test.noisy")
        try:
            setup_logging(quiet_loggers=["booking_engine.test.noisy"])
            assert noisy.level == logging.WARNING
        finally:
            noisy.setLevel(logging.NOTSET)

    def test_writes_to_given_stream(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(json_output=True, stream=stream)

        logging.getLogger("booking_engine.test.stream").info("Booking session started")

        assert json.loads(stream.getvalue())["message"] == "Booking session started"

    def test_unknown_level_is_rejected(self, restore_root_logger):
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(level="trace")
