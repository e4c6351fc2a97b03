"""
Tests for structured logging: JSON output, request ids and PII masking.
"""

import io
import json
import logging

import pytest

from shared.config.logging import (
    CorrelationIdFilter,
    DevelopmentFormatter,
    StructuredFormatter,
    get_logger,
    mask_email,
    setup_logging,
)
from shared.infrastructure.context import OperationContext


@pytest.fixture
def capture():
    """Logger wired to an in-memory JSON handler."""
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(StructuredFormatter())

    logger = get_logger("tests.logging.capture")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    logger.propagate = False
    yield logger, stream
    logger.removeHandler(handler)


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestStructuredFormatter:

    def test_domain_fields_are_top_level(self, capture):
        logger, stream = capture

        logger.warning("Uniqueness conflict", kind="conflict", entity="staff", rule="email", attempts=2)

        [record] = _records(stream)
        assert record["level"] == "WARNING"
        assert record["message"] == "Uniqueness conflict"
        assert record["kind"] == "conflict"
        assert record["entity"] == "staff"
        assert record["rule"] == "email"
        assert record["data"] == {"attempts": 2}

    def test_no_data_key_without_context(self, capture):
        logger, stream = capture

        logger.info("Schema ready")

        [record] = _records(stream)
        assert "data" not in record
        assert "request_id" not in record

    def test_request_id_from_operation_context(self, capture):
        logger, stream = capture

        with OperationContext(request_id="req-1234").bind():
            logger.info("Inside")
        logger.info("Outside")

        inside, outside = _records(stream)
        assert inside["request_id"] == "req-1234"
        assert "request_id" not in outside

    def test_exception_included(self, capture):
        logger, stream = capture

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.error("Commit failed", exc_info=True, operation="create users")

        [record] = _records(stream)
        assert record["operation"] == "create users"
        assert "RuntimeError: boom" in record["exception"]

    def test_disabled_level_emits_nothing(self, capture):
        logger, stream = capture
        logger.setLevel(logging.WARNING)

        logger.debug("hidden", entity="user")

        assert stream.getvalue() == ""


class TestDevelopmentFormatter:

    def test_promoted_fields_listed_first(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "Created", None, None)
        record.extra_data = {"attempts": 1, "entity": "client"}

        line = DevelopmentFormatter().format(record)

        assert "Created (entity=client | attempts=1)" in line


class TestSetupLogging:

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_explicit_level_and_stream(self):
        stream = io.StringIO()

        setup_logging("warning", stream=stream)
        get_logger("tests.logging.setup").info("quiet")
        get_logger("tests.logging.setup").warning("loud")

        assert logging.getLogger().level == logging.WARNING
        assert "loud" in stream.getvalue()
        assert "quiet" not in stream.getvalue()

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging("chatty")


class TestMaskEmail:

    @pytest.mark.parametrize(
        "email,expected",
        [
            ("user@example.com", "us***@example.com"),
            (None, "<no-email>"),
            ("", "<no-email>"),
            ("ab@example.com", "a***@example.com"),
            ("not-an-email", "***@invalid"),
        ],
    )
    def test_masking(self, email, expected):
        assert mask_email(email) == expected
