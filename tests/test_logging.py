"""Tests for the structured logging system (mis_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from mis_kernel.domain.transition_guard import GuardOutcome
from mis_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "mis_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("reconciled", extra={"new": 3, "reason_code": "STALE_DATE"})

        record = _parse_log(stream)
        assert record["new"] == 3
        assert record["reason_code"] == "STALE_DATE"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="MIS-2025-01-20-abc", upload_id="MIS-2025-01-20-abc")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "MIS-2025-01-20-abc"
        assert record["upload_id"] == "MIS-2025-01-20-abc"

    def test_context_wins_over_extra_with_same_name(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(application_id="CTX")
        get_logger("test").info("clash", extra={"application_id": "EXTRA"})

        assert _parse_log(stream)["application_id"] == "CTX"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """MIS kernel exceptions carry a .code attribute and structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        from mis_kernel.exceptions import SourceFileError

        try:
            raise SourceFileError("/tmp/mis.xlsx", "file not found")
        except SourceFileError:
            get_logger("test").error("source_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "SOURCE_FILE_ERROR"
        assert record["exc_type"] == "SourceFileError"
        assert record["exc_path"] == "/tmp/mis.xlsx"
        assert record["exc_detail"] == "file not found"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "upload_id" not in record

    def test_non_json_types_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "typed",
            extra={"record_id": uid, "pct": Decimal("12.5"), "outcome": GuardOutcome.STALE_DATE},
        )

        record = _parse_log(stream)
        assert record["record_id"] == str(uid)
        assert record["pct"] == "12.5"
        assert record["outcome"] == "STALE_DATE"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= set(record)


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", upload_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "upload_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner"):
            assert LogContext.get_all()["correlation_id"] == "inner"
        assert LogContext.get_all()["correlation_id"] == "outer"

    def test_bind_restores_none(self):
        assert "producer" not in LogContext.get_all()
        with LogContext.bind(producer="ingestion.commit"):
            assert LogContext.get_all()["producer"] == "ingestion.commit"
        assert "producer" not in LogContext.get_all()

    def test_additive_set(self):
        LogContext.set(correlation_id="a")
        LogContext.set(actor_id="b")
        ctx = LogContext.get_all()
        assert ctx["correlation_id"] == "a"
        assert ctx["actor_id"] == "b"

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            upload_id="u",
            actor_id="a",
            producer="p",
            application_id="APP1",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["application_id"] == "APP1"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        assert len(logging.getLogger("mis_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("ingestion.reconciliation").name == "mis_kernel.ingestion.reconciliation"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "mis_kernel.deep.nested.module"
