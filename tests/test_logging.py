"""Tests for the structured logging system (forecast_kernel/logging_config.py)."""

import json
import logging
import threading
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from forecast_kernel.domain.categories import CostCategory
from forecast_kernel.exceptions import UpstreamFetchFailureError
from forecast_kernel.logging_config import (
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
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "forecast_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("po_rollup_completed", extra={"excluded_orders": 2})

        record = _parse_log(stream)
        assert record["excluded_orders"] == 2

    def test_decimal_rendered_as_string(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("rate", extra={"rate": Decimal("50.0000")})

        assert _parse_log(stream)["rate"] == "50.0000"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", project_id="p-1")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["project_id"] == "p-1"

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

    def test_forecast_exception_code_extracted(self):
        """Forecast kernel exceptions carry .code and structured attributes."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        try:
            raise UpstreamFetchFailureError("purchase_orders", "p-9", "timeout")
        except UpstreamFetchFailureError:
            logger.error("fetch_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "UPSTREAM_FETCH_FAILURE"
        assert record["exc_component"] == "purchase_orders"
        assert record["exc_project_id"] == "p-9"

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "project_id" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"entry_id": uid})

        assert _parse_log(stream)["entry_id"] == str(uid)

    def test_enum_and_set_values_encoded(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "rollup",
            extra={"category": CostCategory.MATERIALS, "statuses": {"open", "closed"}},
        )

        record = _parse_log(stream)
        assert record["category"] == CostCategory.MATERIALS.value
        assert record["statuses"] == ["closed", "open"]

    def test_thread_name_on_worker_threads(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("on_main")
        worker = threading.Thread(
            target=lambda: logger.info("on_worker"), name="forecast-fetch_0"
        )
        worker.start()
        worker.join()

        main_record, worker_record = _parse_all_logs(stream)
        assert "thread" not in main_record
        assert worker_record["thread"] == "forecast-fetch_0"


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
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", project_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "project_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(project_id="outer")
        with LogContext.bind(project_id="inner"):
            assert LogContext.get_all()["project_id"] == "inner"
        assert LogContext.get_all()["project_id"] == "outer"

    def test_bind_restores_none(self):
        assert "project_id" not in LogContext.get_all()
        with LogContext.bind(project_id="temp"):
            assert LogContext.get_all()["project_id"] == "temp"
        assert "project_id" not in LogContext.get_all()

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            project_id="p",
            as_of="2024-03-12",
            policy_checksum="abc",
            actor_id="a",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 5
        assert ctx["as_of"] == "2024-03-12"

    def test_set_skips_none(self):
        LogContext.set(project_id="p", actor_id=None)
        assert LogContext.get_all() == {"project_id": "p"}

    def test_unknown_field_rejected_by_set(self):
        with pytest.raises(ValueError, match="trace_id"):
            LogContext.set(trace_id="t")

    def test_unknown_field_rejected_by_bind(self):
        with pytest.raises(ValueError):
            LogContext.bind(request_id="r")

    def test_bind_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(correlation_id="temp"):
                raise RuntimeError("fail")
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        assert len(logging.getLogger("forecast_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("engines.reconciler").name == "forecast_kernel.engines.reconciler"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "forecast_kernel.deep.nested.module"
