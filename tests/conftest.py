"""
Pytest fixtures for the forecast test suite.

Provides:
- Structured logging configured once per session, plus a JSON log capture
- A deterministic clock and the default forecast policy
- A file-backed SQLite database for selector and SQL source tests

SQLite runs from a temporary file rather than ``:memory:`` because the
forecast service reads from several threads, and each in-memory SQLite
connection would see its own empty database.
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from forecast_config.schema import ForecastPolicy
from forecast_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from forecast_kernel.domain.clock import DeterministicClock
from forecast_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture forecast_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            service.get_forecast(project_id)
            logs = captured_logs()
            assert any(r["message"] == "forecast_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("forecast_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and policy
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at Tuesday 2024-03-12, inside the week ending 2024-03-17."""
    return DeterministicClock(datetime(2024, 3, 12, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> ForecastPolicy:
    return ForecastPolicy()


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def sqlite_session_factory(tmp_path):
    """Session factory over a fresh file-backed SQLite database."""
    init_engine_from_url(f"sqlite:///{tmp_path / 'forecast.db'}")
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def session(sqlite_session_factory):
    with sqlite_session_factory() as session:
        yield session
