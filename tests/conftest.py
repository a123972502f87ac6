"""
Pytest fixtures for the billing kernel test suite.

Provides:
- Structured logging configured once per session, LogContext cleared per test
- captured_logs: billing_kernel log records as parsed JSON dicts
- Deterministic clock
- SQLite database sessions for the persistence tests

Environment Variables:
- DATABASE_URL: SQLAlchemy URL for the persistence tests.
  If not set, uses an in-memory SQLite database.
"""

import json
import logging
import os
from datetime import date
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from billing_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.domain.sequence import VoucherType, default_sequence_config
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from billing_kernel.services.sequence_service import InMemorySequenceStore, SequenceService

DEFAULT_TEST_URL = "sqlite://"


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
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, sequence_service):
            sequence_service.issue("invoice")
            logs = captured_logs()
            assert any(r["message"] == "sequence_issued" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
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
# Clock fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock fixed at 2024-03-20 12:00 UTC."""
    return DeterministicClock.on(date(2024, 3, 20))


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh engine and schema per test."""
    engine = init_engine_from_url(os.environ.get("DATABASE_URL", DEFAULT_TEST_URL))
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Session rolled back after each test."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def sequence_service(session) -> SequenceService:
    """SequenceService with every voucher type registered at its defaults."""
    service = SequenceService(session)
    service.initialize_sequences()
    return service


@pytest.fixture
def memory_store() -> InMemorySequenceStore:
    """In-memory store with every voucher type registered at its defaults."""
    return InMemorySequenceStore({vt: default_sequence_config(vt) for vt in VoucherType})
