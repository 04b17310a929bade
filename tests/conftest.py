"""
Pytest fixtures for the paytime test suite.

Provides:
- In-memory SQLite database sessions (fresh schema per test)
- A deterministic clock
- The default reconciliation configuration
- Structured log capture
"""

import json
import logging
from datetime import UTC, datetime
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from paytime_config import default_config
from paytime_config.schema import ReconciliationConfig
from paytime_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from paytime_kernel.domain.clock import DeterministicClock
from paytime_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from paytime_kernel.utils.locking import ScopedLock
from paytime_modules.loans.ledger import LoanLedger
from paytime_modules.loans.sync import PayslipLoanSyncHandler
from paytime_modules.payslips.service import PayslipService

TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"


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
    Capture paytime logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "loan_sync_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("paytime")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Configuration and clock
# =============================================================================


@pytest.fixture
def config() -> ReconciliationConfig:
    return default_config()


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2026, 1, 12, 9, 0, tzinfo=UTC))


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    eng = init_engine_from_url(TEST_DATABASE_URL)
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(engine) -> Session:
    s = get_session()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def ledger(session, deterministic_clock) -> LoanLedger:
    return LoanLedger(session, deterministic_clock)


@pytest.fixture
def payslip_service(session, ledger, deterministic_clock) -> PayslipService:
    return PayslipService(session, ledger, deterministic_clock)


@pytest.fixture
def ledger_lock() -> ScopedLock:
    """A private lock so tests never contend on the process-wide one."""
    return ScopedLock("loan_ledger_test")


@pytest.fixture
def sync_handler(session, ledger, ledger_lock, config, deterministic_clock) -> PayslipLoanSyncHandler:
    return PayslipLoanSyncHandler(session, ledger, ledger_lock, config, deterministic_clock)
