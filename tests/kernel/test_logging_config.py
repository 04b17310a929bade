"""Tests for the structured logging system (paytime_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from paytime_kernel.exceptions import LockTimeoutError
from paytime_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start from an unconfigured tree, then restore the suite's configuration."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


class _Opaque:
    def __str__(self) -> str:
        return "opaque"


# ---------------------------------------------------------------------------
# StructuredFormatter
# ---------------------------------------------------------------------------


class TestStructuredFormatter:

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "paytime.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("week_reconciled", extra={"paid_minutes": 2370, "flagged": False})

        record = _parse_log(stream)
        assert record["paid_minutes"] == 2370
        assert record["flagged"] is False

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(employee_id="E001", run_id="run-7")
        get_logger("test").info("with_context")

        record = _parse_log(stream)
        assert record["employee_id"] == "E001"
        assert record["run_id"] == "run-7"

    def test_context_wins_over_colliding_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(employee_id="E001")
        get_logger("test").info("collide", extra={"employee_id": "E999"})

        assert _parse_log(stream)["employee_id"] == "E001"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record
        assert "exc_code" not in record

    def test_paytime_exception_code_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise LockTimeoutError("loan_ledger", 30.0)
        except LockTimeoutError:
            get_logger("test").error("lock_error", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "LOCK_TIMEOUT"
        assert record["exc_type"] == "LockTimeoutError"
        assert record["exc_lock_name"] == "loan_ledger"
        assert record["exc_timeout_seconds"] == 30.0

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "employee_id" not in record
        assert "payslip_id" not in record

    def test_domain_values_serialized(self):
        from datetime import UTC, date, datetime
        from decimal import Decimal

        from paytime_engines.payroll import EmploymentStatus

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "values",
            extra={
                "payslip_uuid": uid,
                "amount": Decimal("150.00"),
                "week_ending": date(2026, 1, 10),
                "status": EmploymentStatus.PERMANENT,
                "synced_at": datetime(2026, 1, 5, 8, 0, tzinfo=UTC),
                "path": _Opaque(),
            },
        )

        record = _parse_log(stream)
        assert record["payslip_uuid"] == str(uid)
        assert record["amount"] == "150.00"
        assert record["week_ending"] == "2026-01-10"
        assert record["status"] == "Permanent"
        assert record["synced_at"] == "2026-01-05T08:00:00+00:00"
        assert record["path"] == "opaque"

    def test_default_level_drops_debug(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        assert [r["message"] for r in logs] == ["first", "second"]


# ---------------------------------------------------------------------------
# LogContext
# ---------------------------------------------------------------------------


class TestLogContext:

    def test_set_and_get(self):
        LogContext.set(employee_id="E001", payslip_id="p-1")
        assert LogContext.get_all() == {"employee_id": "E001", "payslip_id": "p-1"}

    def test_none_does_not_overwrite(self):
        LogContext.set(actor_id="clerk")
        LogContext.set(actor_id=None, run_id="r")
        assert LogContext.get_all() == {"actor_id": "clerk", "run_id": "r"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous_value(self):
        LogContext.set(employee_id="outer")
        with LogContext.bind(employee_id="inner"):
            assert LogContext.get_all()["employee_id"] == "inner"
        assert LogContext.get_all()["employee_id"] == "outer"

    def test_bind_restores_none(self):
        with LogContext.bind(payslip_id="temp"):
            assert LogContext.get_all()["payslip_id"] == "temp"
        assert "payslip_id" not in LogContext.get_all()

    def test_bind_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(run_id="doomed"):
                raise RuntimeError
        assert LogContext.get_all() == {}

    def test_bind_ignores_unknown_fields(self):
        with LogContext.bind(trace_id="t", actor_id="a"):
            assert LogContext.get_all() == {"actor_id": "a"}


# ---------------------------------------------------------------------------
# configure_logging
# ---------------------------------------------------------------------------


class TestConfigureLogging:

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        assert logging.getLogger("paytime").handlers == [h1]

    def test_get_logger_returns_child(self):
        assert get_logger("modules.loans").name == "paytime.modules.loans"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "paytime.deep.nested.module"
