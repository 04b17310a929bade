"""
Attendance Service (``paytime_modules.attendance.service``).

Responsibility
--------------
Turns header-keyed punch rows (a device export or sheet range) into one
``ClockDataResult`` per employee clock reference.  Mapping goes through
``paytime_ingestion.mapping``; all computation is ``process_clock_data``.

Architecture position
---------------------
**Modules layer** -- no database access.  A run is pure given its rows
and configuration.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date
from pathlib import Path
from typing import Any

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import ClockDataResult, RawPunch
from paytime_engines.weekly import process_clock_data
from paytime_ingestion.csv_adapter import CsvSourceAdapter
from paytime_ingestion.mapping import PUNCH_COLUMNS, map_row
from paytime_kernel.logging_config import LogContext, get_logger

logger = get_logger("modules.attendance.service")


def punches_from_rows(rows: Iterable[Mapping[str, Any]]) -> dict[str, list[RawPunch]]:
    """Group mapped punch rows by clock reference, keeping source row numbers."""
    grouped: dict[str, list[RawPunch]] = defaultdict(list)
    for index, row in enumerate(rows, start=1):
        mapped = map_row(row, PUNCH_COLUMNS).mapped_data
        clock_ref = mapped.get("clock_ref", "")
        grouped[clock_ref].append(
            RawPunch(
                timestamp=mapped.get("timestamp"),
                device_label=mapped.get("device_label", ""),
                clock_ref=clock_ref,
                source_row=index,
            )
        )
    return dict(grouped)


class AttendanceService:
    """Weekly attendance reconciliation over punch rows."""

    def __init__(self, config: ReconciliationConfig, adapter: CsvSourceAdapter | None = None):
        self._config = config
        self._adapter = adapter or CsvSourceAdapter()

    def reconcile_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        week_ending: date | None = None,
        strict: bool = False,
    ) -> dict[str, ClockDataResult]:
        results: dict[str, ClockDataResult] = {}
        with LogContext.bind(run_id=week_ending.isoformat() if week_ending else None):
            for clock_ref, punches in sorted(punches_from_rows(rows).items()):
                results[clock_ref] = process_clock_data(
                    punches,
                    self._config,
                    employee_ref=clock_ref,
                    week_ending=week_ending,
                    strict=strict,
                )
            logger.info(
                "attendance_reconciled",
                extra={
                    "employee_count": len(results),
                    "flagged_count": sum(1 for r in results.values() if r.warnings),
                },
            )
        return results

    def reconcile_csv(
        self,
        path: Path | str,
        options: dict[str, Any] | None = None,
        week_ending: date | None = None,
        strict: bool = False,
    ) -> dict[str, ClockDataResult]:
        rows = self._adapter.read(Path(path), options or {})
        return self.reconcile_rows(rows, week_ending=week_ending, strict=strict)
