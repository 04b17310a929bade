"""
WeeklyAggregator -- per-day reconciliation and the weekly fold.

Pipeline per day: classify -> grace-adjust -> paid time -> bathroom.
Each day is computed from its own punches only; nothing looks across days.
``process_clock_data`` is the public entry point over a week of raw punches.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import (
    ClockDataResult,
    DayRecord,
    Punch,
    RawPunch,
    WeekRecord,
)
from paytime_engines.bathroom import reconcile_bathroom
from paytime_engines.clock_classifier import classify_day
from paytime_engines.grace import adjust_times
from paytime_engines.paid_time import calculate_paid_time
from paytime_engines.punches import normalize_punches
from paytime_engines.tracer import traced_engine
from paytime_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.weekly")

SATURDAY = 5


def week_ending_for(day: date) -> date:
    """The Saturday on or after ``day``."""
    return day + timedelta(days=(SATURDAY - day.weekday()) % 7)


def process_day(
    work_date: date,
    main_punches: Sequence[Punch],
    bathroom_punches: Sequence[Punch],
    config: ReconciliationConfig,
) -> DayRecord:
    slots = classify_day(work_date, main_punches, config)
    grace = adjust_times(work_date, slots, config)
    paid = calculate_paid_time(work_date, grace.adjusted, config)
    bathroom = reconcile_bathroom(work_date, grace.adjusted, bathroom_punches, config)

    return DayRecord(
        work_date=work_date,
        weekday=work_date.strftime("%A"),
        classified_slots=slots,
        adjusted_times=grace.adjusted,
        paid_minutes=paid.paid_minutes,
        lunch_minutes=paid.lunch_minutes,
        bathroom_minutes=bathroom.bathroom_minutes,
        scenario=paid.scenario,
        warnings=grace.flags + paid.flags + bathroom.flags,
    )


def aggregate_week(
    days: Sequence[DayRecord],
    employee_ref: str = "",
    week_ending: date | None = None,
    notes: Iterable[str] = (),
) -> WeekRecord:
    """Pure fold of day records into weekly totals."""
    ordered = tuple(sorted(days, key=lambda d: d.work_date))
    raw_minutes = sum(d.paid_minutes for d in ordered)
    warnings = tuple(
        f"{d.work_date.isoformat()} ({d.weekday}): {w}" for d in ordered for w in d.warnings
    )
    return WeekRecord(
        employee_ref=employee_ref,
        week_ending=week_ending,
        daily_breakdown=ordered,
        total_hours=raw_minutes // 60,
        total_minutes=raw_minutes % 60,
        raw_minutes=raw_minutes,
        total_lunch_minutes=sum(d.lunch_minutes for d in ordered),
        total_bathroom_minutes=sum(d.bathroom_minutes for d in ordered),
        warnings=warnings,
        notes=tuple(notes),
    )


@traced_engine("clock_data", "1.0", fingerprint_fields=("employee_ref", "week_ending", "strict"))
def process_clock_data(
    raw_punches: Iterable[RawPunch],
    config: ReconciliationConfig,
    employee_ref: str = "",
    week_ending: date | None = None,
    strict: bool = False,
) -> ClockDataResult:
    """
    Reconcile one employee's raw punches into weekly worked time.

    Raises:
        InvalidPunchDataError: only in ``strict`` mode, for unparseable rows.
    """
    with LogContext.bind(employee_id=employee_ref or None):
        normalized = normalize_punches(raw_punches, config, strict=strict)
        days = [
            process_day(
                day,
                normalized.main_by_day.get(day, ()),
                normalized.bathroom_by_day.get(day, ()),
                config,
            )
            for day in normalized.days
        ]
        if week_ending is None and days:
            week_ending = week_ending_for(days[-1].work_date)

        week = aggregate_week(days, employee_ref, week_ending, normalized.notes)
        logger.info(
            "clock_data_processed",
            extra={
                "day_count": len(days),
                "raw_minutes": week.raw_minutes,
                "warning_count": len(week.warnings),
                "week_ending": week_ending,
            },
        )

    return ClockDataResult(
        hours=week.total_hours,
        minutes=week.total_minutes,
        raw_minutes=week.raw_minutes,
        lunch_minutes=week.total_lunch_minutes,
        bathroom_minutes=week.total_bathroom_minutes,
        daily_breakdown=week.daily_breakdown,
        warnings=week.warnings,
        week=week,
    )
