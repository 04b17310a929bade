"""
GraceAdjuster -- snaps near-standard punches onto their standard times.

Clock1 counts from the standard start unless it is past the grace window.
Clock2 snaps to lunch start inside the lunch-out grace window.  Clock3 and
Clock4 are never moved, only flagged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import ClockSlot, Punch, is_friday

LATE_CLOCK_IN = "Late clock-in"
LATE_LUNCH_RETURN = "Late lunch return - review"
OVERTIME_REVIEW = "Overtime - manual review"
FRIDAY_OVERTIME_REVIEW = "Friday overtime - manual review"


@dataclass(frozen=True)
class GraceResult:
    adjusted: dict[ClockSlot, datetime]
    flags: tuple[str, ...] = ()


def _on(work_date: date, at: time) -> datetime:
    return datetime.combine(work_date, at)


def adjust_times(
    work_date: date,
    slots: dict[ClockSlot, Punch],
    config: ReconciliationConfig,
) -> GraceResult:
    """Apply grace rules to classified slots. Flags come out in slot order."""
    adjusted: dict[ClockSlot, datetime] = {}
    flags: list[str] = []

    c1 = slots.get(ClockSlot.CLOCK1)
    if c1 is not None:
        start = _on(work_date, config.standard_start_time)
        grace_end = start + timedelta(minutes=config.grace_minutes)
        if c1.timestamp <= grace_end:
            adjusted[ClockSlot.CLOCK1] = start
        else:
            adjusted[ClockSlot.CLOCK1] = c1.timestamp
            flags.append(LATE_CLOCK_IN)

    c2 = slots.get(ClockSlot.CLOCK2)
    if c2 is not None:
        if is_friday(work_date):
            adjusted[ClockSlot.CLOCK2] = c2.timestamp
            if c2.timestamp > _on(work_date, config.friday_end_time):
                flags.append(FRIDAY_OVERTIME_REVIEW)
        else:
            lunch_start = _on(work_date, config.lunch_start_time)
            lunch_grace_end = lunch_start + timedelta(minutes=config.lunch_out_grace_minutes)
            if lunch_start <= c2.timestamp <= lunch_grace_end:
                adjusted[ClockSlot.CLOCK2] = lunch_start
            else:
                adjusted[ClockSlot.CLOCK2] = c2.timestamp

    c3 = slots.get(ClockSlot.CLOCK3)
    if c3 is not None:
        adjusted[ClockSlot.CLOCK3] = c3.timestamp
        if c3.timestamp > _on(work_date, config.lunch_end_time):
            flags.append(LATE_LUNCH_RETURN)

    c4 = slots.get(ClockSlot.CLOCK4)
    if c4 is not None:
        adjusted[ClockSlot.CLOCK4] = c4.timestamp
        if c4.timestamp > _on(work_date, config.standard_end_time):
            flags.append(OVERTIME_REVIEW)

    return GraceResult(adjusted=adjusted, flags=tuple(flags))
