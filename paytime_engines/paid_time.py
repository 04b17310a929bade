"""
PaidTimeCalculator -- paid minutes for a day from its adjusted clock slots.

The scenario is selected by an exhaustive table keyed on the set of slots
that are present.  Every one of the 16 non-Friday combinations and the 4
Friday combinations has an entry, so selection can never fall through.

Only two non-Friday scenarios pay time:

    {1,2,3,4}  normal              (C4 - C1) - standard lunch
    {1,3,4}    missing_lunch_out   (C4 - C1) - standard lunch, flagged

and one Friday scenario:

    {1,2}      friday_normal       C2 - C1

Every other combination pays 0 and is flagged for manual adjustment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import ClockSlot, is_friday, minutes_between
from paytime_kernel.logging_config import get_logger

logger = get_logger("engines.paid_time")

MANUAL_ADJUSTMENT = "Manual adjustment required"
MISSING_LUNCH_OUT = "Missing lunch out clock - standard lunch deducted"
NEGATIVE_CLAMPED = "Negative paid time clamped to zero"


class PayRule(Enum):
    SPAN_MINUS_LUNCH = "span_minus_lunch"  # (C4 - C1) - standard lunch
    FRIDAY_SPAN = "friday_span"  # C2 - C1
    NONE = "none"  # 0, manual adjustment


@dataclass(frozen=True)
class Scenario:
    label: str
    rule: PayRule
    flag: str | None = None


@dataclass(frozen=True)
class PaidTimeResult:
    scenario: str
    paid_minutes: int
    lunch_minutes: int
    flags: tuple[str, ...] = ()


def _slots(*numbers: int) -> frozenset[ClockSlot]:
    return frozenset(ClockSlot(n) for n in numbers)


def _manual(label: str) -> Scenario:
    return Scenario(label=label, rule=PayRule.NONE)


WEEKDAY_SCENARIOS: dict[frozenset[ClockSlot], Scenario] = {
    _slots(1, 2, 3, 4): Scenario("normal", PayRule.SPAN_MINUS_LUNCH),
    _slots(1, 3, 4): Scenario("missing_lunch_out", PayRule.SPAN_MINUS_LUNCH, MISSING_LUNCH_OUT),
    _slots(1, 2, 4): _manual("missing_lunch_return"),
    _slots(1, 2, 3): _manual("missing_clock_out"),
    _slots(2, 3, 4): _manual("missing_clock_in"),
    _slots(1, 2): _manual("morning_only"),
    _slots(1, 3): _manual("clock_in_and_lunch_return_only"),
    _slots(1, 4): _manual("no_lunch_clocks"),
    _slots(2, 3): _manual("lunch_clocks_only"),
    _slots(2, 4): _manual("lunch_out_and_clock_out_only"),
    _slots(3, 4): _manual("afternoon_only"),
    _slots(1): _manual("clock_in_only"),
    _slots(2): _manual("lunch_out_only"),
    _slots(3): _manual("lunch_return_only"),
    _slots(4): _manual("clock_out_only"),
    _slots(): _manual("no_clocks"),
}

FRIDAY_SCENARIOS: dict[frozenset[ClockSlot], Scenario] = {
    _slots(1, 2): Scenario("friday_normal", PayRule.FRIDAY_SPAN),
    _slots(1): _manual("friday_clock_in_only"),
    _slots(2): _manual("friday_clock_out_only"),
    _slots(): _manual("friday_no_clocks"),
}

_FRIDAY_SLOTS = _slots(1, 2)


def select_scenario(work_date: date, present: frozenset[ClockSlot]) -> Scenario:
    """Look up the scenario for the present slots. Never raises."""
    if is_friday(work_date):
        return FRIDAY_SCENARIOS[present & _FRIDAY_SLOTS]
    return WEEKDAY_SCENARIOS[present]


def _missing_message(work_date: date, present: frozenset[ClockSlot]) -> str:
    expected = _FRIDAY_SLOTS if is_friday(work_date) else frozenset(ClockSlot)
    missing = sorted(expected - present, key=lambda s: s.value)
    return f"{MANUAL_ADJUSTMENT}: missing " + ", ".join(s.label for s in missing)


def calculate_paid_time(
    work_date: date,
    adjusted: dict[ClockSlot, datetime],
    config: ReconciliationConfig,
) -> PaidTimeResult:
    present = frozenset(adjusted)
    scenario = select_scenario(work_date, present)
    flags: list[str] = []

    if scenario.rule is PayRule.SPAN_MINUS_LUNCH:
        lunch = config.standard_lunch_minutes
        paid = minutes_between(adjusted[ClockSlot.CLOCK1], adjusted[ClockSlot.CLOCK4]) - lunch
    elif scenario.rule is PayRule.FRIDAY_SPAN:
        lunch = 0
        paid = minutes_between(adjusted[ClockSlot.CLOCK1], adjusted[ClockSlot.CLOCK2])
    else:
        lunch = 0
        paid = 0
        flags.append(_missing_message(work_date, present))

    if scenario.flag:
        flags.append(scenario.flag)

    if paid < 0:
        logger.warning(
            "negative_paid_time_clamped",
            extra={"work_date": work_date, "scenario": scenario.label, "paid_minutes": paid},
        )
        flags.append(NEGATIVE_CLAMPED)
        paid = 0

    return PaidTimeResult(
        scenario=scenario.label,
        paid_minutes=paid,
        lunch_minutes=lunch,
        flags=tuple(flags),
    )
