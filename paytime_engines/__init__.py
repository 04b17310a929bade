"""
Module: paytime_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines: attendance reconciliation and payroll.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import paytime_kernel, paytime_config and sibling engines.
    MUST NOT import paytime_modules or paytime_ingestion.

Invariants enforced:
    - Purity: engines never read the clock; dates come in as parameters.
    - Decimal-only money arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from paytime_engines import process_clock_data, calculate_payslip
"""

from paytime_engines.attendance_types import (
    ClockDataResult,
    ClockSlot,
    DayRecord,
    Direction,
    Punch,
    PunchClass,
    RawPunch,
    WeekRecord,
)
from paytime_engines.bathroom import BathroomPair, BathroomResult, reconcile_bathroom
from paytime_engines.clock_classifier import classify_day
from paytime_engines.grace import GraceResult, adjust_times
from paytime_engines.paid_time import PaidTimeResult, calculate_paid_time, select_scenario
from paytime_engines.payroll import (
    DisbursementMode,
    EmploymentStatus,
    PayslipInput,
    PayslipResult,
    calculate_payslip,
    payslip_input_from_mapping,
)
from paytime_engines.punches import NormalizedPunches, normalize_punches
from paytime_engines.weekly import aggregate_week, process_clock_data, process_day

__all__ = [
    "BathroomPair",
    "BathroomResult",
    "ClockDataResult",
    "ClockSlot",
    "DayRecord",
    "Direction",
    "DisbursementMode",
    "EmploymentStatus",
    "GraceResult",
    "NormalizedPunches",
    "PaidTimeResult",
    "PayslipInput",
    "PayslipResult",
    "Punch",
    "PunchClass",
    "RawPunch",
    "WeekRecord",
    "adjust_times",
    "aggregate_week",
    "calculate_paid_time",
    "calculate_payslip",
    "classify_day",
    "normalize_punches",
    "payslip_input_from_mapping",
    "process_clock_data",
    "process_day",
    "reconcile_bathroom",
    "select_scenario",
]
