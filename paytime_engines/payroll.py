"""
Payroll Calculator (``paytime_engines.payroll``).

Responsibility
--------------
Computes a weekly payslip from worked time, rate, employment status,
income and deduction components and loan activity.

Architecture position
---------------------
**Engines layer** -- pure, deterministic, side-effect free.  Consumed by
``paytime_modules.payslips.service`` and by the ingestion layer when
recalculating imported rows.

Formula
-------
::

    standard_time   = hours*rate + (rate/60)*minutes
    overtime        = 1.5 * (ot_hours*rate + (rate/60)*ot_minutes)
    gross           = standard_time + overtime + leave + bonus + other_income
    uif             = gross * 1%  (Permanent only)
    total_deduction = uif + other_deductions
    net             = gross - total_deduction
    paid_to_account = net - loan_deduction + (new_loan if "With Salary")
    updated_balance = current_balance - loan_deduction + new_loan

Invariants enforced
-------------------
* All arithmetic is ``Decimal``; intermediates stay exact.
* Outputs are rounded once, ROUND_HALF_UP to 2 places.

Failure modes
-------------
* Never raises for numeric input: ``payslip_input_from_mapping`` degrades
  blank or unparseable values to zero (logged).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from paytime_engines.tracer import traced_engine
from paytime_kernel.domain.money import ZERO, round_money, to_decimal
from paytime_kernel.logging_config import get_logger

logger = get_logger("engines.payroll")

UIF_RATE = Decimal("0.01")
OVERTIME_MULTIPLIER = Decimal("1.5")
MINUTES_PER_HOUR = Decimal("60")


class EmploymentStatus(Enum):
    """Employment status; only Permanent staff pay UIF."""
    PERMANENT = "Permanent"
    TEMPORARY = "Temporary"
    CONTRACT = "Contract"

    @classmethod
    def parse(cls, value: Any) -> EmploymentStatus:
        """Case-insensitive lookup; unknown values are treated as Temporary."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        logger.warning("unknown_employment_status", extra={"value": str(value)})
        return cls.TEMPORARY


class DisbursementMode(Enum):
    """How a new loan reaches the employee."""
    WITH_SALARY = "With Salary"
    SEPARATE = "Separate"
    REPAYMENT = "Repayment"
    NONE = ""

    @classmethod
    def parse(cls, value: Any) -> DisbursementMode:
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        logger.warning("unknown_disbursement_mode", extra={"value": str(value)})
        return cls.NONE


@dataclass(frozen=True)
class PayslipInput:
    """Everything ``calculate_payslip`` reads."""
    hours: Decimal = ZERO
    minutes: Decimal = ZERO
    hourly_rate: Decimal = ZERO
    employment_status: EmploymentStatus = EmploymentStatus.TEMPORARY
    overtime_hours: Decimal = ZERO
    overtime_minutes: Decimal = ZERO
    leave_pay: Decimal = ZERO
    bonus_pay: Decimal = ZERO
    other_income: Decimal = ZERO
    other_deductions: Decimal = ZERO
    current_loan_balance: Decimal = ZERO
    loan_deduction_this_week: Decimal = ZERO
    new_loan_this_week: Decimal = ZERO
    loan_disbursement_type: DisbursementMode = DisbursementMode.NONE


@dataclass(frozen=True)
class PayslipResult:
    """Calculated payslip amounts, rounded to cents."""
    standard_time: Decimal
    overtime: Decimal
    gross_salary: Decimal
    uif: Decimal
    total_deductions: Decimal
    nett_salary: Decimal
    paid_to_account: Decimal
    updated_loan_balance: Decimal

    def to_dict(self) -> dict[str, Decimal]:
        return {
            "standard_time": self.standard_time,
            "overtime": self.overtime,
            "gross_salary": self.gross_salary,
            "uif": self.uif,
            "total_deductions": self.total_deductions,
            "nett_salary": self.nett_salary,
            "paid_to_account": self.paid_to_account,
            "updated_loan_balance": self.updated_loan_balance,
        }


@traced_engine("payroll", "1.0", fingerprint_fields=("data",))
def calculate_payslip(data: PayslipInput) -> PayslipResult:
    rate = data.hourly_rate
    per_minute = rate / MINUTES_PER_HOUR

    standard_time = data.hours * rate + per_minute * data.minutes
    overtime = OVERTIME_MULTIPLIER * (data.overtime_hours * rate + per_minute * data.overtime_minutes)
    gross = standard_time + overtime + data.leave_pay + data.bonus_pay + data.other_income

    uif = gross * UIF_RATE if data.employment_status is EmploymentStatus.PERMANENT else ZERO
    total_deductions = uif + data.other_deductions
    net = gross - total_deductions

    new_loan_paid_out = (
        data.new_loan_this_week
        if data.loan_disbursement_type is DisbursementMode.WITH_SALARY
        else ZERO
    )
    paid_to_account = net - data.loan_deduction_this_week + new_loan_paid_out
    updated_balance = (
        data.current_loan_balance - data.loan_deduction_this_week + data.new_loan_this_week
    )

    return PayslipResult(
        standard_time=round_money(standard_time),
        overtime=round_money(overtime),
        gross_salary=round_money(gross),
        uif=round_money(uif),
        total_deductions=round_money(total_deductions),
        nett_salary=round_money(net),
        paid_to_account=round_money(paid_to_account),
        updated_loan_balance=round_money(updated_balance),
    )


# camelCase keys accepted from API payloads.
_ALIASES = {
    "hours": ("hours",),
    "minutes": ("minutes",),
    "hourly_rate": ("hourlyRate",),
    "employment_status": ("employmentStatus",),
    "overtime_hours": ("overtimeHours",),
    "overtime_minutes": ("overtimeMinutes",),
    "leave_pay": ("leavePay",),
    "bonus_pay": ("bonusPay",),
    "other_income": ("otherIncome",),
    "other_deductions": ("otherDeductions",),
    "current_loan_balance": ("currentLoanBalance",),
    "loan_deduction_this_week": ("loanDeductionThisWeek",),
    "new_loan_this_week": ("newLoanThisWeek",),
    "loan_disbursement_type": ("loanDisbursementType",),
}


def _lookup(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    for alias in _ALIASES.get(name, ()):
        if alias in data:
            return data[alias]
    return None


def payslip_input_from_mapping(data: Mapping[str, Any]) -> PayslipInput:
    """Coerce a loose dict (snake_case or camelCase keys) into ``PayslipInput``."""
    values: dict[str, Any] = {}
    for name in _ALIASES:
        raw = _lookup(data, name)
        if name == "employment_status":
            values[name] = EmploymentStatus.parse(raw) if raw not in (None, "") else (
                EmploymentStatus.TEMPORARY
            )
        elif name == "loan_disbursement_type":
            values[name] = DisbursementMode.parse(raw)
        else:
            values[name] = to_decimal(raw, name)
    return PayslipInput(**values)
