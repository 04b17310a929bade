"""
Payslip Domain Model (``paytime_modules.payslips.models``).

Frozen value object for one weekly payslip: the inputs the payroll
calculator reads, the amounts it produced, and the loan-sync marker.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from paytime_engines.payroll import DisbursementMode, EmploymentStatus, PayslipInput
from paytime_kernel.domain.money import ZERO


@dataclass(frozen=True)
class Payslip:
    """A persisted weekly payslip."""
    id: UUID
    record_number: int
    employee_id: str
    employee_name: str
    employment_status: EmploymentStatus
    week_ending: date
    hours: Decimal
    minutes: Decimal
    overtime_hours: Decimal
    overtime_minutes: Decimal
    hourly_rate: Decimal
    leave_pay: Decimal = ZERO
    bonus_pay: Decimal = ZERO
    other_income: Decimal = ZERO
    other_income_text: str = ""
    other_deductions: Decimal = ZERO
    other_deductions_text: str = ""
    current_loan_balance: Decimal = ZERO
    loan_deduction_this_week: Decimal = ZERO
    new_loan_this_week: Decimal = ZERO
    loan_disbursement_type: DisbursementMode = DisbursementMode.NONE
    standard_time: Decimal = ZERO
    overtime: Decimal = ZERO
    gross_salary: Decimal = ZERO
    uif: Decimal = ZERO
    total_deductions: Decimal = ZERO
    nett_salary: Decimal = ZERO
    paid_to_account: Decimal = ZERO
    updated_loan_balance: Decimal = ZERO
    loan_synced: bool = False
    notes: str = ""
    created_by: str = "system"
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def salary_link(self) -> str:
        return str(self.id)

    def to_input(self) -> PayslipInput:
        return PayslipInput(
            hours=self.hours,
            minutes=self.minutes,
            hourly_rate=self.hourly_rate,
            employment_status=self.employment_status,
            overtime_hours=self.overtime_hours,
            overtime_minutes=self.overtime_minutes,
            leave_pay=self.leave_pay,
            bonus_pay=self.bonus_pay,
            other_income=self.other_income,
            other_deductions=self.other_deductions,
            current_loan_balance=self.current_loan_balance,
            loan_deduction_this_week=self.loan_deduction_this_week,
            new_loan_this_week=self.new_loan_this_week,
            loan_disbursement_type=self.loan_disbursement_type,
        )


@dataclass(frozen=True)
class PayslipPage:
    """One page of a filtered payslip listing, newest record first."""
    items: tuple[Payslip, ...]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit)
