"""
Payslip ORM Persistence Model (``paytime_modules.payslips.orm``).

Responsibility:
    SQLAlchemy model persisting ``Payslip``, with ``to_dto()`` and
    ``apply_result()`` for writing calculated amounts back.

Architecture position:
    **Modules layer** -- persistence companion to the pure DTO.
    Inherits ``TrackedBase`` audit columns.

Invariants enforced:
    - ``record_number`` is unique (uq_payslip_record_number).
    - Enum fields are stored as their ``.value`` strings.
    - ``loan_synced`` is the per-payslip marker that makes the loan sync
      idempotent; it is reset whenever a loan field changes.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from paytime_kernel.db.base import TrackedBase


class PayslipModel(TrackedBase):
    """ORM model for ``Payslip``."""

    __tablename__ = "payslips"

    record_number: Mapped[int] = mapped_column(nullable=False)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    employee_name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    employment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    week_ending: Mapped[date] = mapped_column(Date, nullable=False)

    hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    minutes: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    overtime_minutes: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    leave_pay: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    bonus_pay: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    other_income: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    other_income_text: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    other_deductions: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    other_deductions_text: Mapped[str] = mapped_column(String(500), default="", nullable=False)

    current_loan_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    loan_deduction_this_week: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    new_loan_this_week: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    loan_disbursement_type: Mapped[str] = mapped_column(String(20), default="", nullable=False)

    standard_time: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    overtime: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    uif: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    nett_salary: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    paid_to_account: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    updated_loan_balance: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    loan_synced: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    notes: Mapped[str] = mapped_column(String(1000), default="", nullable=False)

    __table_args__ = (
        UniqueConstraint("record_number", name="uq_payslip_record_number"),
        Index("idx_payslip_employee_week", "employee_id", "week_ending"),
        Index("idx_payslip_loan_synced", "loan_synced"),
    )

    def apply_result(self, result) -> None:
        """Copy calculated amounts from a ``PayslipResult``."""
        for name, value in result.to_dict().items():
            setattr(self, name, value)

    def to_dto(self):
        from paytime_engines.payroll import DisbursementMode, EmploymentStatus
        from paytime_modules.payslips.models import Payslip
        return Payslip(
            id=self.id,
            record_number=self.record_number,
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            employment_status=EmploymentStatus(self.employment_status),
            week_ending=self.week_ending,
            hours=self.hours,
            minutes=self.minutes,
            overtime_hours=self.overtime_hours,
            overtime_minutes=self.overtime_minutes,
            hourly_rate=self.hourly_rate,
            leave_pay=self.leave_pay,
            bonus_pay=self.bonus_pay,
            other_income=self.other_income,
            other_income_text=self.other_income_text,
            other_deductions=self.other_deductions,
            other_deductions_text=self.other_deductions_text,
            current_loan_balance=self.current_loan_balance,
            loan_deduction_this_week=self.loan_deduction_this_week,
            new_loan_this_week=self.new_loan_this_week,
            loan_disbursement_type=DisbursementMode(self.loan_disbursement_type),
            standard_time=self.standard_time,
            overtime=self.overtime,
            gross_salary=self.gross_salary,
            uif=self.uif,
            total_deductions=self.total_deductions,
            nett_salary=self.nett_salary,
            paid_to_account=self.paid_to_account,
            updated_loan_balance=self.updated_loan_balance,
            loan_synced=self.loan_synced,
            notes=self.notes,
            created_by=self.created_by,
            updated_by=self.updated_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"<PayslipModel #{self.record_number} {self.employee_id} "
            f"w/e {self.week_ending} net={self.nett_salary}>"
        )
