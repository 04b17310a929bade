"""
Loan ORM Persistence Model (``paytime_modules.loans.orm``).

Responsibility:
    SQLAlchemy model persisting ``LoanTransaction`` rows, with
    ``to_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companion to the pure DTOs.
    Inherits ``TrackedBase``: id (UUID PK), created_at, updated_at,
    created_by (NOT NULL), updated_by.

Invariants enforced:
    - ``salary_link`` is unique (uq_loan_salary_link): a payslip generates
      at most one ledger transaction.
    - Ledger order is (transaction_date, timestamp, id), indexed per
      employee.
    - Enum fields are stored as their ``.value`` strings.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from paytime_kernel.db.base import TrackedBase


class LoanTransactionModel(TrackedBase):
    """ORM model for ``LoanTransaction``. Rows are never deleted."""

    __tablename__ = "loan_transactions"

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    loan_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(nullable=False)
    disbursement_mode: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    salary_link: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str] = mapped_column(String(500), default="", nullable=False)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint("salary_link", name="uq_loan_salary_link"),
        Index("idx_loan_employee_order", "employee_id", "transaction_date", "timestamp"),
    )

    @property
    def sort_key(self) -> tuple:
        return (self.transaction_date, self.timestamp, str(self.id))

    def to_dto(self):
        from paytime_engines.payroll import DisbursementMode
        from paytime_modules.loans.models import LoanTransaction, LoanType
        return LoanTransaction(
            id=self.id,
            employee_id=self.employee_id,
            transaction_date=self.transaction_date,
            loan_type=LoanType(self.loan_type),
            amount=self.amount,
            balance_before=self.balance_before,
            balance_after=self.balance_after,
            timestamp=self.timestamp,
            disbursement_mode=DisbursementMode(self.disbursement_mode),
            salary_link=self.salary_link,
            notes=self.notes,
            created_by=self.created_by,
        )

    def __repr__(self) -> str:
        return (
            f"<LoanTransactionModel {self.employee_id} {self.transaction_date} "
            f"{self.loan_type} {self.amount} -> {self.balance_after}>"
        )
