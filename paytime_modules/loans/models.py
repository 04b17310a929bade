"""
Loan Domain Models (``paytime_modules.loans.models``).

Responsibility
--------------
Frozen value objects for the employee loan ledger: a ledger transaction and
the loan event carried by a payslip.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal``.
* Signed amounts: disbursements positive, repayments negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from paytime_engines.payroll import DisbursementMode


class LoanType(Enum):
    """Kind of ledger movement."""
    DISBURSEMENT = "Disbursement"
    REPAYMENT = "Repayment"


@dataclass(frozen=True)
class LoanTransaction:
    """One ledger row. ``balance_after == balance_before + amount``."""
    id: UUID
    employee_id: str
    transaction_date: date
    loan_type: LoanType
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    timestamp: datetime
    disbursement_mode: DisbursementMode = DisbursementMode.NONE
    salary_link: str | None = None
    notes: str = ""
    created_by: str = "system"


@dataclass(frozen=True)
class PayslipLoanEvent:
    """Loan movement carried by one payslip, keyed by its salary link."""
    salary_link: str
    employee_id: str
    week_ending: date
    loan_deduction_this_week: Decimal
    new_loan_this_week: Decimal
    loan_disbursement_type: DisbursementMode = DisbursementMode.NONE
    actor: str = "system"

    @property
    def net(self) -> Decimal:
        return self.new_loan_this_week - self.loan_deduction_this_week
