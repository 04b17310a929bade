"""
Loan Ledger (``paytime_modules.loans.ledger``).

Responsibility
--------------
Append-mostly ledger of employee loan disbursements and repayments with
chained running balances, plus the payslip-driven sync that keeps it in
step with weekly payslips.

Architecture position
---------------------
**Modules layer** -- service over an injected SQLAlchemy ``Session`` and
``Clock``.  The ledger NEVER commits; the caller owns the transaction
boundary (``PayslipLoanSyncHandler`` or ``session_scope``).

Invariants enforced
-------------------
* Per employee, ordered by (transaction_date, timestamp, id): the first
  ``balance_before`` is 0, each ``balance_after = balance_before + amount``
  and each ``balance_before`` equals the previous ``balance_after``.
* Disbursements are positive, repayments negative, nothing is zero.
* A salary link references at most one transaction.
* ``transaction_date`` is immutable after creation; edits refresh
  ``timestamp``.
* Transactions are never deleted.

Failure modes
-------------
* Rule violations  -> ``InvalidLoanTransactionError`` listing all of them,
  raised before any mutation.
* Editing the date  -> ``ImmutableFieldError``.
* Unknown id  -> ``LoanTransactionNotFoundError``.
* ``assert_consistent`` -> ``LedgerInconsistencyError``.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from paytime_engines.payroll import DisbursementMode
from paytime_ingestion.mapping import LOAN_COLUMNS, to_row
from paytime_kernel.domain.clock import Clock, SystemClock
from paytime_kernel.domain.money import ZERO, round_money, to_decimal
from paytime_kernel.exceptions import (
    ImmutableFieldError,
    InvalidLoanTransactionError,
    LedgerInconsistencyError,
    LoanTransactionNotFoundError,
)
from paytime_kernel.logging_config import LogContext, get_logger
from paytime_modules.loans.models import LoanTransaction, LoanType, PayslipLoanEvent
from paytime_modules.loans.orm import LoanTransactionModel

logger = get_logger("modules.loans.ledger")

LEDGER_LOCK_NAME = "loan_ledger"


def _parse_loan_type(value: LoanType | str, violations: list[str]) -> LoanType | None:
    if isinstance(value, LoanType):
        return value
    for member in LoanType:
        if member.value.lower() == str(value).strip().lower():
            return member
    violations.append(f"Unknown loan type {value!r}")
    return None


class LoanLedger:
    """
    Loan ledger service.

    Usage::

        ledger = LoanLedger(session, clock)
        ledger.record_transaction("EMP-1", date(2026, 1, 10), Decimal("500"),
                                  LoanType.DISBURSEMENT, DisbursementMode.SEPARATE)
        session.commit()
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _rows(self, employee_id: str) -> list[LoanTransactionModel]:
        rows = self._session.scalars(
            select(LoanTransactionModel).where(LoanTransactionModel.employee_id == employee_id)
        ).all()
        return sorted(rows, key=lambda r: r.sort_key)

    def _get(self, transaction_id: UUID | str) -> LoanTransactionModel:
        key = transaction_id if isinstance(transaction_id, UUID) else UUID(str(transaction_id))
        row = self._session.get(LoanTransactionModel, key)
        if row is None:
            raise LoanTransactionNotFoundError(str(transaction_id))
        return row

    def _find_link(self, salary_link: str) -> LoanTransactionModel | None:
        return self._session.scalars(
            select(LoanTransactionModel).where(LoanTransactionModel.salary_link == salary_link)
        ).first()

    def history(self, employee_id: str) -> tuple[LoanTransaction, ...]:
        """Chronological transactions for one employee."""
        return tuple(r.to_dto() for r in self._rows(employee_id))

    def current_balance(self, employee_id: str) -> Decimal:
        """``balance_after`` of the chronologically last transaction, 0 if none."""
        rows = self._rows(employee_id)
        if not rows:
            return round_money(ZERO)
        return round_money(rows[-1].balance_after)

    def current_balances(self) -> dict[str, Decimal]:
        """Current balance per employee that has any transaction."""
        last: dict[str, LoanTransactionModel] = {}
        for row in self._session.scalars(select(LoanTransactionModel)):
            seen = last.get(row.employee_id)
            if seen is None or row.sort_key > seen.sort_key:
                last[row.employee_id] = row
        return {
            employee_id: round_money(last[employee_id].balance_after)
            for employee_id in sorted(last)
        }

    def find_by_salary_link(self, salary_link: str) -> LoanTransaction | None:
        row = self._find_link(salary_link)
        return row.to_dto() if row is not None else None

    def export_rows(self, employee_id: str) -> list[dict[str, Any]]:
        """Header-keyed rows for a bulk write to the loan sheet."""
        return [to_row(t, LOAN_COLUMNS) for t in self.history(employee_id)]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _violations(
        self,
        employee_id: str,
        amount: Decimal,
        loan_type: LoanType | None,
        salary_link: str | None,
        exclude_id: UUID | None = None,
    ) -> list[str]:
        violations: list[str] = []
        if not str(employee_id).strip():
            violations.append("Employee id is required")
        if amount == ZERO:
            violations.append("Amount must not be zero")
        elif loan_type is LoanType.DISBURSEMENT and amount < ZERO:
            violations.append(f"Disbursement amount must be positive, got {amount}")
        elif loan_type is LoanType.REPAYMENT and amount > ZERO:
            violations.append(f"Repayment amount must be negative, got {amount}")
        if salary_link:
            existing = self._find_link(salary_link)
            if existing is not None and existing.id != exclude_id:
                violations.append(
                    f"Salary link {salary_link} already used by transaction {existing.id}"
                )
        return violations

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def record_transaction(
        self,
        employee_id: str,
        transaction_date: date,
        amount: Decimal,
        loan_type: LoanType | str,
        disbursement_mode: DisbursementMode | str = DisbursementMode.NONE,
        salary_link: str | None = None,
        notes: str = "",
        actor: str = "system",
    ) -> LoanTransaction:
        """
        Append a transaction and rechain the employee's balances.

        Raises:
            InvalidLoanTransactionError: listing every violated rule.
        """
        amount = round_money(to_decimal(amount, "amount"))
        violations: list[str] = []
        parsed_type = _parse_loan_type(loan_type, violations)
        violations += self._violations(employee_id, amount, parsed_type, salary_link)
        if violations:
            logger.warning(
                "loan_transaction_rejected",
                extra={"employee_id": employee_id, "violations": violations},
            )
            raise InvalidLoanTransactionError(employee_id, violations)

        balance_before = self.current_balance(employee_id)
        row = LoanTransactionModel(
            id=uuid4(),
            employee_id=employee_id,
            transaction_date=transaction_date,
            loan_type=parsed_type.value,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_before + amount,
            disbursement_mode=DisbursementMode.parse(disbursement_mode).value,
            salary_link=salary_link or None,
            notes=notes or "",
            timestamp=self._clock.now(),
            created_by=actor,
        )
        self._session.add(row)
        self._session.flush()

        logger.info(
            "loan_transaction_recorded",
            extra={
                "employee_id": employee_id,
                "transaction_id": row.id,
                "loan_type": parsed_type.value,
                "amount": amount,
                "salary_link": salary_link,
            },
        )
        self.recalculate_balances(employee_id)
        return row.to_dto()

    def update_transaction(
        self,
        transaction_id: UUID | str,
        *,
        amount: Decimal | None = None,
        loan_type: LoanType | str | None = None,
        disbursement_mode: DisbursementMode | str | None = None,
        notes: str | None = None,
        transaction_date: date | None = None,
        actor: str = "system",
    ) -> LoanTransaction:
        """
        Edit a transaction in place.  The date is fixed after creation.

        Raises:
            ImmutableFieldError: if ``transaction_date`` is passed.
            LoanTransactionNotFoundError: unknown id.
            InvalidLoanTransactionError: the edited field set breaks a rule.
        """
        if transaction_date is not None:
            raise ImmutableFieldError(str(transaction_id), "transaction_date")
        row = self._get(transaction_id)

        new_amount = round_money(to_decimal(amount, "amount")) if amount is not None else row.amount
        violations: list[str] = []
        new_type = _parse_loan_type(loan_type if loan_type is not None else row.loan_type, violations)
        violations += self._violations(row.employee_id, new_amount, new_type, None)
        if violations:
            raise InvalidLoanTransactionError(row.employee_id, violations)

        self._apply_edit(row, new_amount, new_type, disbursement_mode, notes, actor)
        self.recalculate_balances(row.employee_id)
        return row.to_dto()

    def _apply_edit(
        self,
        row: LoanTransactionModel,
        amount: Decimal,
        loan_type: LoanType,
        disbursement_mode: DisbursementMode | str | None,
        notes: str | None,
        actor: str,
    ) -> None:
        row.amount = amount
        row.loan_type = loan_type.value
        if disbursement_mode is not None:
            row.disbursement_mode = DisbursementMode.parse(disbursement_mode).value
        if notes is not None:
            row.notes = notes
        row.timestamp = self._clock.now()
        row.updated_by = actor
        logger.info(
            "loan_transaction_updated",
            extra={
                "employee_id": row.employee_id,
                "transaction_id": row.id,
                "amount": amount,
                "loan_type": loan_type.value,
            },
        )

    def recalculate_balances(self, employee_id: str) -> tuple[LoanTransaction, ...]:
        """
        Rechain every balance for one employee in ledger order.

        Writes back only rows whose balances changed, in one flush.
        Idempotent.
        """
        rows = self._rows(employee_id)
        running = ZERO
        changed = 0
        for row in rows:
            before = running
            after = before + row.amount
            if row.balance_before != before or row.balance_after != after:
                row.balance_before = before
                row.balance_after = after
                changed += 1
            running = after
        if changed:
            self._session.flush()
        logger.debug(
            "loan_balances_recalculated",
            extra={
                "employee_id": employee_id,
                "transaction_count": len(rows),
                "changed_count": changed,
                "balance": running,
            },
        )
        return tuple(r.to_dto() for r in rows)

    def sync_from_payslip(self, event: PayslipLoanEvent) -> LoanTransaction | None:
        """
        Mirror a payslip's net loan movement into the ledger.

        Net > 0 is a disbursement in the payslip's mode; net < 0 a repayment
        taken with salary.  A payslip already linked to a transaction updates
        it in place.  Zero net is a no-op.
        """
        with LogContext.bind(employee_id=event.employee_id, payslip_id=event.salary_link):
            existing = self._find_link(event.salary_link)
            net = round_money(event.net)

            if net == ZERO:
                if existing is not None:
                    logger.warning(
                        "payslip_loan_net_zero_with_linked_transaction",
                        extra={"transaction_id": existing.id},
                    )
                return None

            if net > ZERO:
                loan_type, mode = LoanType.DISBURSEMENT, event.loan_disbursement_type
            else:
                loan_type, mode = LoanType.REPAYMENT, DisbursementMode.WITH_SALARY
            notes = f"Payslip {event.salary_link} week ending {event.week_ending.isoformat()}"

            if existing is not None:
                self._apply_edit(existing, net, loan_type, mode, notes, event.actor)
                self.recalculate_balances(existing.employee_id)
                return existing.to_dto()

            return self.record_transaction(
                employee_id=event.employee_id,
                transaction_date=event.week_ending,
                amount=net,
                loan_type=loan_type,
                disbursement_mode=mode,
                salary_link=event.salary_link,
                notes=notes,
                actor=event.actor,
            )

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def verify_consistency(self, employee_id: str) -> list[str]:
        """Every violated ledger invariant for one employee (empty if sound)."""
        return check_chain(self.history(employee_id))

    def assert_consistent(self, employee_id: str) -> None:
        violations = self.verify_consistency(employee_id)
        if violations:
            raise LedgerInconsistencyError(employee_id, violations)


def check_chain(transactions: Sequence[LoanTransaction]) -> list[str]:
    """Check running-balance chaining and sign rules over ordered transactions."""
    violations: list[str] = []
    previous_after = ZERO
    for t in transactions:
        if t.balance_before != previous_after:
            violations.append(
                f"{t.id}: balance_before {t.balance_before} != previous balance_after {previous_after}"
            )
        if t.balance_after != t.balance_before + t.amount:
            violations.append(
                f"{t.id}: balance_after {t.balance_after} != {t.balance_before} + {t.amount}"
            )
        if t.loan_type is LoanType.DISBURSEMENT and t.amount <= ZERO:
            violations.append(f"{t.id}: disbursement amount {t.amount} is not positive")
        if t.loan_type is LoanType.REPAYMENT and t.amount >= ZERO:
            violations.append(f"{t.id}: repayment amount {t.amount} is not negative")
        previous_after = t.balance_after
    return violations
