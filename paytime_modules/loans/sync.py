"""
Payslip Loan Sync (``paytime_modules.loans.sync``).

Responsibility
--------------
Idempotent command handler that pushes a payslip's loan movement into the
loan ledger exactly once, keyed by the payslip id (the salary link).

Architecture position
---------------------
**Modules layer**.  Composes ``LoanLedger`` with the shared ledger
``ScopedLock``.  Owns the transaction boundary for each payslip synced.

Invariants enforced
-------------------
* The ``loan_synced`` marker is checked before AND after acquiring the
  lock; a payslip is applied to the ledger at most once per change.
* Sync and balance recalculation run inside one critical section.
* A lock timeout abandons the cycle with no mutation.
* After a sync the payslip's ``updated_loan_balance`` is the ledger balance
  as at its own linked transaction, so later-dated ledger rows do not leak
  into it.  It matches the payroll formula whenever the payslip's opening
  balance matches the ledger up to that point.  ``update_payslip``
  recomputes it from the formula and resets the marker only for loan edits.

Failure modes
-------------
* Lock wait expires  -> ``SyncOutcome.LOCK_TIMEOUT`` (logged).
* Ledger rejection or database error  -> rollback, exception re-raised
  after the lock is released.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from uuid import UUID

from sqlalchemy.orm import Session

from paytime_config.schema import ReconciliationConfig
from paytime_engines.payroll import DisbursementMode
from paytime_kernel.domain.clock import Clock, SystemClock
from paytime_kernel.domain.money import round_money
from paytime_kernel.exceptions import LockTimeoutError
from paytime_kernel.logging_config import LogContext, get_logger
from paytime_kernel.utils.locking import DEFAULT_LOCK_TIMEOUT_SECONDS, ScopedLock, named_lock
from paytime_modules.loans.ledger import LEDGER_LOCK_NAME, LoanLedger
from paytime_modules.loans.models import LoanTransaction, PayslipLoanEvent
from paytime_modules.payslips.orm import PayslipModel
from paytime_modules.payslips.service import unsynced_payslips_query

logger = get_logger("modules.loans.sync")


class SyncOutcome(Enum):
    SYNCED = "synced"
    ALREADY_SYNCED = "already_synced"
    NO_LOAN_ACTIVITY = "no_loan_activity"
    LOCK_TIMEOUT = "lock_timeout"
    NOT_FOUND = "not_found"


def _as_uuid(payslip_id: UUID | str) -> UUID | None:
    if isinstance(payslip_id, UUID):
        return payslip_id
    try:
        return UUID(str(payslip_id))
    except ValueError:
        return None


def loan_event_for(row: PayslipModel, actor: str = "system") -> PayslipLoanEvent:
    return PayslipLoanEvent(
        salary_link=str(row.id),
        employee_id=row.employee_id,
        week_ending=row.week_ending,
        loan_deduction_this_week=row.loan_deduction_this_week,
        new_loan_this_week=row.new_loan_this_week,
        loan_disbursement_type=DisbursementMode(row.loan_disbursement_type),
        actor=actor,
    )


class PayslipLoanSyncHandler:
    """
    Syncs payslip loan activity into the ledger.

    Usage::

        handler = PayslipLoanSyncHandler(session, LoanLedger(session, clock),
                                         config=config, clock=clock)
        outcome = handler.handle(payslip.id)
    """

    def __init__(
        self,
        session: Session,
        ledger: LoanLedger,
        lock: ScopedLock | None = None,
        config: ReconciliationConfig | None = None,
        clock: Clock | None = None,
        lock_timeout: float | None = None,
    ):
        self._session = session
        self._ledger = ledger
        self._lock = lock or named_lock(LEDGER_LOCK_NAME)
        self._config = config
        self._clock = clock or SystemClock()
        if lock_timeout is not None:
            self._timeout = float(lock_timeout)
        elif config is not None:
            self._timeout = float(config.lock_timeout_seconds)
        else:
            self._timeout = DEFAULT_LOCK_TIMEOUT_SECONDS

    def handle(self, payslip_id: UUID | str, actor: str = "system") -> SyncOutcome:
        with LogContext.bind(payslip_id=payslip_id, actor_id=actor):
            key = _as_uuid(payslip_id)
            row = self._session.get(PayslipModel, key) if key is not None else None
            if row is None:
                logger.warning("loan_sync_payslip_not_found")
                return SyncOutcome.NOT_FOUND
            if row.loan_synced:
                logger.debug("loan_sync_already_synced")
                return SyncOutcome.ALREADY_SYNCED
            if row.new_loan_this_week == row.loan_deduction_this_week:
                return SyncOutcome.NO_LOAN_ACTIVITY

            try:
                with self._lock.hold(self._timeout):
                    return self._sync_locked(key, actor)
            except LockTimeoutError:
                logger.warning(
                    "loan_sync_lock_timeout",
                    extra={"lock_name": self._lock.name, "timeout_seconds": self._timeout},
                )
                return SyncOutcome.LOCK_TIMEOUT

    def _sync_locked(self, key: UUID, actor: str) -> SyncOutcome:
        try:
            row = self._session.get(PayslipModel, key, populate_existing=True)
            if row is None:
                return SyncOutcome.NOT_FOUND
            if row.loan_synced:
                logger.info("loan_sync_already_synced_after_lock")
                return SyncOutcome.ALREADY_SYNCED
            if row.new_loan_this_week == row.loan_deduction_this_week:
                return SyncOutcome.NO_LOAN_ACTIVITY

            event = loan_event_for(row, actor)
            transaction = self._ledger.sync_from_payslip(event)
            row.updated_loan_balance = round_money(transaction.balance_after)
            row.loan_synced = True
            row.updated_by = actor
            row.updated_at = self._clock.now()
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning("loan_sync_rolled_back", exc_info=True)
            raise

        logger.info(
            "loan_sync_completed",
            extra={
                "employee_id": row.employee_id,
                "transaction_id": transaction.id,
                "net": event.net,
                "updated_loan_balance": row.updated_loan_balance,
            },
        )
        return SyncOutcome.SYNCED

    def sync_pending(self, modified_since=None, actor: str = "system") -> dict[str, SyncOutcome]:
        """Pull-based scan: handle every unsynced payslip with loan activity."""
        ids = [
            row.id
            for row in self._session.scalars(unsynced_payslips_query(modified_since)).all()
        ]
        outcomes = {str(pid): self.handle(pid, actor) for pid in ids}
        logger.info(
            "loan_sync_scan_completed",
            extra={
                "scanned": len(ids),
                "synced": sum(1 for o in outcomes.values() if o is SyncOutcome.SYNCED),
            },
        )
        return outcomes

    def handle_change_notification(self, full_scan: bool = True) -> dict[str, SyncOutcome]:
        """Treat a "row changed" notification as a hint to rescan."""
        if full_scan or self._config is None:
            return self.sync_pending()
        since = self._clock.now() - timedelta(minutes=self._config.change_window_minutes)
        return self.sync_pending(modified_since=since)

    def repair(self, employee_id: str) -> tuple[LoanTransaction, ...]:
        """
        Rechain one employee's balances and commit.

        Raises:
            LockTimeoutError: if the ledger lock cannot be acquired.
        """
        with LogContext.bind(employee_id=employee_id):
            with self._lock.hold(self._timeout):
                try:
                    transactions = self._ledger.recalculate_balances(employee_id)
                    self._session.commit()
                except Exception:
                    self._session.rollback()
                    logger.warning("loan_repair_rolled_back", exc_info=True)
                    raise
            logger.info("loan_ledger_repaired", extra={"transaction_count": len(transactions)})
            return transactions
