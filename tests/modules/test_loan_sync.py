"""
Tests for PayslipLoanSyncHandler.

Covers:
- Exactly-once application keyed by the payslip id
- Outcomes for missing, already-synced and loan-free payslips
- Re-sync after a loan edit updates the linked transaction in place
- Pull-based scan and change-window notification
- Rollback on ledger rejection, and repair
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from paytime_engines.payroll import DisbursementMode
from paytime_kernel.exceptions import InvalidLoanTransactionError
from paytime_modules.loans.models import LoanType
from paytime_modules.loans.orm import LoanTransactionModel
from paytime_modules.loans.sync import SyncOutcome

EMP = "E001"
WEEK = date(2026, 1, 10)


def _payslip(service, employee_id=EMP, **components):
    components.setdefault("hours", 40)
    return service.create_payslip(employee_id, "Sipho K", "Permanent", "40", WEEK, components)


def _new_loan(service, amount="500", employee_id=EMP):
    return _payslip(
        service,
        employee_id=employee_id,
        new_loan_this_week=amount,
        loan_disbursement_type="With Salary",
    )


# ===========================================================================
# handle()
# ===========================================================================


class TestHandle:

    def test_new_loan_synced_once(self, payslip_service, ledger, sync_handler):
        payslip = _new_loan(payslip_service)

        assert sync_handler.handle(payslip.id) is SyncOutcome.SYNCED

        history = ledger.history(EMP)
        assert len(history) == 1
        assert history[0].salary_link == str(payslip.id)
        assert history[0].loan_type is LoanType.DISBURSEMENT
        assert history[0].disbursement_mode is DisbursementMode.WITH_SALARY
        assert history[0].transaction_date == WEEK

        synced = payslip_service.get_payslip(payslip.id)
        assert synced.loan_synced is True
        assert synced.updated_loan_balance == Decimal("500.00")

    def test_second_call_is_already_synced(self, payslip_service, ledger, sync_handler):
        payslip = _new_loan(payslip_service)
        sync_handler.handle(payslip.id)

        assert sync_handler.handle(str(payslip.id)) is SyncOutcome.ALREADY_SYNCED
        assert len(ledger.history(EMP)) == 1

    def test_no_loan_activity(self, payslip_service, ledger, sync_handler):
        payslip = _payslip(payslip_service)

        assert sync_handler.handle(payslip.id) is SyncOutcome.NO_LOAN_ACTIVITY
        assert ledger.history(EMP) == ()
        assert payslip_service.get_payslip(payslip.id).loan_synced is False

    @pytest.mark.parametrize("payslip_id", [uuid4(), "not-a-uuid"])
    def test_not_found(self, sync_handler, payslip_id):
        assert sync_handler.handle(payslip_id) is SyncOutcome.NOT_FOUND

    def test_repayment_reduces_balance(self, payslip_service, ledger, sync_handler, session):
        ledger.record_transaction(EMP, date(2026, 1, 3), Decimal("600"), LoanType.DISBURSEMENT)
        session.commit()
        payslip = _payslip(payslip_service, loan_deduction_this_week="150")

        assert sync_handler.handle(payslip.id) is SyncOutcome.SYNCED

        assert ledger.current_balance(EMP) == Decimal("450.00")
        assert ledger.find_by_salary_link(str(payslip.id)).amount == Decimal("-150.00")
        assert payslip_service.get_payslip(payslip.id).updated_loan_balance == Decimal("450.00")

    def test_updated_balance_excludes_later_dated_rows(
        self, session, payslip_service, ledger, sync_handler, deterministic_clock
    ):
        ledger.record_transaction(EMP, date(2026, 1, 3), Decimal("600"), LoanType.DISBURSEMENT)
        session.commit()
        payslip = _payslip(payslip_service, loan_deduction_this_week="150")
        deterministic_clock.advance(1)
        ledger.record_transaction(EMP, date(2026, 1, 24), Decimal("-200"), LoanType.REPAYMENT)
        session.commit()

        assert sync_handler.handle(payslip.id) is SyncOutcome.SYNCED

        synced = payslip_service.get_payslip(payslip.id)
        assert synced.updated_loan_balance == Decimal("450.00")
        assert ledger.current_balance(EMP) == Decimal("250.00")

    def test_loan_edit_resyncs_in_place(self, payslip_service, ledger, sync_handler):
        payslip = _new_loan(payslip_service)
        sync_handler.handle(payslip.id)

        payslip_service.update_payslip(payslip.id, {"loan_deduction_this_week": "100"})
        assert sync_handler.handle(payslip.id) is SyncOutcome.SYNCED

        history = ledger.history(EMP)
        assert len(history) == 1
        assert history[0].amount == Decimal("400.00")
        assert ledger.current_balance(EMP) == Decimal("400.00")

    def test_completion_logged(self, payslip_service, sync_handler, captured_logs):
        payslip = _new_loan(payslip_service)
        sync_handler.handle(payslip.id, actor="trigger")

        record = next(r for r in captured_logs() if r["message"] == "loan_sync_completed")
        assert record["payslip_id"] == str(payslip.id)
        assert record["actor_id"] == "trigger"
        assert record["net"] == "500.00"

    def test_ledger_rejection_rolls_back(self, payslip_service, ledger, sync_handler, ledger_lock):
        payslip = _new_loan(payslip_service, employee_id="  ")

        with pytest.raises(InvalidLoanTransactionError):
            sync_handler.handle(payslip.id)

        assert not ledger_lock.locked
        assert payslip_service.get_payslip(payslip.id).loan_synced is False
        assert ledger.current_balances() == {}


# ===========================================================================
# Scans
# ===========================================================================


class TestScans:

    def test_sync_pending_handles_every_unsynced_payslip(self, payslip_service, ledger, sync_handler):
        quiet = _payslip(payslip_service, employee_id="E003")
        borrow = _new_loan(payslip_service, "500", employee_id="E001")
        repay = _payslip(payslip_service, employee_id="E002", loan_deduction_this_week="50")

        outcomes = sync_handler.sync_pending()

        assert outcomes == {str(borrow.id): SyncOutcome.SYNCED, str(repay.id): SyncOutcome.SYNCED}
        assert str(quiet.id) not in outcomes
        assert payslip_service.list_unsynced() == []
        assert ledger.current_balances() == {"E001": Decimal("500.00"), "E002": Decimal("-50.00")}

    def test_sync_pending_twice_applies_once(self, payslip_service, ledger, sync_handler):
        _new_loan(payslip_service)
        sync_handler.sync_pending()

        assert sync_handler.sync_pending() == {}
        assert len(ledger.history(EMP)) == 1

    def test_change_notification_full_scan(self, payslip_service, sync_handler, deterministic_clock):
        old = _new_loan(payslip_service)
        deterministic_clock.advance(3600)

        outcomes = sync_handler.handle_change_notification()

        assert outcomes == {str(old.id): SyncOutcome.SYNCED}

    def test_change_notification_window(self, payslip_service, sync_handler, deterministic_clock):
        old = _new_loan(payslip_service, employee_id="E001")
        deterministic_clock.advance(600)
        recent = _new_loan(payslip_service, employee_id="E002")
        deterministic_clock.advance(60)

        outcomes = sync_handler.handle_change_notification(full_scan=False)

        assert outcomes == {str(recent.id): SyncOutcome.SYNCED}
        assert payslip_service.get_payslip(old.id).loan_synced is False


# ===========================================================================
# Repair
# ===========================================================================


class TestRepair:

    def test_repair_rechains_and_commits(self, session, ledger, sync_handler, deterministic_clock):
        first = ledger.record_transaction(EMP, date(2026, 1, 3), Decimal("500"), LoanType.DISBURSEMENT)
        deterministic_clock.advance(1)
        ledger.record_transaction(EMP, WEEK, Decimal("-100"), LoanType.REPAYMENT)
        session.get(LoanTransactionModel, first.id).balance_after = Decimal("1")
        session.commit()
        assert ledger.verify_consistency(EMP)

        transactions = sync_handler.repair(EMP)

        assert [t.balance_after for t in transactions] == [Decimal("500.00"), Decimal("400.00")]
        assert ledger.verify_consistency(EMP) == []
