"""
Payslip Module Service (``paytime_modules.payslips.service``).

Responsibility
--------------
Creates, updates and reads weekly payslips.  Pure computation is delegated
to ``paytime_engines.payroll``; the opening loan balance comes from the
``LoanLedger``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``PayslipService`` is the entry point for
payslip operations.  The loan ledger itself is updated later, by the
``PayslipLoanSyncHandler``, never here.

Invariants enforced
-------------------
* Each mutating method owns the transaction boundary (``commit`` on
  success, ``rollback`` and re-raise on failure).
* Calculated amounts are always recomputed from inputs; callers cannot set
  them directly.
* Changing any loan field resets ``loan_synced`` so the sync handler picks
  the payslip up again.

Failure modes
-------------
* Unknown change keys or an unmappable row  -> ``InvalidPayslipDataError``.
* Unknown payslip id  -> ``PayslipNotFoundError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from paytime_engines.attendance_types import WeekRecord
from paytime_engines.payroll import (
    DisbursementMode,
    EmploymentStatus,
    PayslipInput,
    PayslipResult,
    calculate_payslip,
    payslip_input_from_mapping,
)
from paytime_ingestion.mapping import PAYSLIP_COLUMNS, map_row
from paytime_kernel.domain.clock import Clock, SystemClock
from paytime_kernel.domain.money import to_decimal
from paytime_kernel.exceptions import InvalidPayslipDataError, PayslipNotFoundError
from paytime_kernel.logging_config import LogContext, get_logger
from paytime_modules.loans.ledger import LoanLedger
from paytime_modules.payslips.models import Payslip, PayslipPage
from paytime_modules.payslips.orm import PayslipModel

logger = get_logger("modules.payslips.service")

NUMERIC_FIELDS = (
    "hours",
    "minutes",
    "overtime_hours",
    "overtime_minutes",
    "hourly_rate",
    "leave_pay",
    "bonus_pay",
    "other_income",
    "other_deductions",
    "loan_deduction_this_week",
    "new_loan_this_week",
)
TEXT_FIELDS = ("employee_name", "other_income_text", "other_deductions_text", "notes")
ENUM_FIELDS = ("employment_status", "loan_disbursement_type")
EDITABLE_FIELDS = frozenset(NUMERIC_FIELDS + TEXT_FIELDS + ENUM_FIELDS)
LOAN_FIELDS = ("loan_deduction_this_week", "new_loan_this_week", "loan_disbursement_type")

_HEADER_BY_FIELD = {fm.target: fm.source for fm in PAYSLIP_COLUMNS}


def unsynced_payslips_query(modified_since: datetime | None = None) -> Select:
    """Payslips whose loan movement has not reached the ledger yet."""
    stmt = select(PayslipModel).where(
        PayslipModel.loan_synced.is_(False),
        PayslipModel.new_loan_this_week != PayslipModel.loan_deduction_this_week,
    )
    if modified_since is not None:
        stmt = stmt.where(PayslipModel.updated_at >= modified_since)
    return stmt.order_by(PayslipModel.record_number)


def _coerce_field(name: str, value: Any) -> Any:
    if name in NUMERIC_FIELDS:
        return to_decimal(value, name)
    if name == "employment_status":
        return EmploymentStatus.parse(value).value
    if name == "loan_disbursement_type":
        return DisbursementMode.parse(value).value
    return "" if value is None else str(value)


def _check_keys(keys: Any) -> None:
    unknown = sorted(set(keys) - EDITABLE_FIELDS)
    if unknown:
        raise InvalidPayslipDataError([f"Unknown or read-only payslip field '{k}'" for k in unknown])


class PayslipService:
    """
    Payslip operations.

    Usage::

        service = PayslipService(session, LoanLedger(session, clock), clock)
        payslip = service.create_payslip(
            "EMP-1", "Jane", "Permanent", Decimal("33.96"), date(2026, 1, 10),
            {"hours": 39, "minutes": 30},
        )
    """

    def __init__(self, session: Session, ledger: LoanLedger, clock: Clock | None = None):
        self._session = session
        self._ledger = ledger
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    def calculate_preview(self, data: Mapping[str, Any] | PayslipInput) -> PayslipResult:
        """Calculate without persisting anything."""
        if not isinstance(data, PayslipInput):
            data = payslip_input_from_mapping(data)
        return calculate_payslip(data)

    def recalculate_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """
        Recompute the calculated columns of a header-keyed payslip row.

        Raises:
            InvalidPayslipDataError: the row fails mapping (every error listed).
        """
        mapped = map_row(row, PAYSLIP_COLUMNS)
        if not mapped.success:
            raise InvalidPayslipDataError([f"{e.field}: {e.message}" for e in mapped.errors])
        result = calculate_payslip(payslip_input_from_mapping(mapped.mapped_data))
        out = dict(row)
        for name, value in result.to_dict().items():
            out[_HEADER_BY_FIELD[name]] = str(value)
        return out

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _get(self, payslip_id: UUID | str) -> PayslipModel:
        try:
            key = payslip_id if isinstance(payslip_id, UUID) else UUID(str(payslip_id))
        except ValueError:
            raise PayslipNotFoundError(str(payslip_id)) from None
        row = self._session.get(PayslipModel, key)
        if row is None:
            raise PayslipNotFoundError(str(payslip_id))
        return row

    def get_payslip(self, payslip_id: UUID | str) -> Payslip:
        return self._get(payslip_id).to_dto()

    def get_by_record_number(self, record_number: int) -> Payslip:
        row = self._session.scalars(
            select(PayslipModel).where(PayslipModel.record_number == int(record_number))
        ).first()
        if row is None:
            raise PayslipNotFoundError(f"record {record_number}")
        return row.to_dto()

    def list_payslips(
        self,
        employee_id: str | None = None,
        week_ending: date | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> PayslipPage:
        """
        Filtered payslips ordered by record number, newest first.

        ``start_date`` and ``end_date`` bound ``week_ending`` inclusively.

        Raises:
            InvalidPayslipDataError: page or limit below 1.
        """
        violations = []
        if page < 1:
            violations.append(f"Page must be at least 1, got {page}")
        if limit < 1:
            violations.append(f"Limit must be at least 1, got {limit}")
        if violations:
            raise InvalidPayslipDataError(violations)

        conditions = []
        if employee_id:
            conditions.append(PayslipModel.employee_id == employee_id)
        if week_ending is not None:
            conditions.append(PayslipModel.week_ending == week_ending)
        if start_date is not None:
            conditions.append(PayslipModel.week_ending >= start_date)
        if end_date is not None:
            conditions.append(PayslipModel.week_ending <= end_date)

        total = self._session.scalar(
            select(func.count()).select_from(PayslipModel).where(*conditions)
        )
        rows = self._session.scalars(
            select(PayslipModel)
            .where(*conditions)
            .order_by(PayslipModel.record_number.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        ).all()
        return PayslipPage(
            items=tuple(r.to_dto() for r in rows),
            page=page,
            limit=limit,
            total=total or 0,
        )

    def list_unsynced(self, modified_since: datetime | None = None) -> list[Payslip]:
        rows = self._session.scalars(unsynced_payslips_query(modified_since)).all()
        return [r.to_dto() for r in rows]

    def _next_record_number(self) -> int:
        current = self._session.scalar(select(func.max(PayslipModel.record_number)))
        return (current or 0) + 1

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_payslip(
        self,
        employee_id: str,
        employee_name: str,
        employment_status: EmploymentStatus | str,
        hourly_rate: Decimal | str,
        week_ending: date,
        components: Mapping[str, Any] | None = None,
        actor: str = "system",
    ) -> Payslip:
        """
        Calculate and persist a payslip.

        The opening loan balance is read from the ledger; the payslip starts
        unsynced.
        """
        components = dict(components or {})
        _check_keys(components)

        with LogContext.bind(employee_id=employee_id, actor_id=actor):
            try:
                balance = self._ledger.current_balance(employee_id)
                data = {
                    **components,
                    "employee_name": employee_name,
                    "employment_status": employment_status,
                    "hourly_rate": hourly_rate,
                    "current_loan_balance": balance,
                }
                payslip_input = payslip_input_from_mapping(data)
                result = calculate_payslip(payslip_input)

                now = self._clock.now()
                row = PayslipModel(
                    id=uuid4(),
                    record_number=self._next_record_number(),
                    employee_id=employee_id,
                    employee_name=employee_name or "",
                    employment_status=payslip_input.employment_status.value,
                    week_ending=week_ending,
                    hours=payslip_input.hours,
                    minutes=payslip_input.minutes,
                    overtime_hours=payslip_input.overtime_hours,
                    overtime_minutes=payslip_input.overtime_minutes,
                    hourly_rate=payslip_input.hourly_rate,
                    leave_pay=payslip_input.leave_pay,
                    bonus_pay=payslip_input.bonus_pay,
                    other_income=payslip_input.other_income,
                    other_income_text=str(components.get("other_income_text") or ""),
                    other_deductions=payslip_input.other_deductions,
                    other_deductions_text=str(components.get("other_deductions_text") or ""),
                    current_loan_balance=balance,
                    loan_deduction_this_week=payslip_input.loan_deduction_this_week,
                    new_loan_this_week=payslip_input.new_loan_this_week,
                    loan_disbursement_type=payslip_input.loan_disbursement_type.value,
                    loan_synced=False,
                    notes=str(components.get("notes") or ""),
                    created_by=actor,
                    created_at=now,
                    updated_at=now,
                )
                row.apply_result(result)
                self._session.add(row)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("payslip_create_rolled_back", exc_info=True)
                raise

            logger.info(
                "payslip_created",
                extra={
                    "payslip_id": row.id,
                    "record_number": row.record_number,
                    "week_ending": week_ending,
                    "gross_salary": row.gross_salary,
                    "nett_salary": row.nett_salary,
                },
            )
            return row.to_dto()

    def create_from_week(
        self,
        week: WeekRecord,
        employee_id: str,
        employee_name: str,
        employment_status: EmploymentStatus | str,
        hourly_rate: Decimal | str,
        components: Mapping[str, Any] | None = None,
        actor: str = "system",
    ) -> Payslip:
        """Create a payslip carrying a reconciled week's hours and minutes."""
        if week.week_ending is None:
            raise InvalidPayslipDataError(["Week record has no week ending date"])
        data = dict(components or {})
        data["hours"] = week.total_hours
        data["minutes"] = week.total_minutes
        return self.create_payslip(
            employee_id,
            employee_name,
            employment_status,
            hourly_rate,
            week.week_ending,
            data,
            actor,
        )

    def update_payslip(
        self,
        payslip_id: UUID | str,
        changes: Mapping[str, Any],
        actor: str = "system",
    ) -> Payslip:
        """
        Merge partial changes and recalculate.

        The stored opening loan balance is kept.  Any loan-field change
        resets ``loan_synced``.
        """
        _check_keys(changes)
        row = self._get(payslip_id)

        with LogContext.bind(employee_id=row.employee_id, payslip_id=row.id, actor_id=actor):
            try:
                before = {name: getattr(row, name) for name in LOAN_FIELDS}
                for name, value in changes.items():
                    setattr(row, name, _coerce_field(name, value))
                row.apply_result(calculate_payslip(row.to_dto().to_input()))

                loan_changed = any(getattr(row, name) != before[name] for name in LOAN_FIELDS)
                if loan_changed:
                    row.loan_synced = False
                row.updated_by = actor
                row.updated_at = self._clock.now()
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("payslip_update_rolled_back", exc_info=True)
                raise

            logger.info(
                "payslip_updated",
                extra={
                    "changed_fields": sorted(changes),
                    "loan_changed": loan_changed,
                    "nett_salary": row.nett_salary,
                },
            )
            return row.to_dto()
