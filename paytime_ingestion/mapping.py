"""
Row mapping: pure transformation between header-keyed storage rows and
typed field dicts.

Three logical tables live at the storage boundary (attendance punches,
payslips, loan ledger).  Each is an explicit tuple of ``FieldMapping``
entries; header strings never leave this module.  ZERO I/O.

``map_row`` collects every coercion error for a row instead of stopping at
the first.  ``to_row`` is the inverse and renders values in the form the
sheets hold them (ISO dates, plain decimal strings, TRUE/FALSE).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from paytime_kernel.domain.money import strip_thousands


class FieldType(Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class FieldMapping:
    """Single field mapping: source header -> target field with type."""

    source: str
    target: str
    field_type: FieldType = FieldType.STRING
    required: bool = False
    default: Any = None
    aliases: tuple[str, ...] = ()

    @property
    def headers(self) -> tuple[str, ...]:
        return (self.source, *self.aliases)


@dataclass(frozen=True)
class MappingError:
    code: str
    message: str
    field: str


@dataclass(frozen=True)
class CoercionResult:
    """Result of coercing a raw cell to a target type."""

    success: bool
    value: Any = None
    error: MappingError | None = None


@dataclass(frozen=True)
class MappingResult:
    """Result of applying field mappings to a raw row."""

    success: bool
    mapped_data: dict[str, Any] = field(default_factory=dict)
    errors: tuple[MappingError, ...] = ()


# -----------------------------------------------------------------------------
# Tables
# -----------------------------------------------------------------------------

S, I, D = FieldType.STRING, FieldType.INTEGER, FieldType.DECIMAL

PUNCH_COLUMNS: tuple[FieldMapping, ...] = (
    FieldMapping("Clock In Ref", "clock_ref", S, aliases=("clock_in_ref", "ClockInRef", "Employee Ref")),
    FieldMapping("Date/Time", "timestamp", S, aliases=("clock_timestamp", "Timestamp", "DateTime")),
    FieldMapping("Device", "device_label", S, default="", aliases=("clock_type", "Device Name", "Type")),
)

PAYSLIP_COLUMNS: tuple[FieldMapping, ...] = (
    FieldMapping("RECORDNUMBER", "record_number", I),
    FieldMapping("id", "employee_id", S, required=True, aliases=("Employee ID",)),
    FieldMapping("EMPLOYEE NAME", "employee_name", S, default=""),
    FieldMapping("EMPLOYMENT STATUS", "employment_status", S, default="Permanent"),
    FieldMapping("WEEKENDING", "week_ending", FieldType.DATE, required=True),
    FieldMapping("HOURS", "hours", D, default=Decimal("0")),
    FieldMapping("MINUTES", "minutes", D, default=Decimal("0")),
    FieldMapping("OVERTIMEHOURS", "overtime_hours", D, default=Decimal("0")),
    FieldMapping("OVERTIMEMINUTES", "overtime_minutes", D, default=Decimal("0")),
    FieldMapping("HOURLYRATE", "hourly_rate", D, default=Decimal("0")),
    FieldMapping("STANDARDTIME", "standard_time", D),
    FieldMapping("OVERTIME", "overtime", D),
    FieldMapping("LEAVE PAY", "leave_pay", D, default=Decimal("0")),
    FieldMapping("BONUS PAY", "bonus_pay", D, default=Decimal("0")),
    FieldMapping("OTHERINCOME", "other_income", D, default=Decimal("0")),
    FieldMapping("OTHER INCOME TEXT", "other_income_text", S, default=""),
    FieldMapping("GROSSSALARY", "gross_salary", D),
    FieldMapping("UIF", "uif", D),
    FieldMapping("OTHER DEDUCTIONS", "other_deductions", D, default=Decimal("0")),
    FieldMapping("OTHER DEDUCTIONS TEXT", "other_deductions_text", S, default=""),
    FieldMapping("CurrentLoanBalance", "current_loan_balance", D, default=Decimal("0")),
    FieldMapping("LoanDeductionThisWeek", "loan_deduction_this_week", D, default=Decimal("0")),
    FieldMapping("NewLoanThisWeek", "new_loan_this_week", D, default=Decimal("0")),
    FieldMapping("LoanDisbursementType", "loan_disbursement_type", S, default=""),
    FieldMapping("UpdatedLoanBalance", "updated_loan_balance", D),
    FieldMapping("LoanRepaymentLogged", "loan_synced", FieldType.BOOLEAN, default=False),
    FieldMapping("TOTALDEDUCTIONS", "total_deductions", D),
    FieldMapping("NETTSALARY", "nett_salary", D),
    FieldMapping("PaidtoAccount", "paid_to_account", D),
    FieldMapping("NOTES", "notes", S, default=""),
    FieldMapping("USER", "created_by", S),
    FieldMapping("TIMESTAMP", "created_at", FieldType.DATETIME),
    FieldMapping("MODIFIED_BY", "updated_by", S),
    FieldMapping("LAST_MODIFIED", "updated_at", FieldType.DATETIME),
)

LOAN_COLUMNS: tuple[FieldMapping, ...] = (
    FieldMapping("Employee ID", "employee_id", S, required=True),
    FieldMapping("SalaryLink", "salary_link", S),
    FieldMapping("TransactionDate", "transaction_date", FieldType.DATE, required=True),
    FieldMapping("LoanType", "loan_type", S, required=True),
    FieldMapping("Amount", "amount", D, required=True),
    FieldMapping("BalanceBefore", "balance_before", D),
    FieldMapping("BalanceAfter", "balance_after", D),
    FieldMapping("DisbursementType", "disbursement_mode", S, default=""),
    FieldMapping("Notes", "notes", S, default=""),
    FieldMapping("Timestamp", "timestamp", FieldType.DATETIME),
    FieldMapping("User", "created_by", S),
)

del S, I, D

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%m/%d/%Y")
_DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%d/%m/%Y %H:%M:%S", "%d/%m/%Y %H:%M")


# -----------------------------------------------------------------------------
# Coercion (pure)
# -----------------------------------------------------------------------------


def _fail(code: str, message: str, target: str) -> CoercionResult:
    return CoercionResult(success=False, error=MappingError(code=code, message=message, field=target))


def coerce_value(value: Any, field_type: FieldType, target: str = "") -> CoercionResult:
    """Coerce a raw cell (usually a string) to the target type."""
    if field_type is FieldType.STRING:
        return CoercionResult(success=True, value=str(value).strip())

    if field_type is FieldType.BOOLEAN:
        if isinstance(value, bool):
            return CoercionResult(success=True, value=value)
        low = str(value).strip().lower()
        if low in ("true", "yes", "1", "y"):
            return CoercionResult(success=True, value=True)
        if low in ("false", "no", "0", "n"):
            return CoercionResult(success=True, value=False)
        return _fail("INVALID_BOOLEAN", f"Cannot coerce to boolean: {value!r}", target)

    if field_type in (FieldType.DECIMAL, FieldType.INTEGER):
        if isinstance(value, bool):
            return _fail("INVALID_NUMBER", f"Boolean is not a number: {value!r}", target)
        text = str(value).strip()
        if text.upper().startswith("R"):
            text = text[1:].strip()
        plain = strip_thousands(text)
        if plain is None:
            return _fail("AMBIGUOUS_SEPARATOR", f"Comma is not a thousands separator: {value!r}", target)
        try:
            number = Decimal(plain)
        except (InvalidOperation, ValueError):
            return _fail("INVALID_NUMBER", f"Cannot coerce to number: {value!r}", target)
        if not number.is_finite():
            return _fail("INVALID_NUMBER", f"Not a finite number: {value!r}", target)
        if field_type is FieldType.INTEGER:
            return CoercionResult(success=True, value=int(number))
        return CoercionResult(success=True, value=number)

    if field_type is FieldType.DATE:
        if isinstance(value, datetime):
            return CoercionResult(success=True, value=value.date())
        if isinstance(value, date):
            return CoercionResult(success=True, value=value)
        text = str(value).strip()
        # Sheets often export dates with a trailing midnight time.
        text = text.split("T")[0].split(" ")[0]
        for fmt in _DATE_FORMATS:
            try:
                return CoercionResult(success=True, value=datetime.strptime(text, fmt).date())
            except ValueError:
                continue
        return _fail("INVALID_DATE_FORMAT", f"Cannot parse date: {value!r}", target)

    if field_type is FieldType.DATETIME:
        if isinstance(value, datetime):
            return CoercionResult(success=True, value=value)
        text = str(value).strip()
        try:
            return CoercionResult(success=True, value=datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            pass
        for fmt in _DATETIME_FORMATS:
            try:
                return CoercionResult(success=True, value=datetime.strptime(text, fmt))
            except ValueError:
                continue
        return _fail("INVALID_DATETIME_FORMAT", f"Cannot parse datetime: {value!r}", target)

    return _fail("UNSUPPORTED_TYPE", f"Unsupported field type: {field_type}", target)


def _raw_value(row: Mapping[str, Any], mapping: FieldMapping) -> Any:
    for header in mapping.headers:
        if header in row:
            return row[header]
    return None


def map_row(row: Mapping[str, Any], table: tuple[FieldMapping, ...]) -> MappingResult:
    """
    Apply a table to a header-keyed row.

    Missing required -> error; missing optional -> default (omitted when the
    default is ``None``).
    """
    errors: list[MappingError] = []
    mapped: dict[str, Any] = {}

    for fm in table:
        raw = _raw_value(row, fm)
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if fm.required:
                errors.append(MappingError(
                    code="MISSING_REQUIRED_FIELD",
                    message=f"Required field {fm.source!r} is missing",
                    field=fm.target,
                ))
            elif fm.default is not None:
                mapped[fm.target] = fm.default
            continue

        coerced = coerce_value(raw, fm.field_type, fm.target)
        if not coerced.success:
            errors.append(coerced.error)
            continue
        mapped[fm.target] = coerced.value

    return MappingResult(success=not errors, mapped_data=mapped, errors=tuple(errors))


def _render(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def to_row(record: Mapping[str, Any] | Any, table: tuple[FieldMapping, ...]) -> dict[str, Any]:
    """Render a dict or attribute-bearing record as a header-keyed row."""
    row: dict[str, Any] = {}
    for fm in table:
        if isinstance(record, Mapping):
            value = record.get(fm.target)
        else:
            value = getattr(record, fm.target, None)
        row[fm.source] = _render(value)
    return row
