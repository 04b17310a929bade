"""
Typed Exception Hierarchy for the Reconciliation Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll errors must be handled precisely. Callers catch by type, never by
message text, and every exception carries:
  1. A ``code`` class attribute (machine-readable, API-safe)
  2. Structured attributes (the violations, ids and limits involved)

Example:
    try:
        ledger.record_transaction(...)
    except InvalidLoanTransactionError as e:
        api_response(code=e.code, violations=e.violations)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PaytimeError (base)
    |
    +-- InputError                      rejected before any mutation
    |   +-- InvalidPunchDataError
    |   +-- ConfigValidationError
    |   +-- InvalidLoanTransactionError
    |   +-- ImmutableFieldError
    |   +-- InvalidPayslipDataError
    |
    +-- NotFoundError
    |   +-- PayslipNotFoundError
    |   +-- LoanTransactionNotFoundError
    |
    +-- ResourceError
    |   +-- LockTimeoutError
    |
    +-- LedgerError
        +-- LedgerInconsistencyError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                         | When Raised
-----------|------------------------------|-------------------------------------
Input      | INVALID_PUNCH_DATA           | Strict run found bad punch rows
           | INVALID_CONFIGURATION        | Config value out of range / malformed
           | INVALID_LOAN_TRANSACTION     | Zero amount, wrong sign, dup link
           | IMMUTABLE_FIELD              | Editing a transaction's date
           | INVALID_PAYSLIP_DATA         | Bad payslip row or unknown change key
-----------|------------------------------|-------------------------------------
Not found  | PAYSLIP_NOT_FOUND            | Payslip id does not exist
           | LOAN_TRANSACTION_NOT_FOUND   | Transaction id does not exist
-----------|------------------------------|-------------------------------------
Resource   | LOCK_TIMEOUT                 | Bounded lock wait expired
-----------|------------------------------|-------------------------------------
Ledger     | LEDGER_INCONSISTENT          | Running balances do not chain

Aggregate errors (``violations`` / ``errors``) always list EVERY problem
found, not just the first one.
"""


class PaytimeError(Exception):
    """
    Base exception for all reconciliation engine errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "PAYTIME_ERROR"


def _joined(items: list[str] | tuple[str, ...]) -> str:
    return "; ".join(items)


# Input errors


class InputError(PaytimeError):
    """Base exception for rejected input."""

    code: str = "INPUT_ERROR"


class InvalidPunchDataError(InputError):
    """One or more punch rows have a missing or unparseable timestamp."""

    code: str = "INVALID_PUNCH_DATA"

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__(
            f"{len(self.violations)} invalid punch row(s): {_joined(self.violations)}"
        )


class ConfigValidationError(InputError):
    """Configuration failed validation."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            f"Invalid configuration ({len(self.errors)} error(s)): {_joined(self.errors)}"
        )


class InvalidLoanTransactionError(InputError):
    """A loan transaction violates the ledger's creation rules."""

    code: str = "INVALID_LOAN_TRANSACTION"

    def __init__(self, employee_id: str, violations: list[str]):
        self.employee_id = employee_id
        self.violations = list(violations)
        super().__init__(
            f"Loan transaction for employee {employee_id} rejected: "
            f"{_joined(self.violations)}"
        )


class ImmutableFieldError(InputError):
    """Attempt to change a field that is fixed after creation."""

    code: str = "IMMUTABLE_FIELD"

    def __init__(self, transaction_id: str, field_name: str):
        self.transaction_id = transaction_id
        self.field_name = field_name
        super().__init__(
            f"Field '{field_name}' of loan transaction {transaction_id} "
            f"cannot be changed after creation"
        )


class InvalidPayslipDataError(InputError):
    """A payslip row or change set cannot be applied."""

    code: str = "INVALID_PAYSLIP_DATA"

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__(f"Payslip data rejected: {_joined(self.violations)}")


# Not-found errors


class NotFoundError(PaytimeError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class PayslipNotFoundError(NotFoundError):
    """Payslip with given id was not found."""

    code: str = "PAYSLIP_NOT_FOUND"

    def __init__(self, payslip_id: str):
        self.payslip_id = payslip_id
        super().__init__(f"Payslip not found: {payslip_id}")


class LoanTransactionNotFoundError(NotFoundError):
    """Loan transaction with given id was not found."""

    code: str = "LOAN_TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Loan transaction not found: {transaction_id}")


# Resource errors


class ResourceError(PaytimeError):
    """Base exception for shared-resource failures."""

    code: str = "RESOURCE_ERROR"


class LockTimeoutError(ResourceError):
    """A scoped lock could not be acquired within the bounded wait."""

    code: str = "LOCK_TIMEOUT"

    def __init__(self, lock_name: str, timeout_seconds: float):
        self.lock_name = lock_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Could not acquire lock '{lock_name}' within {timeout_seconds}s"
        )


# Ledger errors


class LedgerError(PaytimeError):
    """Base exception for loan ledger errors."""

    code: str = "LEDGER_ERROR"


class LedgerInconsistencyError(LedgerError):
    """Stored running balances do not satisfy the chaining invariant."""

    code: str = "LEDGER_INCONSISTENT"

    def __init__(self, employee_id: str, violations: list[str]):
        self.employee_id = employee_id
        self.violations = list(violations)
        super().__init__(
            f"Loan ledger for employee {employee_id} is inconsistent: "
            f"{_joined(self.violations)}"
        )
