"""
Loans Module (``paytime_modules.loans``).

Responsibility
--------------
Employee loan ledger with chained running balances (``ledger``) and the
idempotent handler that mirrors payslip loan activity into it (``sync``).

Invariants enforced
-------------------
* Balances chain in (transaction_date, timestamp, id) order per employee.
* One ledger transaction per payslip (unique salary link).
* Sync and recalculation run under the shared ``loan_ledger`` lock.
"""
