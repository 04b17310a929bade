"""
Paytime Modules.

Thin orchestration layers over the kernel and engines:

- attendance: reconcile punch exports into weekly worked time
- payslips: weekly payslip records, create/update/recalculate
- loans: employee loan ledger and the payslip loan sync handler
"""
