"""
Payslips Module (``paytime_modules.payslips``).

Weekly payslip records: creation from components or a reconciled week,
partial updates with recalculation, and header-row recalculation.
"""
