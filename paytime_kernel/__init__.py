"""
Paytime Kernel

Shared infrastructure for the time-and-pay reconciliation engine:
- Structured JSON logging with request-scoped context
- Typed, code-carrying exceptions
- Injectable clock and Decimal money rounding
- SQLAlchemy declarative base, engine and session scope
- Scoped locks with bounded waits for the shared loan ledger
"""

__version__ = "0.1.0"
