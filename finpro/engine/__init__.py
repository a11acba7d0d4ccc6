"""
Derived-Finance Computation Engine

Pure, synchronous functions over in-memory snapshots. Nothing here
performs I/O or keeps state between calls; every aggregate is
recomputed from the records it is given.

Modules:
    normalize   - canonical dates and amounts
    snapshot    - coercing raw store documents into typed records
    recurrence  - next-payment projection for subscriptions and loans
    aggregator  - monthly totals, category breakdowns, trends
    loans       - loan ledger over append-only payment logs
    goals       - savings goal contributions
    budgets     - budget consumption and overrun detection
"""

from finpro.engine.errors import (
    AlreadyComplete,
    ExceedsTarget,
    FinanceEngineError,
    InconsistentRecord,
    InvalidAmount,
    InvalidDate,
)
from finpro.engine.normalize import normalize_amount, normalize_date, resolve_as_of

__all__ = [
    "AlreadyComplete",
    "ExceedsTarget",
    "FinanceEngineError",
    "InconsistentRecord",
    "InvalidAmount",
    "InvalidDate",
    "normalize_amount",
    "normalize_date",
    "resolve_as_of",
]
