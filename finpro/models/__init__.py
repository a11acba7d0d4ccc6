"""
Data Models Package

This package contains all Pydantic models used by FinPro.
Every record read from the store is coerced into one of these schemas
before the engine touches it.
"""

from finpro.models.records import (
    Budget,
    BillingCycle,
    Collection,
    CreditorLoan,
    DebtorLoan,
    FinanceSnapshot,
    InterestKind,
    Loan,
    LoanAdapter,
    LoanKind,
    LoanPayment,
    SavingsGoal,
    Subscription,
    TermUnit,
    Transaction,
    TransactionType,
)
from finpro.models.results import (
    BudgetClassification,
    BudgetStatus,
    Dashboard,
    DashboardSummary,
    MonthlySummary,
    PaymentSource,
    TrendPoint,
    UpcomingPayment,
)
from finpro.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "Budget",
    "BillingCycle",
    "Collection",
    "CreditorLoan",
    "DebtorLoan",
    "FinanceSnapshot",
    "InterestKind",
    "Loan",
    "LoanAdapter",
    "LoanKind",
    "LoanPayment",
    "SavingsGoal",
    "Subscription",
    "TermUnit",
    "Transaction",
    "TransactionType",
    # Derived values
    "BudgetClassification",
    "BudgetStatus",
    "Dashboard",
    "DashboardSummary",
    "MonthlySummary",
    "PaymentSource",
    "TrendPoint",
    "UpcomingPayment",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
