"""
Derived-Value Models

Everything the engine hands to the presentation layer. These are
computed on every read and never persisted.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Result(BaseModel):
    model_config = ConfigDict(frozen=True)


class MonthlySummary(_Result):
    """Income and expense totals for one calendar month."""

    month: int = Field(..., ge=0, le=11, description="Zero-based month")
    year: int
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


class DashboardSummary(_Result):
    """Headline figures: this month's flows plus the all-time balance."""

    month: int = Field(..., ge=0, le=11)
    year: int
    monthly_income: Decimal
    monthly_expenses: Decimal
    balance: Decimal


class TrendPoint(_Result):
    """One month of the income/expense time series."""

    period: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="YYYY-MM")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class PaymentSource(str, Enum):
    """Where an upcoming payment comes from."""
    SUBSCRIPTION = "subscription"
    LOAN = "loan"


class UpcomingPayment(_Result):
    """A projected payment inside the dashboard's look-ahead window."""

    source: PaymentSource
    record_id: str
    name: str
    amount: Decimal
    due_date: date
    category: Optional[str] = None


class BudgetClassification(str, Enum):
    """
    How much of a budget has been consumed.

    UNDER: ratio <= near threshold (0.75 by default)
    NEAR:  near threshold < ratio <= 1
    OVER:  ratio > 1
    """
    UNDER = "under"
    NEAR = "near"
    OVER = "over"


class BudgetStatus(_Result):
    """Consumption of one budget for its month."""

    budget_id: str
    category: str
    month: int = Field(..., ge=0, le=11)
    year: int
    budgeted: Decimal
    spent: Decimal
    remaining: Decimal = Field(
        ...,
        description="budgeted - spent; negative when over budget"
    )
    ratio: Decimal = Field(..., ge=0)
    classification: BudgetClassification

    @property
    def is_over(self) -> bool:
        return self.classification == BudgetClassification.OVER

    @property
    def overspent(self) -> Decimal:
        """Amount spent beyond the cap (zero when within budget)."""
        return max(Decimal("0"), -self.remaining)


class Dashboard(_Result):
    """Everything the dashboard page shows, computed from one snapshot."""

    summary: DashboardSummary
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    trend: list[TrendPoint] = Field(default_factory=list)
    upcoming: list[UpcomingPayment] = Field(default_factory=list)
