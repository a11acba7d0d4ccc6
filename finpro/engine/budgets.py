"""
Budget Evaluation

Compares a month's expenses in a category against the budgeted cap.

Classification of ratio = spent / budgeted:
    under   ratio <= near threshold (0.75)
    near    near threshold < ratio <= 1
    over    ratio > 1   (remaining goes negative)

The evaluator is stateless per call, so duplicate budgets for the same
(category, month, year) are each evaluated on their own.
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from finpro.engine.aggregator import in_month
from finpro.engine.normalize import normalize_amount
from finpro.engine.snapshot import coerce_budget, coerce_transaction, iter_valid
from finpro.models.records import Budget
from finpro.models.results import BudgetClassification, BudgetStatus


ZERO = Decimal("0")
ONE = Decimal("1")
NEAR_THRESHOLD = Decimal("0.75")


def spent(
    transactions: Iterable[Any],
    category: str,
    month: int,
    year: int,
) -> Decimal:
    """Sum of expenses in ``category`` during zero-based ``month`` of ``year``."""
    return sum(
        (
            t.amount
            for t in iter_valid(transactions, coerce_transaction)
            if t.is_expense and t.category == category and in_month(t.date, month, year)
        ),
        ZERO,
    )


def classify(ratio: Decimal, near_threshold: Decimal = NEAR_THRESHOLD) -> BudgetClassification:
    if ratio > ONE:
        return BudgetClassification.OVER
    if ratio > near_threshold:
        return BudgetClassification.NEAR
    return BudgetClassification.UNDER


def status(
    budget: Budget,
    spent_amount: Decimal,
    near_threshold: Decimal = NEAR_THRESHOLD,
) -> BudgetStatus:
    """Remaining amount, consumption ratio and classification of a budget."""
    spent_amount = normalize_amount(spent_amount, allow_zero=True)
    if budget.amount > 0:
        ratio = spent_amount / budget.amount
    else:
        ratio = ZERO

    return BudgetStatus(
        budget_id=budget.id,
        category=budget.category,
        month=budget.month,
        year=budget.year,
        budgeted=budget.amount,
        spent=spent_amount,
        remaining=budget.amount - spent_amount,
        ratio=ratio,
        classification=classify(ratio, Decimal(near_threshold)),
    )


def budgets_for_month(budgets: Iterable[Any], month: int, year: int) -> list[Budget]:
    return [
        b for b in iter_valid(budgets, coerce_budget)
        if b.month == month and b.year == year
    ]


def evaluate_month(
    budgets: Iterable[Any],
    transactions: Iterable[Any],
    month: int,
    year: int,
    near_threshold: Decimal = NEAR_THRESHOLD,
) -> list[BudgetStatus]:
    """Status of every budget defined for the given month."""
    records = list(iter_valid(transactions, coerce_transaction))
    return [
        status(budget, spent(records, budget.category, month, year), near_threshold)
        for budget in budgets_for_month(budgets, month, year)
    ]
