"""
Transaction Aggregation

Folds a collection of transactions into the figures the dashboard and
transaction list show. Every function recomputes from scratch; nothing
is maintained incrementally between snapshots.

Malformed transactions are skipped (and logged), never allowed to abort
an aggregate. Months are zero-based (0 = January), the same convention
Budget records use.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from finpro.engine.normalize import normalize_date, resolve_as_of
from finpro.engine.snapshot import coerce_transaction, iter_valid
from finpro.models.records import Transaction, TransactionType
from finpro.models.results import DashboardSummary, MonthlySummary, TrendPoint


ZERO = Decimal("0")

SORT_KEYS = ("date", "amount", "name", "category", "type")


def period_key(day: date) -> str:
    """Zero-padded "YYYY-MM" key, so string order is chronological."""
    return f"{day.year:04d}-{day.month:02d}"


def in_month(day: date, month: int, year: int) -> bool:
    """True if ``day`` falls in zero-based ``month`` of ``year``."""
    return day.year == year and day.month - 1 == month


def monthly_summary(
    transactions: Iterable[Any],
    month: int,
    year: int,
) -> MonthlySummary:
    """Income and expense totals for one month."""
    income = ZERO
    expenses = ZERO
    for t in iter_valid(transactions, coerce_transaction):
        if not in_month(t.date, month, year):
            continue
        if t.is_income:
            income += t.amount
        else:
            expenses += t.amount
    return MonthlySummary(month=month, year=year, income=income, expenses=expenses)


def lifetime_balance(transactions: Iterable[Any]) -> Decimal:
    """All income minus all expenses, regardless of date."""
    balance = ZERO
    for t in iter_valid(transactions, coerce_transaction):
        balance += t.amount if t.is_income else -t.amount
    return balance


def category_breakdown(transactions: Iterable[Any]) -> dict[str, Decimal]:
    """
    Total expense per category, in first-seen order.

    Expenses without a category are left out of this view.
    """
    totals: dict[str, Decimal] = {}
    for t in iter_valid(transactions, coerce_transaction):
        if not t.is_expense or not t.category:
            continue
        totals[t.category] = totals.get(t.category, ZERO) + t.amount
    return totals


def monthly_trend(transactions: Iterable[Any]) -> list[TrendPoint]:
    """One point per month that has at least one transaction, oldest first."""
    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expense: dict[str, Decimal] = defaultdict(lambda: ZERO)
    periods: set[str] = set()

    for t in iter_valid(transactions, coerce_transaction):
        key = period_key(t.date)
        periods.add(key)
        if t.is_income:
            income[key] += t.amount
        else:
            expense[key] += t.amount

    return [
        TrendPoint(period=key, income=income[key], expense=expense[key])
        for key in sorted(periods)
    ]


def dashboard_summary(
    transactions: Iterable[Any],
    as_of: Optional[Any] = None,
) -> DashboardSummary:
    """This month's income and expenses plus the lifetime balance."""
    reference = resolve_as_of(as_of)
    records = list(iter_valid(transactions, coerce_transaction))
    month = reference.month - 1
    summary = monthly_summary(records, month, reference.year)
    return DashboardSummary(
        month=month,
        year=reference.year,
        monthly_income=summary.income,
        monthly_expenses=summary.expenses,
        balance=lifetime_balance(records),
    )


def transaction_categories(transactions: Iterable[Any]) -> list[str]:
    """Distinct categories in use, sorted."""
    return sorted({
        t.category
        for t in iter_valid(transactions, coerce_transaction)
        if t.category
    })


def filter_transactions(
    transactions: Iterable[Any],
    type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    start: Optional[Any] = None,
    end: Optional[Any] = None,
    search: Optional[str] = None,
    sort_key: str = "date",
    descending: bool = True,
) -> list[Transaction]:
    """
    Filter and sort transactions for the transaction list.

    Args:
        type: keep only income or only expenses
        category: exact category match
        start, end: inclusive date bounds
        search: case-insensitive substring of name or category
        sort_key: one of date, amount, name, category, type
        descending: newest/largest first when True
    """
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Cannot sort by {sort_key!r}; expected one of {SORT_KEYS}")

    start_day = normalize_date(start) if start is not None else None
    end_day = normalize_date(end) if end is not None else None
    wanted_type = TransactionType(type) if type is not None else None
    needle = search.strip().lower() if search else None

    selected = []
    for t in iter_valid(transactions, coerce_transaction):
        if wanted_type is not None and t.type != wanted_type:
            continue
        if category and t.category != category:
            continue
        if start_day is not None and t.date < start_day:
            continue
        if end_day is not None and t.date > end_day:
            continue
        if needle and needle not in t.name.lower() and needle not in (t.category or "").lower():
            continue
        selected.append(t)

    def _sort_value(t: Transaction):
        if sort_key == "name":
            return t.name.lower()
        if sort_key == "category":
            return (t.category or "").lower()
        if sort_key == "type":
            return t.type.value
        return getattr(t, sort_key)

    selected.sort(key=_sort_value, reverse=descending)
    return selected
