"""Tests for transaction aggregation."""

import pytest
from datetime import date
from decimal import Decimal

from finpro.engine.aggregator import (
    category_breakdown,
    dashboard_summary,
    filter_transactions,
    lifetime_balance,
    monthly_summary,
    monthly_trend,
    period_key,
    transaction_categories,
)
from finpro.models.records import Transaction, TransactionType


def tx(type_, amount, day, category=None, name=None, **extra) -> Transaction:
    return Transaction(
        type=type_,
        name=name or f"{type_} {amount}",
        amount=Decimal(str(amount)),
        date=day,
        category=category,
        **extra,
    )


@pytest.fixture
def transactions():
    return [
        tx("income", 3000000, date(2024, 3, 1), "Salario", name="Nómina marzo"),
        tx("expense", 200000, date(2024, 3, 5), "Comida", name="Mercado"),
        tx("expense", 50000, date(2024, 3, 20), "Transporte", name="Taxi"),
        tx("expense", 80000, date(2024, 4, 2), "Comida", name="Restaurante"),
        tx("income", 100000, date(2024, 4, 15), name="Regalo"),
        tx("expense", 40000, date(2023, 12, 31), "Hogar", name="Bombillos"),
    ]


class TestMonthlySummary:
    """Tests for monthly totals."""

    def test_month_is_zero_based(self, transactions):
        summary = monthly_summary(transactions, 2, 2024)  # March
        assert summary.income == Decimal("3000000")
        assert summary.expenses == Decimal("250000")
        assert summary.net == Decimal("2750000")

    def test_empty_month(self, transactions):
        summary = monthly_summary(transactions, 6, 2024)
        assert summary.income == Decimal("0")
        assert summary.expenses == Decimal("0")

    def test_additive_over_disjoint_sets(self, transactions):
        """Test that summing two halves equals summing the whole."""
        first, second = transactions[:3], transactions[3:]
        for month, year in [(2, 2024), (3, 2024), (11, 2023)]:
            whole = monthly_summary(transactions, month, year)
            a = monthly_summary(first, month, year)
            b = monthly_summary(second, month, year)
            assert whole.income == a.income + b.income
            assert whole.expenses == a.expenses + b.expenses

    def test_malformed_records_are_skipped(self, transactions):
        broken = {"id": "x", "type": "expense", "name": "Roto", "amount": "abc", "date": "2024-03-02"}
        summary = monthly_summary(transactions + [broken], 2, 2024)
        assert summary.expenses == Decimal("250000")


class TestBalancesAndBreakdowns:
    """Tests for balance, breakdown and trend."""

    def test_lifetime_balance(self, transactions):
        assert lifetime_balance(transactions) == Decimal("2730000")

    def test_lifetime_balance_accepts_documents(self):
        docs = [
            {"type": "income", "name": "A", "amount": "10.50", "date": "2024-01-01"},
            {"type": "expense", "name": "B", "amount": 0.25, "date": "2024-01-02", "category": "Otros"},
        ]
        assert lifetime_balance(docs) == Decimal("10.25")

    def test_category_breakdown_first_seen_order(self, transactions):
        breakdown = category_breakdown(transactions)
        assert list(breakdown) == ["Comida", "Transporte", "Hogar"]
        assert breakdown["Comida"] == Decimal("280000")

    def test_breakdown_ignores_income(self, transactions):
        assert "Salario" not in category_breakdown(transactions)

    def test_uncategorized_stored_expense_counts_in_totals_only(self):
        """Test that an old expense without category still moves the totals."""
        docs = [
            {"type": "income", "name": "Salario", "amount": "1000", "date": "2024-03-01"},
            {"type": "expense", "name": "Sin categoria", "amount": "300", "date": "2024-03-02"},
        ]
        summary = monthly_summary(docs, 2, 2024)
        assert summary.expenses == Decimal("300")
        assert lifetime_balance(docs) == Decimal("700")
        assert monthly_trend(docs)[0].expense == Decimal("300")
        assert category_breakdown(docs) == {}

    def test_monthly_trend_is_chronological(self, transactions):
        trend = monthly_trend(transactions)
        assert [p.period for p in trend] == ["2023-12", "2024-03", "2024-04"]
        assert trend[2].income == Decimal("100000")
        assert trend[2].expense == Decimal("80000")

    def test_period_key_is_zero_padded(self):
        assert period_key(date(2024, 3, 9)) == "2024-03"

    def test_dashboard_summary(self, transactions):
        summary = dashboard_summary(transactions, as_of="2024-04-20")
        assert summary.month == 3
        assert summary.monthly_income == Decimal("100000")
        assert summary.monthly_expenses == Decimal("80000")
        assert summary.balance == Decimal("2730000")

    def test_transaction_categories(self, transactions):
        assert transaction_categories(transactions) == ["Comida", "Hogar", "Salario", "Transporte"]


class TestFilterTransactions:
    """Tests for the transaction list view."""

    def test_default_sort_newest_first(self, transactions):
        result = filter_transactions(transactions)
        assert result[0].date == date(2024, 4, 15)
        assert result[-1].date == date(2023, 12, 31)

    def test_filter_by_type(self, transactions):
        result = filter_transactions(transactions, type=TransactionType.INCOME)
        assert {t.name for t in result} == {"Nómina marzo", "Regalo"}

    def test_filter_by_inclusive_date_range(self, transactions):
        result = filter_transactions(transactions, start="2024-03-05", end="2024-03-20")
        assert [t.name for t in result] == ["Taxi", "Mercado"]

    def test_search_is_case_insensitive_over_name_and_category(self, transactions):
        assert [t.name for t in filter_transactions(transactions, search="TAXI")] == ["Taxi"]
        result = filter_transactions(transactions, search="comida", sort_key="amount", descending=False)
        assert [t.name for t in result] == ["Restaurante", "Mercado"]

    def test_sort_by_name(self, transactions):
        result = filter_transactions(transactions, category="Comida", sort_key="name", descending=False)
        assert [t.name for t in result] == ["Mercado", "Restaurante"]

    def test_unknown_sort_key(self, transactions):
        with pytest.raises(ValueError, match="Cannot sort by"):
            filter_transactions(transactions, sort_key="colour")
