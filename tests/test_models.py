"""
Tests for FinPro

Test strategy:
1. Unit tests for individual components (models, engine functions)
2. Integration tests for flows (orchestrator against the in-memory store)
3. No real API calls in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finpro.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Budget,
    BudgetClassification,
    BudgetStatus,
    CreditorLoan,
    DebtorLoan,
    InterestKind,
    LoanAdapter,
    LoanPayment,
    MonthlySummary,
    SavingsGoal,
    Subscription,
    TermUnit,
    Transaction,
    TransactionType,
)


class TestRecordModels:
    """Tests for stored record models."""

    def test_transaction_creation(self):
        """Test Transaction model creation with canonical values."""
        tx = Transaction(
            type="expense",
            name="Mercado",
            amount="45000",
            date="2024-03-10",
            category="Comida",
        )
        assert tx.type == TransactionType.EXPENSE
        assert tx.amount == Decimal("45000")
        assert tx.date == date(2024, 3, 10)
        assert tx.is_expense and not tx.is_income
        assert tx.id

    def test_transaction_strips_whitespace(self):
        tx = Transaction(type="income", name="  Salario  ", amount=1, date=date(2024, 1, 1))
        assert tx.name == "Salario"

    def test_expense_requires_category(self):
        """Test that an uncategorized expense is rejected."""
        with pytest.raises(ValueError, match="Expense transactions require a category"):
            Transaction(type="expense", name="Algo", amount=10, date="2024-01-01")

    def test_blank_category_counts_as_missing(self):
        with pytest.raises(ValueError, match="require a category"):
            Transaction(type="expense", name="Algo", amount=10, date="2024-01-01", category="  ")

    def test_income_category_is_optional(self):
        tx = Transaction(type="income", name="Regalo", amount=10, date="2024-01-01", goal_id="")
        assert tx.category is None
        assert tx.goal_id is None

    def test_transaction_rejects_zero_amount(self):
        with pytest.raises(ValueError):
            Transaction(type="income", name="Nada", amount=0, date="2024-01-01")

    def test_records_are_immutable(self):
        tx = Transaction(type="income", name="Salario", amount=10, date="2024-01-01")
        with pytest.raises(ValidationError):
            tx.amount = Decimal("20")

    def test_subscription_creation(self):
        sub = Subscription(
            service_name="Netflix",
            category="Streaming",
            price="38900",
            billing_cycle="monthly",
            start_date="2024-01-10",
        )
        assert sub.price == Decimal("38900")
        assert sub.start_date == date(2024, 1, 10)

    def test_debtor_loan_term_in_years(self):
        loan = DebtorLoan(
            counterparty_name="Banco",
            principal=1000000,
            term=2,
            term_unit=TermUnit.YEARS,
            start_date="2024-01-15",
            suggested_monthly_payment=50000,
        )
        assert loan.kind == "debtor"
        assert loan.term_months == 24
        assert loan.payments == ()

    def test_loan_union_discriminates_on_kind(self):
        loan = LoanAdapter.validate_python({
            "kind": "creditor",
            "counterparty_name": "Ana",
            "principal": "500000",
            "term": 6,
            "start_date": "2024-02-01",
            "interest_kind": "fixed_fee",
            "payments": [{"amount": "100000", "date": "2024-03-01"}],
        })
        assert isinstance(loan, CreditorLoan)
        assert loan.interest_kind == InterestKind.FIXED_FEE
        assert loan.payments == (LoanPayment(amount=Decimal("100000"), date=date(2024, 3, 1)),)

    def test_debtor_loan_requires_suggested_payment(self):
        with pytest.raises(ValidationError):
            LoanAdapter.validate_python({
                "kind": "debtor",
                "counterparty_name": "Banco",
                "principal": 1000,
                "term": 12,
                "start_date": "2024-01-01",
            })

    def test_goal_current_cannot_exceed_target(self):
        with pytest.raises(ValueError, match="Current amount cannot exceed target amount"):
            SavingsGoal(name="Viaje", target_amount=100, current_amount=150)

    def test_goal_defaults(self):
        goal = SavingsGoal(name="Viaje", target_amount=100, target_date="")
        assert goal.current_amount == Decimal("0")
        assert goal.target_date is None
        assert goal.icon_tag == "Target"

    def test_budget_month_is_zero_based(self):
        assert Budget(category="Comida", amount=100, month=0, year=2024).month == 0
        with pytest.raises(ValidationError):
            Budget(category="Comida", amount=100, month=12, year=2024)


class TestResultModels:
    """Tests for derived-value models."""

    def test_monthly_summary_net(self):
        summary = MonthlySummary(month=2, year=2024, income=Decimal("100"), expenses=Decimal("30"))
        assert summary.net == Decimal("70")

    def test_budget_status_overspent(self):
        status = BudgetStatus(
            budget_id="b1",
            category="Comida",
            month=2,
            year=2024,
            budgeted=Decimal("100"),
            spent=Decimal("130"),
            remaining=Decimal("-30"),
            ratio=Decimal("1.3"),
            classification=BudgetClassification.OVER,
        )
        assert status.is_over is True
        assert status.overspent == Decimal("30")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            description="Snapshot loaded",
        )
        assert event.event_type == AuditEventType.SNAPSHOT_LOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            description="Record saved",
            details={"collection": "transactions"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "record_saved"
        assert log_dict["details"]["collection"] == "transactions"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            description="Deleted",
            user_id="user-1",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "record_deleted"  # event_type
        assert row[6] == "user-1"  # user_id
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_loan_payment(self):
        """Test AuditEventBuilder.loan_payment_recorded."""
        correlation_id = uuid4()

        event = AuditEventBuilder.loan_payment_recorded(
            loan_id="loan-1",
            user_id="user-1",
            amount="400000",
            transaction_id="tx-1",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.LOAN_PAYMENT_RECORDED
        assert event.entity_type == "loans"
        assert event.entity_id == "loan-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_partial_write(self):
        """Test that an unrecovered partial write is critical."""
        event = AuditEventBuilder.partial_write(
            entity_type="goals",
            entity_id="goal-1",
            user_id="user-1",
            error_message="boom",
            rolled_back=False,
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.CRITICAL
        assert event.details == {"rolled_back": False}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
