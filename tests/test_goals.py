"""Tests for the savings goal tracker."""

import pytest
from datetime import date
from decimal import Decimal

from finpro.engine.errors import ExceedsTarget, InvalidAmount
from finpro.engine.goals import contribute, is_complete, progress_ratio, remaining_to_target
from finpro.models.records import SAVINGS_GOAL_CATEGORY, SavingsGoal, TransactionType


@pytest.fixture
def goal():
    return SavingsGoal(
        id="goal-1",
        name="Carro",
        target_amount=Decimal("200000"),
        current_amount=Decimal("150000"),
    )


class TestGoalDerivedValues:
    """Tests for goal progress."""

    def test_progress(self, goal):
        assert progress_ratio(goal) == Decimal("0.75")
        assert remaining_to_target(goal) == Decimal("50000")
        assert is_complete(goal) is False

    def test_empty_goal(self):
        goal = SavingsGoal(name="Viaje", target_amount=100)
        assert progress_ratio(goal) == Decimal("0")


class TestContribute:
    """Tests for contribute."""

    def test_overshooting_contribution_is_rejected(self, goal):
        """Test that 60,000 on a 50,000 shortfall reports the shortfall."""
        with pytest.raises(ExceedsTarget) as exc_info:
            contribute(goal, 60000, date(2024, 5, 1))
        assert exc_info.value.shortfall == Decimal("50000")
        assert exc_info.value.goal_id == "goal-1"
        assert goal.current_amount == Decimal("150000")

    def test_exact_contribution_completes_goal(self, goal):
        updated, transaction = contribute(goal, 50000, date(2024, 5, 1))
        assert updated.current_amount == Decimal("200000")
        assert is_complete(updated) is True
        assert progress_ratio(updated) == Decimal("1")

        assert transaction.type == TransactionType.EXPENSE
        assert transaction.category == SAVINGS_GOAL_CATEGORY
        assert transaction.goal_id == "goal-1"
        assert transaction.amount == Decimal("50000")
        assert transaction.name == "Contribución a meta: Carro"

    def test_complete_goal_rejects_any_contribution(self, goal):
        complete, _ = contribute(goal, 50000, date(2024, 5, 1))
        with pytest.raises(ExceedsTarget) as exc_info:
            contribute(complete, 1, date(2024, 5, 2))
        assert exc_info.value.shortfall == Decimal("0")

    @pytest.mark.parametrize("amount", [0, -1, "", "abc"])
    def test_invalid_amount(self, goal, amount):
        with pytest.raises(InvalidAmount, match="Contribution must be greater than zero"):
            contribute(goal, amount)

    def test_accepts_legacy_document(self):
        updated, transaction = contribute(
            {"id": "g2", "name": "Viaje", "targetAmount": "1000", "currentAmount": "0"},
            "250.50",
            "2024-07-01",
        )
        assert updated.current_amount == Decimal("250.50")
        assert transaction.date == date(2024, 7, 1)


class TestContributionSequences:
    """Tests for invariants over a series of contributions."""

    @pytest.mark.parametrize("amounts", [
        [10000, 20000, 20000],
        [60000, 50000, 1],
        [49999, 2, 1],
        ["0.50", 30000, 30000, "19999.50"],
    ])
    def test_current_never_exceeds_target(self, goal, amounts):
        accepted = Decimal("0")
        for amount in amounts:
            try:
                goal, _ = contribute(goal, amount, date(2024, 5, 1))
                accepted += Decimal(str(amount))
            except ExceedsTarget as e:
                assert e.shortfall == remaining_to_target(goal)
            assert goal.current_amount <= goal.target_amount
        assert goal.current_amount == Decimal("150000") + accepted
