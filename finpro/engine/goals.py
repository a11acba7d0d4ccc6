"""
Savings Goal Tracker

INVARIANT: current_amount never exceeds target_amount. A contribution
that would overshoot is rejected with ExceedsTarget, which reports the
exact amount still needed, and the goal is left untouched.
"""

from decimal import Decimal
from typing import Any, Optional

from finpro.engine.errors import ExceedsTarget, InvalidAmount
from finpro.engine.normalize import normalize_amount, resolve_as_of
from finpro.engine.snapshot import coerce_goal
from finpro.models.records import (
    SAVINGS_GOAL_CATEGORY,
    SavingsGoal,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")
ONE = Decimal("1")


def progress_ratio(goal: SavingsGoal) -> Decimal:
    """Saved fraction of the target, clamped to [0, 1]."""
    if goal.target_amount <= 0:
        return ONE
    return min(ONE, goal.current_amount / goal.target_amount)


def remaining_to_target(goal: SavingsGoal) -> Decimal:
    return max(ZERO, goal.target_amount - goal.current_amount)


def is_complete(goal: SavingsGoal) -> bool:
    return goal.current_amount >= goal.target_amount


def contribute(
    goal: Any,
    amount: Any,
    contribution_date: Optional[Any] = None,
) -> tuple[SavingsGoal, Transaction]:
    """
    Add money to a savings goal.

    Returns:
        (updated_goal, synthetic_expense_transaction)

    Raises:
        InvalidAmount: amount is not a positive number
        ExceedsTarget: the contribution would overshoot the target
            (also raised for a goal already at its target, shortfall 0)
    """
    goal = coerce_goal(goal)

    try:
        added = normalize_amount(amount)
    except InvalidAmount as e:
        raise InvalidAmount(amount, "Contribution must be greater than zero") from e

    if goal.current_amount + added > goal.target_amount:
        raise ExceedsTarget(goal.id, remaining_to_target(goal))

    contributed_on = resolve_as_of(contribution_date)

    updated = goal.model_copy(update={"current_amount": goal.current_amount + added})
    transaction = Transaction(
        type=TransactionType.EXPENSE,
        name=f"Contribución a meta: {goal.name}",
        amount=added,
        date=contributed_on,
        category=SAVINGS_GOAL_CATEGORY,
        goal_id=goal.id,
    )
    return updated, transaction
