"""
Engine Error Taxonomy

Every failure the engine reports to its caller is one of these.
Validation errors are raised BEFORE anything is built, so a rejected
operation never leaves a half-updated record behind.
"""

from decimal import Decimal
from typing import Any, Optional


class FinanceEngineError(Exception):
    """Base exception for engine errors."""
    pass


class InvalidDate(FinanceEngineError, ValueError):
    """Date input could not be parsed or is not a real calendar date."""

    def __init__(self, value: Any, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Invalid date: {value!r}")


class InvalidAmount(FinanceEngineError, ValueError):
    """Monetary input is non-numeric, negative, or zero where not allowed."""

    def __init__(self, value: Any, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Invalid amount: {value!r}")


class ExceedsTarget(FinanceEngineError):
    """A goal contribution would push the saved amount past the target."""

    def __init__(self, goal_id: str, shortfall: Decimal):
        self.goal_id = goal_id
        self.shortfall = shortfall
        super().__init__(
            f"Contribution exceeds goal {goal_id}; "
            f"{shortfall} is needed to reach the target"
        )


class AlreadyComplete(FinanceEngineError):
    """Payment attempted against a loan that is already settled."""

    def __init__(self, record_id: str, message: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message or f"Record {record_id} is already complete")


class InconsistentRecord(FinanceEngineError):
    """A stored record is structurally malformed for its kind."""

    def __init__(self, record_id: Optional[str], reason: str):
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Inconsistent record {record_id or '<no id>'}: {reason}")
