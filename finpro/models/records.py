"""
Stored Record Models

These models define the five record kinds a user keeps in the store:
transactions, subscriptions, loans, savings goals and budgets.

They are designed to:
1. Normalize dates and amounts on the way in (see engine.normalize)
2. Reject structurally malformed records loudly
3. Be immutable, so an engine operation can never half-update a record

DESIGN DECISION: Loans are a tagged union (DebtorLoan | CreditorLoan)
instead of one loose record whose fields depend on its kind.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from functools import partial
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationInfo,
    field_validator,
    model_validator,
)

from finpro.engine.normalize import normalize_amount, normalize_date


# =============================================================================
# CANONICAL FIELD TYPES
# =============================================================================

CanonicalDate = Annotated[date, BeforeValidator(normalize_date)]
PositiveAmount = Annotated[Decimal, BeforeValidator(normalize_amount)]
NonNegativeAmount = Annotated[
    Decimal, BeforeValidator(partial(normalize_amount, allow_zero=True))
]


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class BillingCycle(str, Enum):
    """How often a subscription charges."""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class LoanKind(str, Enum):
    """
    Which side of the loan the user is on.

    DEBTOR: the user owes the counterparty.
    CREDITOR: the counterparty owes the user.
    """
    DEBTOR = "debtor"
    CREDITOR = "creditor"


class TermUnit(str, Enum):
    MONTHS = "months"
    YEARS = "years"


class InterestKind(str, Enum):
    """How a creditor loan's interest_rate is read."""
    PERCENTAGE_ANNUAL = "percentage_annual"
    FIXED_FEE = "fixed_fee"


class Collection(str, Enum):
    """Names of the five per-user collections in the store."""
    TRANSACTIONS = "transactions"
    SUBSCRIPTIONS = "subscriptions"
    LOANS = "loans"
    GOALS = "goals"
    BUDGETS = "budgets"


# =============================================================================
# CATEGORY CONSTANTS
# =============================================================================

LOAN_PAYMENT_CATEGORY = "Pago Préstamo"
LOAN_COLLECTION_CATEGORY = "Cobro Préstamo"
SAVINGS_GOAL_CATEGORY = "Metas de Ahorro"

DEFAULT_EXPENSE_CATEGORIES = (
    "Comida",
    "Transporte",
    "Salud",
    "Entretenimiento",
    "Hogar",
    "Educación",
    "Ropa",
    "Otros",
    SAVINGS_GOAL_CATEGORY,
    LOAN_PAYMENT_CATEGORY,
)

DEFAULT_INCOME_CATEGORIES = (
    "Salario",
    "Bonificación",
    "Inversiones",
    "Regalo",
    "Otros",
    LOAN_COLLECTION_CATEGORY,
)

SUBSCRIPTION_CATEGORIES = (
    "Streaming",
    "Software",
    "Gimnasio",
    "Noticias",
    "Música",
    "Gaming",
    "Utilidades",
    "Otro",
)

GOAL_ICONS = (
    "PiggyBank",
    "Gift",
    "Car",
    "Home",
    "Plane",
    "Briefcase",
    "GraduationCap",
    "ShoppingBag",
    "CircleDollarSign",
    "TrendingUpIcon",
    "Target",
)
DEFAULT_GOAL_ICON = "Target"


def _new_id() -> str:
    return str(uuid4())


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _Record(BaseModel):
    """Common configuration for stored records."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(
        default_factory=_new_id,
        min_length=1,
        description="Store document id"
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(_Record):
    """
    A single income or expense.

    goal_id and loan_id are loose provenance links set on synthetic
    transactions. A dangling link (goal or loan since deleted) is NOT
    an error.
    """

    type: TransactionType
    name: str = Field(
        ...,
        min_length=1,
        description="What the money was for"
    )
    amount: PositiveAmount
    date: CanonicalDate
    category: Optional[str] = Field(
        default=None,
        description="Required for expenses, optional for income"
    )
    goal_id: Optional[str] = None
    loan_id: Optional[str] = None

    @field_validator("category", "goal_id", "loan_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Empty form fields mean the value is not set."""
        return _blank_to_none(v)

    @model_validator(mode="after")
    def validate_category(self, info: ValidationInfo) -> "Transaction":
        """
        New expenses must be categorized.

        Documents already in the store are read with
        ``{"allow_uncategorized": True}`` as validation context so an
        older uncategorized expense still counts in totals.
        """
        if info.context and info.context.get("allow_uncategorized"):
            return self
        if self.type == TransactionType.EXPENSE and not self.category:
            raise ValueError("Expense transactions require a category")
        return self

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class Subscription(_Record):
    """
    A recurring charge.

    The next payment date is never stored; it is projected from
    start_date and billing_cycle on every read.
    """

    service_name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    price: PositiveAmount
    billing_cycle: BillingCycle
    start_date: CanonicalDate


# =============================================================================
# LOANS
# =============================================================================

class LoanPayment(BaseModel):
    """One entry of a loan's append-only payment log."""
    model_config = ConfigDict(frozen=True)

    amount: PositiveAmount
    date: CanonicalDate


class _LoanBase(_Record):
    counterparty_name: str = Field(
        ...,
        min_length=1,
        description="Lender for debtor loans, borrower for creditor loans"
    )
    principal: PositiveAmount
    interest_rate: NonNegativeAmount = Decimal("0")
    term: int = Field(..., gt=0)
    term_unit: TermUnit = TermUnit.MONTHS
    start_date: CanonicalDate
    payments: tuple[LoanPayment, ...] = Field(
        default=(),
        description="Append-only payment log, oldest first"
    )

    @property
    def term_months(self) -> int:
        if self.term_unit == TermUnit.YEARS:
            return self.term * 12
        return self.term


class DebtorLoan(_LoanBase):
    """Money the user owes."""

    kind: Literal["debtor"] = "debtor"
    suggested_monthly_payment: PositiveAmount


class CreditorLoan(_LoanBase):
    """Money owed to the user."""

    kind: Literal["creditor"] = "creditor"
    interest_kind: InterestKind = InterestKind.PERCENTAGE_ANNUAL


Loan = Annotated[Union[DebtorLoan, CreditorLoan], Field(discriminator="kind")]

LoanAdapter: TypeAdapter = TypeAdapter(Loan)


# =============================================================================
# SAVINGS GOALS
# =============================================================================

class SavingsGoal(_Record):
    """
    A savings target.

    current_amount only moves through the goal tracker's contribute
    operation and can never exceed target_amount.
    """

    name: str = Field(..., min_length=1)
    target_amount: PositiveAmount
    current_amount: NonNegativeAmount = Decimal("0")
    target_date: Optional[CanonicalDate] = None
    icon_tag: str = DEFAULT_GOAL_ICON

    @field_validator("target_date", mode="before")
    @classmethod
    def blank_target_date(cls, v):
        return _blank_to_none(v)

    @model_validator(mode="after")
    def validate_current_amount(self) -> "SavingsGoal":
        if self.current_amount > self.target_amount:
            raise ValueError("Current amount cannot exceed target amount")
        return self


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(_Record):
    """
    A spending cap for one category in one month.

    month is zero-based (0 = January), as stored by the client.
    """

    category: str = Field(..., min_length=1)
    amount: PositiveAmount
    month: int = Field(..., ge=0, le=11)
    year: int = Field(..., ge=1900, le=9999)


# =============================================================================
# SNAPSHOT
# =============================================================================

class FinanceSnapshot(BaseModel):
    """
    One user's five collections at a point in time.

    A newer snapshot replaces an older one wholesale; nothing is merged.
    """
    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    subscriptions: tuple[Subscription, ...] = ()
    loans: tuple[Loan, ...] = ()
    goals: tuple[SavingsGoal, ...] = ()
    budgets: tuple[Budget, ...] = ()
    skipped: int = Field(
        default=0,
        ge=0,
        description="Number of malformed records left out"
    )
