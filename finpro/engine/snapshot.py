"""
Snapshot Coercion

The store is not schema-enforced: documents may come from older clients
(camelCase keys, loan fields that depend on the loan's side) or be
half-written. This module turns raw documents into typed records.

RULES:
- A single malformed record raises InconsistentRecord from coerce_*
- Collection-level helpers skip malformed records (and log them)
  instead of failing the whole collection
"""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from finpro.engine.errors import InconsistentRecord
from finpro.models.records import (
    Budget,
    Collection,
    CreditorLoan,
    DebtorLoan,
    FinanceSnapshot,
    Loan,
    LoanAdapter,
    SavingsGoal,
    Subscription,
    Transaction,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Key names written by the original web client
_TRANSACTION_KEYS = {
    "goalId": "goal_id",
    "loanId": "loan_id",
}
_SUBSCRIPTION_KEYS = {
    "serviceName": "service_name",
    "billingCycle": "billing_cycle",
    "startDate": "start_date",
}
_GOAL_KEYS = {
    "targetAmount": "target_amount",
    "currentAmount": "current_amount",
    "targetDate": "target_date",
    "iconName": "icon_tag",
    "iconTag": "icon_tag",
}
_LOAN_KEYS = {
    "lenderName": "counterparty_name",
    "debtorName": "counterparty_name",
    "totalLoanAmount": "principal",
    "amountLoaned": "principal",
    "interestRate": "interest_rate",
    "termUnit": "term_unit",
    "startDate": "start_date",
    "grantDate": "start_date",
    "monthlyPayment": "suggested_monthly_payment",
}
_LEGACY_PAYMENT_KEYS = {
    "debtor": "paymentsMade",
    "creditor": "paymentsReceived",
}
_STORED_TRANSACTION_CONTEXT = {"allow_uncategorized": True}

_LEGACY_INTEREST_KINDS = {
    "annual": "percentage_annual",
    "fixed": "fixed_fee",
}


def _rename(raw: Mapping[str, Any], keys: Mapping[str, str]) -> dict:
    """Copy a document, mapping legacy keys without overwriting current ones."""
    doc = {k: v for k, v in raw.items() if k not in keys}
    for legacy, current in keys.items():
        if legacy in raw and current not in doc:
            doc[current] = raw[legacy]
    return doc


def _record_id(raw: Any) -> Optional[str]:
    if isinstance(raw, Mapping):
        value = raw.get("id")
        return str(value) if value is not None else None
    return getattr(raw, "id", None)


def _describe(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in error['loc']) or 'record'}: {error['msg']}"
        for error in exc.errors()
    )


def _validate(model: type[BaseModel], raw: Any, doc: dict, context: Optional[dict] = None) -> Any:
    try:
        return model.model_validate(doc, context=context)
    except ValidationError as e:
        raise InconsistentRecord(_record_id(raw), _describe(e)) from e


def coerce_transaction(raw: Any, require_category: bool = False) -> Transaction:
    """
    Typed Transaction from a Transaction or a store document.

    Stored expenses without a category are accepted unless
    ``require_category`` is set, as it is for new writes.
    """
    if isinstance(raw, Transaction):
        typed = raw
    elif isinstance(raw, Mapping):
        typed = _validate(
            Transaction,
            raw,
            _rename(raw, _TRANSACTION_KEYS),
            context=None if require_category else _STORED_TRANSACTION_CONTEXT,
        )
    else:
        raise InconsistentRecord(_record_id(raw), f"not a document: {type(raw).__name__}")

    if require_category and typed.is_expense and not typed.category:
        raise InconsistentRecord(typed.id, "Expense transactions require a category")
    return typed


def coerce_subscription(raw: Any) -> Subscription:
    """Typed Subscription from a Subscription or a store document."""
    if isinstance(raw, Subscription):
        return raw
    if not isinstance(raw, Mapping):
        raise InconsistentRecord(_record_id(raw), f"not a document: {type(raw).__name__}")
    return _validate(Subscription, raw, _rename(raw, _SUBSCRIPTION_KEYS))


def coerce_goal(raw: Any) -> SavingsGoal:
    """Typed SavingsGoal from a SavingsGoal or a store document."""
    if isinstance(raw, SavingsGoal):
        return raw
    if not isinstance(raw, Mapping):
        raise InconsistentRecord(_record_id(raw), f"not a document: {type(raw).__name__}")
    return _validate(SavingsGoal, raw, _rename(raw, _GOAL_KEYS))


def coerce_budget(raw: Any) -> Budget:
    """Typed Budget from a Budget or a store document."""
    if isinstance(raw, Budget):
        return raw
    if not isinstance(raw, Mapping):
        raise InconsistentRecord(_record_id(raw), f"not a document: {type(raw).__name__}")
    return _validate(Budget, raw, dict(raw))


def coerce_loan(raw: Any) -> Loan:
    """
    Typed DebtorLoan/CreditorLoan from a loan or a store document.

    Older documents carry the side in ``type`` and keep payments under
    ``paymentsMade`` (debtor) or ``paymentsReceived`` (creditor).
    """
    if isinstance(raw, (DebtorLoan, CreditorLoan)):
        return raw
    if not isinstance(raw, Mapping):
        raise InconsistentRecord(_record_id(raw), f"not a document: {type(raw).__name__}")

    doc = _rename(raw, _LOAN_KEYS)
    kind = doc.pop("type", None)
    doc.setdefault("kind", kind)
    if not isinstance(doc["kind"], str):
        raise InconsistentRecord(_record_id(raw), f"loan kind must be a string, got {doc['kind']!r}")

    if "payments" not in doc:
        legacy_key = _LEGACY_PAYMENT_KEYS.get(doc["kind"])
        doc["payments"] = raw.get(legacy_key) or []
    for legacy_key in _LEGACY_PAYMENT_KEYS.values():
        doc.pop(legacy_key, None)

    interest_type = doc.pop("interestType", None)
    legacy_interest = isinstance(interest_type, str) and interest_type
    if doc["kind"] == "creditor" and "interest_kind" not in doc and legacy_interest:
        doc["interest_kind"] = _LEGACY_INTEREST_KINDS.get(interest_type, interest_type)

    try:
        return LoanAdapter.validate_python(doc)
    except ValidationError as e:
        raise InconsistentRecord(_record_id(raw), _describe(e)) from e


def iter_valid(
    records: Iterable[Any],
    coerce: Callable[[Any], T],
    on_skip: Optional[Callable[[InconsistentRecord], None]] = None,
) -> Iterator[T]:
    """
    Yield coerced records, skipping malformed ones.

    Skipped records are logged; ``on_skip`` is told about each one.
    """
    for raw in records:
        try:
            yield coerce(raw)
        except InconsistentRecord as e:
            logger.warning(
                "record_skipped",
                coerce=coerce.__name__,
                record_id=e.record_id,
                reason=e.reason,
            )
            if on_skip is not None:
                on_skip(e)


def build_snapshot(
    transactions: Iterable[Any] = (),
    subscriptions: Iterable[Any] = (),
    loans: Iterable[Any] = (),
    goals: Iterable[Any] = (),
    budgets: Iterable[Any] = (),
    on_skip: Optional[Callable[[Collection, InconsistentRecord], None]] = None,
) -> FinanceSnapshot:
    """
    Build a typed snapshot from five raw collections.

    Args:
        on_skip: called with (collection, error) for each malformed record
    """
    skipped = 0

    def _skip_handler(collection: Collection) -> Callable[[InconsistentRecord], None]:
        def _handle(error: InconsistentRecord) -> None:
            nonlocal skipped
            skipped += 1
            if on_skip is not None:
                on_skip(collection, error)
        return _handle

    return FinanceSnapshot(
        transactions=tuple(iter_valid(
            transactions, coerce_transaction, _skip_handler(Collection.TRANSACTIONS)
        )),
        subscriptions=tuple(iter_valid(
            subscriptions, coerce_subscription, _skip_handler(Collection.SUBSCRIPTIONS)
        )),
        loans=tuple(iter_valid(
            loans, coerce_loan, _skip_handler(Collection.LOANS)
        )),
        goals=tuple(iter_valid(
            goals, coerce_goal, _skip_handler(Collection.GOALS)
        )),
        budgets=tuple(iter_valid(
            budgets, coerce_budget, _skip_handler(Collection.BUDGETS)
        )),
        skipped=skipped,
    )
