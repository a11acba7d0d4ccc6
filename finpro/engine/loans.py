"""
Loan Ledger

A loan's settled amount is always the sum of its append-only payment
log. Nothing derived (balance, progress, completion) is stored, so it
cannot drift from the log.

Over-payment is representable: the final payment may push the settled
total past the principal. It is flagged (is_overpaid / overpayment),
never rejected. Payments against a loan that is ALREADY settled are
rejected with AlreadyComplete unless the caller explicitly allows them.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Optional

import structlog

from finpro.engine.errors import AlreadyComplete, InvalidAmount
from finpro.engine.normalize import normalize_amount, resolve_as_of
from finpro.engine.snapshot import coerce_loan
from finpro.models.records import (
    LOAN_COLLECTION_CATEGORY,
    LOAN_PAYMENT_CATEGORY,
    Loan,
    LoanKind,
    LoanPayment,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


def total_settled(loan: Loan) -> Decimal:
    """Sum of every payment in the log."""
    return sum((payment.amount for payment in loan.payments), ZERO)


def remaining_balance(loan: Loan) -> Decimal:
    return max(ZERO, loan.principal - total_settled(loan))


def progress_ratio(loan: Loan) -> Decimal:
    """Settled fraction of the principal, clamped to [0, 1]."""
    if loan.principal <= 0:
        return ONE
    return min(ONE, total_settled(loan) / loan.principal)


def is_complete(loan: Loan) -> bool:
    return total_settled(loan) >= loan.principal


def overpayment(loan: Loan) -> Decimal:
    """Amount settled beyond the principal."""
    return max(ZERO, total_settled(loan) - loan.principal)


def is_overpaid(loan: Loan) -> bool:
    return total_settled(loan) > loan.principal


def _payment_transaction(loan: Loan, amount: Decimal, paid_on: date) -> Transaction:
    if loan.kind == LoanKind.DEBTOR:
        return Transaction(
            type=TransactionType.EXPENSE,
            name=f"Abono a préstamo: {loan.counterparty_name}",
            amount=amount,
            date=paid_on,
            category=LOAN_PAYMENT_CATEGORY,
            loan_id=loan.id,
        )
    return Transaction(
        type=TransactionType.INCOME,
        name=f"Abono recibido de: {loan.counterparty_name}",
        amount=amount,
        date=paid_on,
        category=LOAN_COLLECTION_CATEGORY,
        loan_id=loan.id,
    )


def record_payment(
    loan: Any,
    amount: Any,
    payment_date: Optional[Any] = None,
    allow_settled: bool = False,
) -> tuple[Loan, Transaction]:
    """
    Append a payment to a loan.

    Debtor loans produce an expense transaction ("Pago Préstamo"),
    creditor loans an income transaction ("Cobro Préstamo"). The input
    loan is never modified; persisting both results is the caller's job.

    Args:
        loan: the loan (typed or a store document)
        amount: payment amount, must be > 0
        payment_date: defaults to today
        allow_settled: accept payments on an already settled loan

    Returns:
        (updated_loan, synthetic_transaction)

    Raises:
        InvalidAmount: amount is not a positive number
        AlreadyComplete: the loan is settled and allow_settled is False
        InvalidDate: payment_date cannot be parsed
    """
    loan = coerce_loan(loan)

    try:
        paid = normalize_amount(amount)
    except InvalidAmount as e:
        raise InvalidAmount(amount, "Payment amount must be greater than zero") from e

    if is_complete(loan) and not allow_settled:
        raise AlreadyComplete(loan.id, f"Loan {loan.id} is already fully settled")

    paid_on = resolve_as_of(payment_date)

    updated = loan.model_copy(update={
        "payments": loan.payments + (LoanPayment(amount=paid, date=paid_on),),
    })
    transaction = _payment_transaction(loan, paid, paid_on)

    if is_overpaid(updated):
        logger.warning(
            "loan_overpaid",
            loan_id=loan.id,
            overpayment=str(overpayment(updated)),
        )

    return updated, transaction
