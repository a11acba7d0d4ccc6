"""
Recurrence Projection

Projects the next payment date of subscriptions and debtor loans.
Nothing here is stored; projections are recomputed on every read.

ROLLOVER RULE: month and year steps use dateutil's relativedelta and are
always taken from the ORIGINAL start date (start + k steps), never from
the previous projection. When the start day does not exist in the target
month the date clamps to that month's last day:

    2024-01-31 monthly -> 2024-02-29 -> 2024-03-31 -> 2024-04-30

so a short month never drags later occurrences backwards.
"""

from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from finpro.engine.loans import is_complete
from finpro.engine.normalize import normalize_date, resolve_as_of
from finpro.engine.snapshot import coerce_loan, coerce_subscription, iter_valid
from finpro.models.records import BillingCycle, Loan, LoanKind
from finpro.models.results import PaymentSource, UpcomingPayment


UPCOMING_WINDOW_DAYS = 7
UPCOMING_LIMIT = 5

_CYCLE_MONTHS = {
    BillingCycle.MONTHLY: 1,
    BillingCycle.ANNUAL: 12,
}


def _advance(start: date, months: int) -> date:
    return start + relativedelta(months=months)


def next_occurrence(
    start_date: Any,
    cycle: BillingCycle,
    as_of: Optional[Any] = None,
) -> date:
    """
    Next occurrence of a recurring charge on or after ``as_of``.

    A start date on or after ``as_of`` is returned unchanged (nothing has
    recurred yet). Otherwise the result is the smallest start + k cycles
    that is >= as_of.
    """
    start = normalize_date(start_date)
    reference = resolve_as_of(as_of)
    step = _CYCLE_MONTHS[BillingCycle(cycle)]

    if start >= reference:
        return start

    # Every k below this lands in an earlier calendar month than reference
    months_between = (reference.year - start.year) * 12 + (reference.month - start.month)
    k = months_between // step
    candidate = _advance(start, k * step)
    while candidate < reference:
        k += 1
        candidate = _advance(start, k * step)
    return candidate


def is_due_within(due: Any, window_start: Any, window_end: Any) -> bool:
    """Inclusive membership of ``due`` in [window_start, window_end]."""
    return normalize_date(window_start) <= normalize_date(due) <= normalize_date(window_end)


def loan_term_months(loan: Loan) -> int:
    return loan.term_months


def loan_end_date(loan: Loan) -> date:
    """Date the loan's term runs out: start date plus the term in months."""
    return _advance(loan.start_date, loan.term_months)


def next_loan_installment(loan: Loan, as_of: Optional[Any] = None) -> Optional[date]:
    """
    Approximate next installment date of a loan.

    Loans store no due day beyond their start date, so the installment
    falls on the start date's day of month, advanced to the first such
    date on or after ``as_of``.

    Returns None when the loan is settled or the candidate falls after
    the loan's end date (horizon exhausted).
    """
    if is_complete(loan):
        return None

    candidate = next_occurrence(loan.start_date, BillingCycle.MONTHLY, as_of)
    if candidate > loan_end_date(loan):
        return None
    return candidate


def approximate_next_installment(loan: Loan) -> Optional[date]:
    """
    Installment date implied by the number of payments made so far.

    Assumes one payment per month starting a month after the start date,
    so the next one is start + (payments + 1) months. None once settled.
    """
    if is_complete(loan):
        return None
    return _advance(loan.start_date, len(loan.payments) + 1)


def upcoming_payments(
    subscriptions: Iterable[Any],
    loans: Iterable[Any],
    as_of: Optional[Any] = None,
    window_days: int = UPCOMING_WINDOW_DAYS,
    limit: int = UPCOMING_LIMIT,
) -> list[UpcomingPayment]:
    """
    Subscriptions and debtor loans due within the look-ahead window.

    One list, sorted by due date (subscriptions first on ties), capped
    at ``limit`` entries. Malformed records are skipped.
    """
    reference = resolve_as_of(as_of)
    window_end = reference + timedelta(days=window_days)
    upcoming: list[UpcomingPayment] = []

    for subscription in iter_valid(subscriptions, coerce_subscription):
        due = next_occurrence(subscription.start_date, subscription.billing_cycle, reference)
        if is_due_within(due, reference, window_end):
            upcoming.append(UpcomingPayment(
                source=PaymentSource.SUBSCRIPTION,
                record_id=subscription.id,
                name=subscription.service_name,
                amount=subscription.price,
                due_date=due,
                category=subscription.category,
            ))

    for loan in iter_valid(loans, coerce_loan):
        if loan.kind != LoanKind.DEBTOR:
            continue
        due = next_loan_installment(loan, reference)
        if due is not None and is_due_within(due, reference, window_end):
            upcoming.append(UpcomingPayment(
                source=PaymentSource.LOAN,
                record_id=loan.id,
                name=loan.counterparty_name,
                amount=loan.suggested_monthly_payment,
                due_date=due,
            ))

    # sort is stable, subscriptions keep their place ahead of loans on ties
    upcoming.sort(key=lambda payment: payment.due_date)
    return upcoming[:limit]
