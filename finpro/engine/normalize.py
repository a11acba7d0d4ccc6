"""
Date and Amount Normalization

Stored records arrive with dates in several shapes (date objects,
timestamps from the store, ISO strings written by different clients)
and amounts as ints, floats or strings. Everything downstream works on
exactly two canonical types:

- dates:   datetime.date (no time of day, no timezone)
- amounts: decimal.Decimal (never float, so long sums do not drift)

POLICY: a date-only string "YYYY-MM-DD" is a LOCAL calendar date.
It is never routed through UTC, so "2024-03-01" is March 1st in every
timezone. Timezone-aware datetimes are converted to local time before
the date is taken.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from finpro.engine.errors import InvalidAmount, InvalidDate


_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_date(value: Any) -> date:
    """
    Convert a date-like input to a canonical date.

    Accepts date, datetime, objects exposing ``to_datetime()`` (store
    timestamps), ISO date-time strings and ISO date-only strings.

    Raises:
        InvalidDate: for anything else, or impossible dates like 2024-02-30
    """
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()

    if isinstance(value, date):
        return value

    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        converted = to_datetime()
        if isinstance(converted, datetime):
            return normalize_date(converted)
        raise InvalidDate(value)

    if isinstance(value, str):
        text = value.strip()

        if _DATE_ONLY.match(text):
            try:
                return date.fromisoformat(text)
            except ValueError:
                raise InvalidDate(value) from None

        # Date-time: "T" or a single space between date and time
        if len(text) > 10 and text[10] in ("T", "t", " "):
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                raise InvalidDate(value) from None
            return normalize_date(parsed)

    raise InvalidDate(value)


def normalize_amount(value: Any, allow_zero: bool = False) -> Decimal:
    """
    Convert a numeric input to a non-negative Decimal.

    Creation sites require a strictly positive amount (the default).
    Display sites pass ``allow_zero=True``.

    Raises:
        InvalidAmount: non-numeric, NaN/infinite, negative, or zero
            when ``allow_zero`` is False
    """
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool):
        raise InvalidAmount(value)

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidAmount(value) from None
    else:
        raise InvalidAmount(value)

    if not amount.is_finite():
        raise InvalidAmount(value, f"Amount must be a finite number: {value!r}")
    if amount < 0:
        raise InvalidAmount(value, f"Amount cannot be negative: {value!r}")
    if amount == 0 and not allow_zero:
        raise InvalidAmount(value, "Amount must be greater than zero")

    return amount


def resolve_as_of(as_of: Optional[Any] = None) -> date:
    """Reference date for projections: today unless given."""
    if as_of is None:
        return date.today()
    return normalize_date(as_of)
