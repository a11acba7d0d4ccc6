"""Tests for date and amount normalization."""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from finpro.engine import (
    FinanceEngineError,
    InvalidAmount,
    InvalidDate,
    normalize_amount,
    normalize_date,
    resolve_as_of,
)


class FakeTimestamp:
    """Mimics a store timestamp object."""

    def __init__(self, value: datetime):
        self._value = value

    def to_datetime(self) -> datetime:
        return self._value


class TestNormalizeDate:
    """Tests for normalize_date."""

    def test_date_passes_through(self):
        assert normalize_date(date(2024, 3, 1)) == date(2024, 3, 1)

    def test_naive_datetime_keeps_calendar_day(self):
        assert normalize_date(datetime(2024, 3, 1, 23, 59)) == date(2024, 3, 1)

    def test_date_only_string_is_local_calendar_date(self):
        """Test that YYYY-MM-DD is never shifted through UTC."""
        assert normalize_date("2024-03-01") == date(2024, 3, 1)

    def test_string_whitespace_is_ignored(self):
        assert normalize_date("  2024-03-01 ") == date(2024, 3, 1)

    def test_iso_datetime_string(self):
        assert normalize_date("2024-03-01T10:30:00") == date(2024, 3, 1)

    @pytest.mark.parametrize("value", ["2024-03-01 10:00", "2024-03-01 10:30:00", "2024-03-01t10:30"])
    def test_datetime_string_with_other_separators(self, value):
        assert normalize_date(value) == date(2024, 3, 1)

    def test_space_separated_datetime_with_bad_time(self):
        with pytest.raises(InvalidDate):
            normalize_date("2024-03-01 25:00")

    def test_trailing_z_matches_explicit_utc_offset(self):
        assert normalize_date("2024-03-01T12:00:00Z") == normalize_date(
            "2024-03-01T12:00:00+00:00"
        )

    def test_aware_datetime_uses_local_time(self):
        value = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert normalize_date(value) == value.astimezone().date()

    def test_timestamp_object(self):
        stamp = FakeTimestamp(datetime(2024, 5, 17, 8, 0))
        assert normalize_date(stamp) == date(2024, 5, 17)

    def test_timestamp_object_returning_garbage(self):
        stamp = FakeTimestamp("not a datetime")
        with pytest.raises(InvalidDate):
            normalize_date(stamp)

    @pytest.mark.parametrize("value", [
        "2024-02-30",
        "2024-13-01",
        "01/03/2024",
        "",
        "yesterday",
        None,
        20240301,
    ])
    def test_invalid_inputs(self, value):
        with pytest.raises(InvalidDate):
            normalize_date(value)

    def test_invalid_date_is_a_value_error(self):
        """Test that callers catching ValueError also catch InvalidDate."""
        with pytest.raises(ValueError):
            normalize_date("nope")
        assert issubclass(InvalidDate, FinanceEngineError)


class TestNormalizeAmount:
    """Tests for normalize_amount."""

    def test_decimal_passes_through(self):
        assert normalize_amount(Decimal("10.50")) == Decimal("10.50")

    def test_int(self):
        assert normalize_amount(1000000) == Decimal("1000000")

    def test_float_goes_through_str(self):
        """Test that floats keep their printed value, not binary noise."""
        assert normalize_amount(0.1) == Decimal("0.1")

    def test_numeric_string(self):
        assert normalize_amount(" 250.75 ") == Decimal("250.75")

    def test_zero_rejected_by_default(self):
        with pytest.raises(InvalidAmount, match="greater than zero"):
            normalize_amount(0)

    def test_zero_allowed_when_asked(self):
        assert normalize_amount("0", allow_zero=True) == Decimal("0")

    def test_negative_rejected(self):
        with pytest.raises(InvalidAmount, match="negative"):
            normalize_amount(-5, allow_zero=True)

    @pytest.mark.parametrize("value", ["abc", "", None, [], True, False])
    def test_non_numeric_rejected(self, value):
        with pytest.raises(InvalidAmount):
            normalize_amount(value, allow_zero=True)

    @pytest.mark.parametrize("value", ["NaN", "Infinity", float("inf"), float("nan")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(InvalidAmount):
            normalize_amount(value)


class TestResolveAsOf:
    """Tests for resolve_as_of."""

    def test_defaults_to_today(self):
        before = date.today()
        resolved = resolve_as_of()
        assert before <= resolved <= before + timedelta(days=1)

    def test_normalizes_given_value(self):
        assert resolve_as_of("2024-06-05") == date(2024, 6, 5)
