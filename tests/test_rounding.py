"""Tests for money rounding and formatting."""

from decimal import Decimal

import pytest

from gigledger_tax.exceptions import ExportContractError
from gigledger_tax.rounding import (
    format_cents,
    format_currency,
    is_rounded,
    round_cents,
    to_decimal,
)


class TestRoundCents:
    """Test suite for round_cents()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1.005", "1.01"),
            ("1.004", "1.00"),
            ("-1.005", "-1.01"),
            ("0.125", "0.13"),
            ("2.675", "2.68"),
            ("10", "10.00"),
        ],
    )
    def test_half_away_from_zero(self, value: str, expected: str):
        assert round_cents(Decimal(value)) == Decimal(expected)

    def test_result_is_rounded(self):
        assert is_rounded(round_cents(Decimal("3.14159")))
        assert not is_rounded(Decimal("3.14159"))


class TestFormatCents:
    """Test suite for format_cents()."""

    def test_two_decimals_no_separators(self):
        assert format_cents(Decimal("1050")) == "1050.00"
        assert format_cents(Decimal("1234567.5")) == "1234567.50"
        assert format_cents(Decimal("-40.00")) == "-40.00"

    def test_negative_zero_prints_as_zero(self):
        assert format_cents(Decimal("-0.00")) == "0.00"

    def test_rejects_unrounded_amount(self):
        """Formatters never round; unrounded input is a contract error."""
        with pytest.raises(ExportContractError) as exc_info:
            format_cents(Decimal("1.005"))

        assert exc_info.value.details["component"] == "rounding"
        assert exc_info.value.recoverable is False


class TestFormatCurrency:
    """Test suite for format_currency()."""

    def test_positive(self):
        assert format_currency(Decimal("1050.00")) == "$1,050.00"

    def test_negative(self):
        assert format_currency(Decimal("-40.00")) == "-$40.00"


class TestToDecimal:
    """Test suite for to_decimal()."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (10, Decimal("10")),
            (0.1, Decimal("0.1")),
            ("1,050.25", Decimal("1050.25")),
            ("$80", Decimal("80")),
            (Decimal("2.5"), Decimal("2.5")),
            ("-10", Decimal("-10")),
        ],
    )
    def test_parses(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "Infinity", True, [1]])
    def test_unparseable_is_none(self, value):
        assert to_decimal(value) is None
