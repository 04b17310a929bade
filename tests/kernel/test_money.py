"""
Unit tests for money coercion and rounding.

Verifies:
- Half-up rounding to cents (not banker's rounding)
- Loose input coercion never raises
- Unparseable input is logged
"""

from decimal import Decimal

import pytest

from paytime_kernel.domain.money import round_money, to_decimal


class TestRoundMoney:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("0.005", "0.01"),
            ("0.015", "0.02"),
            ("2.675", "2.68"),
            ("-0.005", "-0.01"),
            ("1341.4200", "1341.42"),
        ],
    )
    def test_half_up(self, value, expected):
        assert round_money(Decimal(value)) == Decimal(expected)


class TestToDecimal:

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "0"),
            ("", "0"),
            ("   ", "0"),
            (40, "40"),
            (33.96, "33.96"),
            ("1,250.50", "1250.50"),
            ("R150", "150"),
            ("r 75.25", "75.25"),
            (" -12.5 ", "-12.5"),
            (True, "1"),
            (Decimal("NaN"), "0"),
            ("Infinity", "0"),
        ],
    )
    def test_coercion(self, value, expected):
        assert to_decimal(value) == Decimal(expected)

    def test_float_keeps_literal_digits(self):
        assert str(to_decimal(0.1)) == "0.1"

    def test_unparseable_logged_and_zero(self, captured_logs):
        assert to_decimal("lots", "hours") == Decimal("0")

        record = next(r for r in captured_logs() if r["message"] == "unparseable_numeric_input")
        assert record["field"] == "hours"
        assert record["value"] == "lots"
        assert record["level"] == "WARNING"



class TestThousandsSeparator:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1,250.50", "1250.50"),
            ("-12,345,678", "-12345678"),
            ("R 2,000", "2000"),
        ],
    )
    def test_grouped_commas_accepted(self, value, expected):
        assert to_decimal(value) == Decimal(expected)

    @pytest.mark.parametrize("value", ["33,96", "1,25.00", "12,3456", ",500"])
    def test_decimal_comma_rejected_and_logged(self, value, captured_logs):
        assert to_decimal(value, "hourly_rate") == Decimal("0")

        record = next(r for r in captured_logs() if r["message"] == "ambiguous_decimal_separator")
        assert record["field"] == "hourly_rate"
        assert record["value"] == value
