# test_amount.py
from fractions import Fraction

import pytest
from stellar_sdk import Price

from stellarcli.amount import (
    MAX_AMOUNT,
    float_string,
    format_amount,
    format_amount_pretty,
    parse_amount,
    parse_price,
    price_to_fraction,
)
from stellarcli.exceptions import InvalidAmount


class TestParseAmount:
    def test_units_are_stroops(self):
        assert parse_amount("12.5") == 125_000_000
        assert parse_amount("+1") == 10_000_000
        assert parse_amount(".5") == 5_000_000
        assert parse_amount("1.") == 10_000_000
        assert parse_amount("0.0000001") == 1

    def test_result_is_exact(self):
        assert isinstance(parse_amount("0.3"), Fraction)

    @pytest.mark.parametrize("text", ["", ".", "abc", "-1", "1.2.3", "1,5", "1e5", "0.12345678"])
    def test_invalid(self, text):
        with pytest.raises(InvalidAmount):
            parse_amount(text)

    def test_maximum(self):
        assert parse_amount("922337203685.4775807") == MAX_AMOUNT
        with pytest.raises(InvalidAmount):
            parse_amount("922337203685.4775808")


class TestFormatAmount:
    def test_fixed_digits(self):
        assert format_amount(Fraction(125_000_000)) == "12.5000000"
        assert format_amount(Fraction(1)) == "0.0000001"
        assert format_amount(Fraction(0)) == "0.0000000"

    def test_pretty(self):
        assert format_amount_pretty(Fraction(125_000_000)) == "12.50"

    def test_half_up(self):
        # 0.005 units
        assert format_amount(Fraction(50_000), 2) == "0.01"
        assert format_amount(Fraction(49_999), 2) == "0.00"
        assert float_string(Fraction(-1, 8), 2) == "-0.13"

    @pytest.mark.parametrize("stroops", [0, 1, 9, 10_000_000, 123_456_789, MAX_AMOUNT])
    def test_parse_inverts_format(self, stroops):
        r = Fraction(stroops)
        assert parse_amount(format_amount(r, 7)) == r


class TestPrice:
    def test_parse(self):
        assert parse_price("2.5") == Fraction(5, 2)
        assert parse_price("0.0001") == Fraction(1, 10_000)

    @pytest.mark.parametrize("text", ["0", "0.0", "-1", "", "x"])
    def test_invalid(self, text):
        with pytest.raises(InvalidAmount):
            parse_price(text)

    def test_price_shapes(self):
        assert price_to_fraction({"n": 1, "d": 3}) == Fraction(1, 3)
        assert price_to_fraction((3, 4)) == Fraction(3, 4)
        assert price_to_fraction(Price(5, 2)) == Fraction(5, 2)

    def test_unsupported_price(self):
        with pytest.raises(InvalidAmount):
            price_to_fraction("1.5")
