"""Tests for numeric parsing."""

from fractions import Fraction

import pytest

from connector.errors import DecodeFailedError
from connector.numeric import (
    iso_to_unix, lovelace_of, parse_fraction, parse_int, parse_pair, parse_quantity, parse_ratio,
)


class TestParseFraction:
    @pytest.mark.parametrize("value, expected", [
        ("3/10", Fraction(3, 10)),
        ("0.3", Fraction(3, 10)),
        ("577/10000", Fraction(577, 10000)),
        (5, Fraction(5)),
        (0.05, Fraction(1, 20)),
        ({"numerator": 1, "denominator": 20}, Fraction(1, 20)),
        (None, Fraction(0)),
        ("", Fraction(0)),
    ])
    def test_encodings(self, value, expected):
        assert parse_fraction(value) == expected

    def test_exact_beyond_float(self):
        value = parse_fraction("1/3")
        assert value * 3 == 1

    @pytest.mark.parametrize("value", ["1/0", "/5", "5/", "abc", "1/2/3", "\u00b2/1", True, [1, 2]])
    def test_malformed(self, value):
        with pytest.raises(DecodeFailedError):
            parse_fraction(value, "field")

    def test_ratio_is_float(self):
        assert parse_ratio("1/4") == 0.25


class TestParsePair:
    def test_missing_pair_is_zero(self):
        assert parse_pair(None, None) == 0

    def test_missing_denominator(self):
        assert parse_pair(7, None) == 7

    def test_zero_denominator(self):
        with pytest.raises(DecodeFailedError):
            parse_pair(1, 0)


class TestParseInt:
    def test_large_string(self):
        assert parse_int("45000000000000000") == 45_000_000_000_000_000

    def test_integral_float(self):
        assert parse_int(3.0) == 3

    def test_default(self):
        assert parse_int(None, default=7) == 7

    @pytest.mark.parametrize("value", ["1.5", "x", 2.5, False, "\u00b2", "--5", "-"])
    def test_malformed(self, value):
        with pytest.raises(DecodeFailedError):
            parse_int(value)

    def test_quantity_rejects_negative_and_missing(self):
        with pytest.raises(DecodeFailedError):
            parse_quantity(-1)
        with pytest.raises(DecodeFailedError):
            parse_quantity(None)
        assert parse_quantity("12") == 12


def test_lovelace_of():
    assert lovelace_of({"ada": {"lovelace": 155381}}) == 155381
    assert lovelace_of(44) == 44


def test_iso_to_unix():
    assert iso_to_unix("2022-06-01T00:00:00Z") == 1654041600
    with pytest.raises(DecodeFailedError):
        iso_to_unix("yesterday")
