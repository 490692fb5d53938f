"""
Unit tests for number parsing helpers.
"""

import pytest
from decimal import Decimal
from distribuidora.utils.numbers import parse_decimal, parse_positive, round_money, to_decimal, to_float


class TestParseDecimal:

    @pytest.mark.parametrize('raw, expected', [
        (5, Decimal('5')),
        (2.5, Decimal('2.5')),
        ('12.5', Decimal('12.5')),
        ('12,5', Decimal('12.5')),
        ('1.234,56', Decimal('1234.56')),
        (' 7 ', Decimal('7')),
        (Decimal('3.3'), Decimal('3.3')),
    ])
    def test_accepts_numbers_and_strings(self, raw, expected):
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize('raw', [None, '', 'abc', True, 'NaN', 'Infinity', '1,2,3'])
    def test_rejects_non_numeric(self, raw):
        with pytest.raises(ValueError):
            parse_decimal(raw)

    def test_float_input_has_no_binary_noise(self):
        assert parse_decimal(0.1) == Decimal('0.1')


class TestParsePositive:

    @pytest.mark.parametrize('raw', [0, '0', -1, '-2,5'])
    def test_rejects_zero_and_negative(self, raw):
        with pytest.raises(ValueError):
            parse_positive(raw)

    def test_accepts_fractional_quantity(self):
        assert parse_positive('0,5') == Decimal('0.5')


class TestRounding:

    def test_round_money_half_up(self):
        assert round_money(Decimal('2.005')) == Decimal('2.01')
        assert round_money(Decimal('2.004')) == Decimal('2.00')

    def test_round_money_none_is_zero(self):
        assert round_money(None) == Decimal('0.00')

    def test_to_decimal_from_aggregate_values(self):
        assert to_decimal(None) == Decimal('0')
        assert to_decimal(150.1) == Decimal('150.1')
        assert to_decimal(3) == Decimal('3')

    def test_to_float(self):
        assert to_float(Decimal('4.000')) == 4.0
        assert to_float(None) is None
