"""
Test suite for the Money value type

Money is integer centavos only; rate multiplication rounds half-up.
"""

import pytest
from decimal import Decimal

from coop_lending.currency import Money, to_decimal, round_half_up, round_up


class TestMoneyConstruction:
    """Test Money creation rules"""

    def test_integer_amount(self):
        assert Money(150_000).amount == 150_000

    def test_integral_decimal_is_accepted(self):
        assert Money(Decimal("2500")).amount == 2500
        assert isinstance(Money(Decimal("2500")).amount, int)

    def test_fractional_decimal_rejected(self):
        with pytest.raises(ValueError, match="whole centavos"):
            Money(Decimal("10.5"))

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            Money(10.0)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            Money(True)

    def test_immutable(self):
        money = Money(100)
        with pytest.raises(Exception):
            money.amount = 200


class TestMoneyArithmetic:
    """Test Money arithmetic and comparisons"""

    def test_add_and_subtract(self):
        assert Money(700) + Money(300) == Money(1000)
        assert Money(700) - Money(1000) == Money(-300)

    def test_cannot_mix_with_int(self):
        with pytest.raises(TypeError):
            Money(100) + 5
        with pytest.raises(TypeError):
            Money(100) < 5

    def test_rate_multiplication_rounds_half_up(self):
        assert Money(507_513) * Decimal("0.02") == Money(10_150)  # 10150.26
        assert Money(25) * Decimal("0.5") == Money(13)            # 12.5
        assert Money(-25) * Decimal("0.5") == Money(-13)

    def test_string_rate_has_no_float_drift(self):
        assert Money(1_000_000) * "0.015" == Money(15_000)

    def test_total(self):
        assert Money.total([Money(1), Money(2), Money(3)]) == Money(6)
        assert Money.total([]) == Money.zero()

    def test_floor_zero(self):
        assert Money(-5).floor_zero() == Money(0)
        assert Money(5).floor_zero() == Money(5)

    def test_min_uses_ordering(self):
        assert min(Money(48_000), Money(60_000)) == Money(48_000)

    def test_predicates(self):
        assert Money(0).is_zero()
        assert Money(1).is_positive()
        assert Money(-1).is_negative()


class TestRounding:
    def test_round_half_up(self):
        assert round_half_up(Decimal("5024.87")) == 5025
        assert round_half_up(Decimal("676.5")) == 677
        assert round_half_up(Decimal("676.49")) == 676

    def test_round_up(self):
        assert round_up(Decimal("507512.01")) == 507513
        assert round_up(Decimal("507512")) == 507512

    def test_to_decimal(self):
        assert to_decimal("0.015") == Decimal("0.015")
        assert to_decimal(0.1) == Decimal("0.1")
        with pytest.raises(TypeError):
            to_decimal(True)
