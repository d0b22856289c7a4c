"""Tests for fixed-point integer arithmetic."""

import pytest

from vantis_risk.protocol.errors import ArithmeticOverflow, InvalidInput
from vantis_risk.protocol.fixed_point import (
    I128_MAX,
    I128_MIN,
    check_i128,
    integer_sqrt,
    mul,
    mul_div,
    saturating_sub,
    tdiv,
)


class TestTruncatingDivision:
    def test_positive(self) -> None:
        assert tdiv(7, 2) == 3

    def test_negative_numerator_truncates_toward_zero(self) -> None:
        # floor division would give -4
        assert tdiv(-7, 2) == -3

    def test_negative_denominator(self) -> None:
        assert tdiv(7, -2) == -3

    def test_both_negative(self) -> None:
        assert tdiv(-7, -2) == 3

    def test_division_by_zero(self) -> None:
        with pytest.raises(InvalidInput):
            tdiv(1, 0)


class TestCheckedMultiplication:
    def test_product(self) -> None:
        assert mul(3, 4, 5) == 60

    def test_empty_product(self) -> None:
        assert mul() == 1

    def test_overflow_detected(self) -> None:
        with pytest.raises(ArithmeticOverflow):
            mul(I128_MAX, 2)

    def test_overflow_is_an_overflow_error(self) -> None:
        with pytest.raises(OverflowError):
            mul(I128_MIN, 2)

    def test_mul_div_forms_product_first(self) -> None:
        # 7 * 3 / 2 = 10, while 7 / 2 * 3 would be 9
        assert mul_div(7, 3, 2) == 10

    def test_check_i128_bounds(self) -> None:
        assert check_i128(I128_MAX) == I128_MAX
        assert check_i128(I128_MIN) == I128_MIN
        with pytest.raises(ArithmeticOverflow):
            check_i128(I128_MAX + 1)


class TestSaturatingSub:
    def test_normal(self) -> None:
        assert saturating_sub(10, 4) == 6

    def test_clamps_at_zero(self) -> None:
        assert saturating_sub(4, 10) == 0

    def test_custom_floor(self) -> None:
        assert saturating_sub(4, 10, floor=-3) == -3


class TestIntegerSqrt:
    def test_zero(self) -> None:
        assert integer_sqrt(0) == 0

    def test_negative_is_zero(self) -> None:
        assert integer_sqrt(-5) == 0

    def test_one(self) -> None:
        assert integer_sqrt(1) == 1

    def test_days_per_year(self) -> None:
        assert integer_sqrt(365) == 19

    def test_perfect_square(self) -> None:
        assert integer_sqrt(10**30) == 10**15

    @pytest.mark.parametrize(
        "n", [2, 3, 4, 15, 16, 17, 99, 100, 101, 12345, 2**64 + 1, 10**37, I128_MAX]
    )
    def test_floor_bounds(self, n: int) -> None:
        r = integer_sqrt(n)
        assert r * r <= n < (r + 1) * (r + 1)
