"""
test_safe_math.py - Unit tests for checked uint256 arithmetic
"""

import pytest
from hypothesis import given, strategies as st

from tokensale import (
    require_uint, checked_add, checked_sub, checked_mul, checked_div, mul_div,
    ArithmeticViolation, UINT256_MAX,
)


uint256 = st.integers(min_value=0, max_value=UINT256_MAX)


class TestCheckedOperations:
    """Overflow and underflow raise instead of wrapping."""

    def test_add_overflow(self):
        with pytest.raises(ArithmeticViolation, match="overflow"):
            checked_add(UINT256_MAX, 1)

    def test_sub_underflow(self):
        with pytest.raises(ArithmeticViolation, match="underflow"):
            checked_sub(0, 1)

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticViolation, match="overflow"):
            checked_mul(2 ** 128, 2 ** 128)

    def test_div_by_zero(self):
        with pytest.raises(ArithmeticViolation, match="zero"):
            checked_div(1, 0)

    def test_div_floors(self):
        assert checked_div(7, 2) == 3

    def test_mul_div_multiplies_first(self):
        assert mul_div(7, 30, 100) == 2
        assert mul_div(10 ** 18, 15, 100) == 15 * 10 ** 16

    def test_mul_div_intermediate_overflow(self):
        """The intermediate product must fit, as on-chain."""
        with pytest.raises(ArithmeticViolation):
            mul_div(UINT256_MAX, 2, 4)


class TestRequireUint:
    """Inputs must be ints within uint256 bounds."""

    @pytest.mark.parametrize("value", [-1, UINT256_MAX + 1])
    def test_out_of_range(self, value):
        with pytest.raises(ArithmeticViolation):
            require_uint(value)

    @pytest.mark.parametrize("value", [1.0, "1", None, True])
    def test_wrong_type(self, value):
        with pytest.raises(ArithmeticViolation, match="integer"):
            require_uint(value, "amount")

    def test_returns_value(self):
        assert require_uint(UINT256_MAX) == UINT256_MAX


class TestCheckedProperties:
    """Checked operations agree with Python ints whenever the result fits."""

    @given(uint256, uint256)
    def test_add_matches_or_raises(self, a, b):
        if a + b <= UINT256_MAX:
            assert checked_add(a, b) == a + b
        else:
            with pytest.raises(ArithmeticViolation):
                checked_add(a, b)

    @given(uint256, uint256)
    def test_sub_matches_or_raises(self, a, b):
        if a >= b:
            assert checked_sub(a, b) == a - b
        else:
            with pytest.raises(ArithmeticViolation):
                checked_sub(a, b)
