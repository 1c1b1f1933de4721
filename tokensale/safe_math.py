"""
safe_math.py - Checked uint256 Arithmetic

Every amount in the system is a non-negative integer that must fit an
unsigned 256-bit word. These helpers raise ArithmeticViolation instead of
wrapping, so an overflowing purchase fails before any state is touched.
"""

from __future__ import annotations

from .core import ArithmeticViolation, UINT256_MAX


def _check(value: int, op: str) -> int:
    if value < 0:
        raise ArithmeticViolation(f"uint256 underflow in {op}")
    if value > UINT256_MAX:
        raise ArithmeticViolation(f"uint256 overflow in {op}")
    return value


def require_uint(value: int, what: str = "value") -> int:
    """Return value if it is an int within [0, UINT256_MAX]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticViolation(f"{what} must be an integer, got {type(value).__name__}")
    return _check(value, what)


def checked_add(a: int, b: int) -> int:
    return _check(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _check(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _check(a * b, "mul")


def checked_div(a: int, b: int) -> int:
    """Floor division; division by zero is an arithmetic violation."""
    if b == 0:
        raise ArithmeticViolation("division by zero")
    return _check(a // b, "div")


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute a * b // denominator with the intermediate product checked.

    Matches the multiply-then-divide order of on-chain percentage math, so
    the product must itself fit in uint256.
    """
    return checked_div(checked_mul(a, b), denominator)
