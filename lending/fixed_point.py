"""
fixed_point.py - Checked 18-decimal fixed-point arithmetic

Every monetary quantity inside a lending pool is a Python int counting base
units, where one whole token (or one whole unit of price) equals SCALE base
units. Python ints never wrap, so the checked helpers enforce the unsigned
256-bit range explicitly: any result that is negative or larger than
MAX_UINT256 raises ArithmeticOverflow instead of being silently accepted.

Division truncates toward zero. Callers multiply before dividing, in the
same order as the pool formulas, so precision loss only happens at the last
step.

Example:
    collateral = to_fixed("1")           # 10**18
    price = to_fixed(2000)
    value = mul_div(collateral, price, SCALE)
    from_fixed(value)                    # Decimal("2000")
"""

from __future__ import annotations
from decimal import Decimal, ROUND_DOWN, InvalidOperation
from typing import Union

from .core import ArithmeticOverflow, InvalidInput


SCALE = 10 ** 18

MAX_UINT256 = 2 ** 256 - 1

Numeric = Union[int, str, Decimal]


def _check(value: int) -> int:
    if value < 0:
        raise ArithmeticOverflow(f"Arithmetic underflow: {value} < 0")
    if value > MAX_UINT256:
        raise ArithmeticOverflow(f"Arithmetic overflow: {value} exceeds uint256")
    return value


def checked_add(a: int, b: int) -> int:
    return _check(a + b)


def checked_sub(a: int, b: int) -> int:
    return _check(a - b)


def checked_mul(a: int, b: int) -> int:
    return _check(a * b)


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute a * b // denominator, checking the intermediate product.

    The product is bounded like a real 256-bit multiply would be, so a
    result that only fits after division is still rejected.

    Raises:
        ArithmeticOverflow: If the product or the result leaves the uint256 range.
        ZeroDivisionError: If denominator is zero.
    """
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")
    product = checked_mul(a, b)
    return _check(product // denominator)


def to_fixed(value: Numeric, decimals: int = 18) -> int:
    """
    Convert a human token amount to base units, rounding down.

    Args:
        value: Amount as int, str or Decimal (floats are rejected, they
            cannot represent most decimal amounts exactly)
        decimals: Number of decimals of the target representation

    Returns:
        Non-negative integer number of base units

    Raises:
        InvalidInput: If value is not a finite, non-negative number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidInput(f"Amount must be int, str or Decimal, got {type(value).__name__}")
    try:
        amount = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput(f"Cannot parse amount {value!r}") from exc
    if not amount.is_finite():
        raise InvalidInput(f"Amount must be finite, got {value!r}")
    if amount < 0:
        raise InvalidInput(f"Amount cannot be negative, got {value!r}")
    scaled = (amount * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    return _check(int(scaled))


def from_fixed(amount: int, decimals: int = 18) -> Decimal:
    """Convert base units back to an exact Decimal token amount."""
    return Decimal(amount).scaleb(-decimals)
