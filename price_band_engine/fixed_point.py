"""
Price Band Engine - Fixed-Point Arithmetic.

============================================================
PURPOSE
============================================================
Integer-scaled decimal arithmetic at 18 decimals.

Reserve ratios are recomputed every pass, so they must not
drift through binary floating point. Every operation here
works on Python ints scaled by 10**decimals and truncates
toward zero exactly like the on-chain fixed32x18 type.

============================================================
"""

from decimal import Decimal, DecimalException, InvalidOperation, ROUND_DOWN, localcontext
from typing import Union


# ============================================================
# CONSTANTS
# ============================================================

DEFAULT_DECIMALS = 18
"""Decimals of the managed and reference tokens."""

ONE = 10 ** DEFAULT_DECIMALS
"""1.0 in fixed point."""

BPS_SCALE = 10_000
"""Basis points in 1.0."""


Numeric = Union[int, str, Decimal]


# ============================================================
# CONVERSION
# ============================================================

def scale(decimals: int = DEFAULT_DECIMALS) -> int:
    """Return 10**decimals."""
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return 10 ** decimals


def to_fixed(value: Numeric, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Convert a human-readable amount to fixed point.

    Digits beyond the representable precision are truncated.
    Floats are rejected, pass a string instead.

    Args:
        value: Amount as int, str or Decimal
        decimals: Target precision

    Returns:
        Integer scaled by 10**decimals
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(
            f"to_fixed() does not accept {type(value).__name__}, use str or Decimal"
        )
    if isinstance(value, int):
        return value * scale(decimals)
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal number: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    with localcontext() as ctx:
        ctx.prec = 80
        try:
            scaled = amount * scale(decimals)
        except DecimalException as e:
            raise ValueError(f"Out of range: {value!r}") from e
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_fixed(value: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert fixed point back to an exact Decimal."""
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(value) / Decimal(scale(decimals))


def format_fixed(value: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render fixed point without exponent or trailing zeros."""
    text = format(from_fixed(value, decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


# ============================================================
# ARITHMETIC
# ============================================================

def _div_toward_zero(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def fixed_div(a: int, b: int, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Divide two fixed-point values.

    Raises:
        ZeroDivisionError: If b is zero
    """
    if b == 0:
        raise ZeroDivisionError("fixed-point division by zero")
    return _div_toward_zero(a * scale(decimals), b)


def fixed_mul(a: int, b: int, decimals: int = DEFAULT_DECIMALS) -> int:
    """Multiply two fixed-point values."""
    return _div_toward_zero(a * b, scale(decimals))


def apply_bps(value: int, bps: int) -> int:
    """Scale a fixed-point value by a basis-point multiplier."""
    return _div_toward_zero(value * bps, BPS_SCALE)

