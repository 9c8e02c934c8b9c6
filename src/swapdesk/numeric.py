"""Decimal helpers shared by the parser, the liquidity math and the ticket."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext
from typing import Any

PRECISION = 50
SCALE = 18

NAN = Decimal("NaN")
ZERO = Decimal("0")
ONE = Decimal("1")
QUANTUM = ONE.scaleb(-SCALE)

_CONTEXT = Context(prec=PRECISION, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Convert loose input to Decimal; anything unparseable becomes NaN."""
    if value is None or isinstance(value, bool):
        return NAN
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    text = str(value).strip()
    if not text:
        return NAN
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return NAN
    if parsed.is_infinite():
        return NAN
    return parsed


def is_nan(value: Decimal | None) -> bool:
    return value is None or value.is_nan()


def gt(value: Decimal | None, other: Decimal | int = 0) -> bool:
    if is_nan(value):
        return False
    return value > other


def gte(value: Decimal | None, other: Decimal | int = 0) -> bool:
    if is_nan(value):
        return False
    return value >= other


def lt(value: Decimal | None, other: Decimal | int = 0) -> bool:
    if is_nan(value):
        return False
    return value < other


def lte(value: Decimal | None, other: Decimal | int = 0) -> bool:
    if is_nan(value):
        return False
    return value <= other


def round18(value: Decimal) -> Decimal:
    """Quantize to 18 decimal places, half-up."""
    if value.is_nan():
        return value
    with localcontext(_CONTEXT):
        rounded = value.quantize(QUANTUM, rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        return ZERO.quantize(QUANTUM)
    return rounded


def safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    """Divide, returning NaN instead of raising on a zero or NaN divisor."""
    if is_nan(numerator) or is_nan(denominator) or denominator.is_zero():
        return NAN
    with localcontext(_CONTEXT):
        return numerator / denominator


def mul(*values: Decimal) -> Decimal:
    result = ONE
    with localcontext(_CONTEXT):
        for value in values:
            result = result * value
    return result


def dsqrt(value: Decimal) -> Decimal:
    """Square root at 50 significant digits; negatives and NaN give NaN."""
    if is_nan(value) or value < 0:
        return NAN
    with localcontext(_CONTEXT):
        return value.sqrt()


def clamp_zero(value: Decimal) -> Decimal:
    """max(0, value) with NaN treated as zero."""
    if is_nan(value) or value < 0:
        return ZERO
    return value


def fmt(value: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros."""
    if value.is_nan():
        return "NaN"
    if value.is_zero():
        return "0"
    text = format(value.normalize(_CONTEXT), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
