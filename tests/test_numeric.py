from __future__ import annotations

from decimal import Decimal

from swapdesk.numeric import (
    NAN,
    clamp_zero,
    dsqrt,
    fmt,
    gt,
    gte,
    lt,
    round18,
    safe_div,
    to_decimal,
)


def test_to_decimal_turns_garbage_into_nan() -> None:
    assert to_decimal("abc").is_nan()
    assert to_decimal(None).is_nan()
    assert to_decimal("").is_nan()
    assert to_decimal(True).is_nan()
    assert to_decimal("Infinity").is_nan()


def test_to_decimal_keeps_float_text() -> None:
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(" 12.50 ") == Decimal("12.50")
    assert to_decimal(7) == Decimal(7)


def test_comparisons_are_false_for_nan() -> None:
    assert not gt(NAN)
    assert not gte(NAN)
    assert not lt(NAN, 1)
    assert not gt(None)
    assert gt(Decimal("0.1"))
    assert gte(Decimal("0"))
    assert not gt(Decimal("0"))


def test_round18_rounds_half_up() -> None:
    value = Decimal("1." + "0" * 18 + "5")
    assert round18(value) == Decimal("1." + "0" * 17 + "1")


def test_round18_clears_negative_zero() -> None:
    rounded = round18(Decimal("-0." + "0" * 19 + "1"))
    assert rounded == 0
    assert not rounded.is_signed()


def test_safe_div_never_raises() -> None:
    assert safe_div(Decimal(1), Decimal(0)).is_nan()
    assert safe_div(Decimal(1), NAN).is_nan()
    assert safe_div(Decimal(1), Decimal(4)) == Decimal("0.25")


def test_dsqrt_uses_fifty_significant_digits() -> None:
    root = dsqrt(Decimal(2))
    assert len(root.as_tuple().digits) == 50
    assert str(root).startswith("1.41421356237309504880168872420969807856967187537")
    assert dsqrt(Decimal(-1)).is_nan()


def test_clamp_zero() -> None:
    assert clamp_zero(Decimal(-3)) == 0
    assert clamp_zero(NAN) == 0
    assert clamp_zero(Decimal(2)) == 2


def test_fmt_renders_plain_decimal_text() -> None:
    assert fmt(Decimal("1.500")) == "1.5"
    assert fmt(Decimal("1E+3")) == "1000"
    assert fmt(Decimal("1E-7")) == "0.0000001"
    assert fmt(Decimal("0.00")) == "0"
    assert fmt(Decimal("-0.01")) == "-0.01"
