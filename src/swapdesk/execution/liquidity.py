"""Concentrated-liquidity pool math on square-root prices.

For a pool at price ``p`` with range ``[p_min, p_max]`` both reserves represent
the same liquidity ``L``:

    L = amount0 * sqrt(p) * sqrt(p_max) / (sqrt(p_max) - sqrt(p))
    L = amount1 / (sqrt(p) - sqrt(p_min))

Range differences are clamped at zero, so a price on or outside the range edge
gives zero rather than a negative or undefined amount.
"""

from __future__ import annotations

from decimal import Decimal

from swapdesk.numeric import ZERO, clamp_zero, dsqrt, gt, is_nan, mul, round18, safe_div

BUFFER = Decimal("1.0005")


def liquidity_from_primary(amount: Decimal, sqrt_price: Decimal, sqrt_max_price: Decimal) -> Decimal:
    spread = clamp_zero(sqrt_max_price - sqrt_price)
    result = safe_div(mul(amount, sqrt_price, sqrt_max_price), spread)
    return round18(result) if not result.is_nan() else round18(ZERO)


def liquidity_from_secondary(amount: Decimal, sqrt_price: Decimal, sqrt_min_price: Decimal) -> Decimal:
    spread = clamp_zero(sqrt_price - sqrt_min_price)
    result = safe_div(amount, spread)
    return round18(result) if not result.is_nan() else round18(ZERO)


def primary_from_liquidity(liquidity: Decimal, sqrt_price: Decimal, sqrt_max_price: Decimal) -> Decimal:
    spread = clamp_zero(sqrt_max_price - sqrt_price)
    result = mul(liquidity, safe_div(safe_div(spread, sqrt_price), sqrt_max_price))
    return round18(result) if not result.is_nan() else round18(ZERO)


def secondary_from_liquidity(liquidity: Decimal, sqrt_price: Decimal, sqrt_min_price: Decimal) -> Decimal:
    spread = clamp_zero(sqrt_price - sqrt_min_price)
    return round18(mul(liquidity, spread))


def is_concentrated(min_price: Decimal | None, max_price: Decimal | None) -> bool:
    return gt(min_price) and gt(max_price) and min_price < max_price


def in_range(price: Decimal, min_price: Decimal | None, max_price: Decimal | None) -> bool:
    if not is_concentrated(min_price, max_price):
        return False
    return min_price < price < max_price


def secondary_for_primary(
    amount: Decimal,
    price: Decimal,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
) -> Decimal:
    """Secondary reserve matching a primary reserve at ``price``.

    Without a concentrated range the reserves are simply proportional.
    """
    if not gt(amount) or not gt(price):
        return ZERO
    if not is_concentrated(min_price, max_price):
        return round18(mul(price, amount))
    buffered = mul(amount, BUFFER)
    sqrt_price = dsqrt(price)
    liquidity = liquidity_from_primary(buffered, sqrt_price, dsqrt(max_price))
    return secondary_from_liquidity(liquidity, sqrt_price, dsqrt(min_price))


def primary_for_secondary(
    amount: Decimal,
    price: Decimal,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
) -> Decimal:
    """Primary reserve matching a secondary reserve at ``price``."""
    if not gt(amount) or not gt(price):
        return ZERO
    if not is_concentrated(min_price, max_price):
        result = safe_div(amount, price)
        return ZERO if is_nan(result) else round18(result)
    buffered = mul(amount, BUFFER)
    sqrt_price = dsqrt(price)
    liquidity = liquidity_from_secondary(buffered, sqrt_price, dsqrt(min_price))
    return primary_from_liquidity(liquidity, sqrt_price, dsqrt(max_price))
