"""Greedy allocation of a spend across per-chain balance buckets."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from swapdesk.domain.models import Balance
from swapdesk.numeric import ZERO, gt


def total_available(balances: Iterable[Balance]) -> Decimal:
    """Sum of spendable amounts."""
    total = ZERO
    for balance in balances:
        total += balance.available
    return total


def allocate(balances: Iterable[Balance], requested: Decimal) -> dict[str, Decimal]:
    """Split ``requested`` across balances in the given order.

    Each bucket gives ``min(available, remaining)``. Buckets walked after the
    request is covered get an explicit zero. When the buckets run out first the
    partial allocation is returned; callers check the total beforehand.
    """
    remaining = requested if gt(requested) else ZERO
    pays: dict[str, Decimal] = {}
    for balance in balances:
        change = min(balance.available, remaining)
        remaining -= change
        pays[balance.asset.id] = pays.get(balance.asset.id, ZERO) + change
    return pays
