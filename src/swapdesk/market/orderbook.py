"""Order-book state kept current from streamed level deltas."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from swapdesk.domain.events import LevelUpdate
from swapdesk.domain.models import AggregatedLevel, OrderSide
from swapdesk.numeric import ZERO, gt, to_decimal


class OrderBook:
    """Ask and bid ladders; asks sorted ascending, bids descending."""

    def __init__(
        self,
        asks: Iterable[AggregatedLevel] = (),
        bids: Iterable[AggregatedLevel] = (),
    ) -> None:
        self.asks: list[AggregatedLevel] = list(asks)
        self.bids: list[AggregatedLevel] = list(bids)
        self._pending: list[Mapping[str, Any]] = []
        self._sort()

    def load(self, asks: Iterable[AggregatedLevel], bids: Iterable[AggregatedLevel]) -> None:
        """Replace both ladders with a fresh snapshot and drop buffered deltas."""
        self.asks = list(asks)
        self.bids = list(bids)
        self._pending.clear()
        self._sort()

    def apply(self, update: LevelUpdate | Mapping[str, Any]) -> bool:
        """Apply one delta immediately; returns False for events without an id."""
        changed = self._apply_one(self._payload(update))
        if changed:
            self._sort()
        return changed

    def enqueue(self, update: LevelUpdate | Mapping[str, Any]) -> None:
        self._pending.append(self._payload(update))

    def flush(self) -> int:
        """Apply every buffered delta as one batch, then re-sort once."""
        pending, self._pending = self._pending, []
        applied = 0
        for data in pending:
            if self._apply_one(data):
                applied += 1
        if applied:
            self._sort()
        return applied

    @property
    def pending(self) -> int:
        return len(self._pending)

    def grouped(self, step: Decimal) -> tuple[list[AggregatedLevel], list[AggregatedLevel]]:
        asks = sorted(group_levels(self.asks, step), key=lambda level: level.price)
        bids = sorted(group_levels(self.bids, step), key=lambda level: level.price, reverse=True)
        return asks, bids

    def _apply_one(self, data: Mapping[str, Any]) -> bool:
        raw_id = data.get("id")
        if raw_id is None:
            return False
        level_id = int(raw_id)
        side = data.get("side")
        price = data.get("price")
        quantity = data.get("quantity")
        if side is not None and price is not None and quantity is not None:
            target = self.bids if OrderSide(int(side)) == OrderSide.BUY else self.asks
            level = AggregatedLevel(id=level_id, price=to_decimal(price), quantity=to_decimal(quantity))
            for index, existing in enumerate(target):
                if existing.id == level_id:
                    target[index] = level
                    break
            else:
                target.append(level)
            return True
        self.asks = [level for level in self.asks if level.id != level_id]
        self.bids = [level for level in self.bids if level.id != level_id]
        return True

    def _sort(self) -> None:
        self.asks.sort(key=lambda level: level.price)
        self.bids.sort(key=lambda level: level.price, reverse=True)

    @staticmethod
    def _payload(update: LevelUpdate | Mapping[str, Any]) -> Mapping[str, Any]:
        if isinstance(update, LevelUpdate):
            return update.data
        return update


def group_levels(levels: Iterable[AggregatedLevel], step: Decimal) -> list[AggregatedLevel]:
    """Sum quantities of levels falling into the same ``step``-wide price bucket.

    Grouped levels carry id 0. A non-positive step returns the levels unchanged.
    """
    items = list(levels)
    if not gt(step):
        return items
    groups: dict[Decimal, Decimal] = {}
    for level in items:
        price = (level.price / step).to_integral_value(rounding=ROUND_FLOOR) * step
        groups[price] = groups.get(price, ZERO) + level.quantity
    return [AggregatedLevel(id=0, price=price, quantity=quantity) for price, quantity in groups.items()]
