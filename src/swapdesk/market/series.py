"""Price/volume bar series: bucket math, page merging and live-trade accumulation."""

from __future__ import annotations

import math
import time as clock
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TypeVar

from swapdesk.domain.events import TradeUpdate
from swapdesk.domain.models import (
    AggregatedMatch,
    AggregatedPair,
    OrderSide,
    PairStats,
    PriceBar,
    PricePoint,
    VolumeBar,
)
from swapdesk.numeric import ZERO, gt, to_decimal

UP_COLOR = "#22ab94"
DOWN_COLOR = "#f7525f"

# (seconds, label) choices offered for the chart
INTERVALS: tuple[tuple[int, str], ...] = (
    (2628000, "1M"),
    (604800, "1W"),
    (259200, "3D"),
    (86400, "1D"),
    (14400, "4H"),
    (3600, "1H"),
    (1800, "30m"),
    (900, "15m"),
    (300, "5m"),
    (60, "1m"),
)
DEFAULT_INTERVAL = 1800

BarT = TypeVar("BarT", PriceBar, VolumeBar)


def bucket(timestamp: float, interval: int) -> int:
    """Origin-aligned bucket start: ``floor(timestamp / interval) * interval``."""
    if interval <= 0:
        raise ValueError("interval must be positive")
    return int(math.floor(timestamp / interval)) * interval


def merge_series(a: Sequence[BarT], b: Sequence[BarT], reducer: Callable[[BarT, BarT], BarT]) -> list[BarT]:
    """Two-pointer merge of time-sorted bars; equal timestamps are reduced, never replaced.

    A bar whose time equals the last emitted bar is folded into it, so
    duplicates inside one input collapse as well.
    """
    merged: list[BarT] = []
    i = j = 0

    def emit(bar: BarT) -> None:
        if merged and merged[-1].time == bar.time:
            merged[-1] = reducer(merged[-1], bar)
        else:
            merged.append(bar)

    while i < len(a) and j < len(b):
        left, right = a[i], b[j]
        if left.time < right.time:
            emit(left)
            i += 1
        elif left.time > right.time:
            emit(right)
            j += 1
        else:
            emit(reducer(left, right))
            i += 1
            j += 1
    while i < len(a):
        emit(a[i])
        i += 1
    while j < len(b):
        emit(b[j])
        j += 1
    return merged


def _reduce_price(a: PriceBar, b: PriceBar) -> PriceBar:
    return PriceBar(
        time=a.time,
        open=(a.open + b.open) / 2,
        low=min(a.low, b.low),
        high=max(a.high, b.high),
        close=(a.close + b.close) / 2,
        value=(a.value + b.value) / 2,
    )


def _reduce_volume(a: VolumeBar, b: VolumeBar) -> VolumeBar:
    return VolumeBar(time=a.time, value=a.value + b.value, color=a.color)


def merge_price_series(a: Sequence[PriceBar], b: Sequence[PriceBar]) -> list[PriceBar]:
    return merge_series(a, b, _reduce_price)


def merge_volume_series(a: Sequence[VolumeBar], b: Sequence[VolumeBar]) -> list[VolumeBar]:
    return merge_series(a, b, _reduce_volume)


def bars_from_rows(rows: Iterable[Mapping[str, Any]]) -> tuple[list[PriceBar], list[VolumeBar]]:
    """Convert server series rows (millisecond ``time``) into chart bars in seconds."""
    prices: list[PriceBar] = []
    volumes: list[VolumeBar] = []
    for row in rows:
        seconds = int(math.floor(float(row["time"]) / 1000))
        close = float(row["close"])
        prices.append(
            PriceBar(
                time=seconds,
                open=float(row["open"]),
                low=float(row["low"]),
                high=float(row["high"]),
                close=close,
                value=close,
            )
        )
        sentiment = float(row.get("sentiment") or 0)
        volumes.append(
            VolumeBar(
                time=seconds,
                value=float(row.get("volume") or 0),
                color=UP_COLOR if sentiment >= 0 else DOWN_COLOR,
            )
        )
    return prices, volumes


def series_rows(raw: Iterable[Sequence[Any]]) -> list[dict[str, Any]]:
    """Positional server tuples ``[time, sentiment, volume, open, low, high, close]``."""
    rows: list[dict[str, Any]] = []
    for item in raw:
        rows.append(
            {
                "time": int(to_decimal(item[0])),
                "sentiment": int(to_decimal(item[1])),
                "volume": to_decimal(item[2]),
                "open": to_decimal(item[3]),
                "low": to_decimal(item[4]),
                "high": to_decimal(item[5]),
                "close": to_decimal(item[6]),
            }
        )
    return rows


class SeriesView:
    """Chart state for one pair: fetched pages plus buffered live trades."""

    def __init__(self, pair: AggregatedPair, interval: int = DEFAULT_INTERVAL) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.pair = pair
        self.interval = interval
        self.prices: list[PriceBar] = []
        self.volumes: list[VolumeBar] = []
        self.trades: list[AggregatedMatch] = []
        self._incoming: list[TradeUpdate] = []

    def load(self, rows: Iterable[Mapping[str, Any]], reset: bool = False) -> None:
        """Merge a fetched page; ``reset`` replaces the current bars instead."""
        prices, volumes = bars_from_rows(rows)
        if reset:
            self.prices, self.volumes = prices, volumes
            return
        self.prices = merge_price_series(self.prices, prices)
        self.volumes = merge_volume_series(self.volumes, volumes)

    def enqueue(self, trade: TradeUpdate) -> None:
        self._incoming.append(trade)

    @property
    def pending(self) -> int:
        return len(self._incoming)

    def apply_trades(self, reference: PricePoint | None = None, now: float | None = None) -> list[AggregatedMatch]:
        """Fold buffered trades for this pair into the current bucket.

        ``reference`` is the cached pair price; its close is used when no
        buffered trade belongs to the pair. Returns the new trade prints.
        """
        if not self._incoming:
            return []
        incoming, self._incoming = self._incoming, []
        reference = reference or PricePoint()
        price: Decimal | None = reference.close
        quantity = ZERO
        sentiment = 0.0
        matches: list[AggregatedMatch] = []
        for trade in incoming:
            if not self._belongs(trade):
                continue
            next_price = trade.price
            if not gt(next_price):
                continue
            next_quantity = trade.quantity if not trade.quantity.is_nan() else ZERO
            direction = 1 if trade.side == OrderSide.BUY else -1
            sentiment += direction * (1 + float(next_quantity))
            price = next_price
            quantity += next_quantity
            if trade.account is not None:
                matches.append(
                    AggregatedMatch(
                        time=datetime.now(tz=UTC),
                        account=trade.account,
                        side=trade.side,
                        price=next_price,
                        quantity=next_quantity,
                    )
                )

        if price is None:
            return []
        self._update_stats(reference, price, quantity)
        if matches:
            self.trades = matches + self.trades
        self._update_bars(price, quantity, sentiment, clock.time() if now is None else now)
        return matches

    def _belongs(self, trade: TradeUpdate) -> bool:
        return (
            trade.primary_asset_id == self.pair.primary_asset.id
            and trade.secondary_asset_id == self.pair.secondary_asset.id
        )

    def _update_stats(self, reference: PricePoint, price: Decimal, quantity: Decimal) -> None:
        stats = self.pair.price
        low = price if stats.low is None else min(stats.low, price)
        high = price if stats.high is None else max(stats.high, price)
        self.pair = replace(
            self.pair,
            price=PairStats(
                open=reference.open,
                low=low,
                high=high,
                close=price,
                order_liquidity=stats.order_liquidity or ZERO,
                pool_liquidity=stats.pool_liquidity or ZERO,
                total_liquidity=stats.total_liquidity or ZERO,
                order_volume=(stats.order_volume or ZERO) + quantity,
                pool_volume=stats.pool_volume or ZERO,
                total_volume=(stats.total_volume or ZERO) + quantity,
            ),
        )

    def _update_bars(self, price: Decimal, quantity: Decimal, sentiment: float, now: float) -> None:
        slot = bucket(now, self.interval)
        value = float(price)
        amount = float(quantity)
        last_price = self.prices[-1] if self.prices else None
        last_volume = self.volumes[-1] if self.volumes else None

        if last_price is not None and last_price.time == slot:
            self.prices[-1] = PriceBar(
                time=slot,
                open=last_price.open,
                low=min(last_price.low, value),
                high=max(last_price.high, value),
                close=value,
                value=value,
            )
        else:
            self.prices.append(PriceBar(time=slot, open=value, low=value, high=value, close=value, value=value))

        color = UP_COLOR if sentiment >= 0 else DOWN_COLOR
        if last_volume is not None and last_volume.time == slot:
            if last_volume.value * 0.5 >= amount:
                color = last_volume.color or color
            self.volumes[-1] = VolumeBar(time=slot, value=last_volume.value + amount, color=color)
        else:
            self.volumes.append(VolumeBar(time=slot, value=amount, color=color))
