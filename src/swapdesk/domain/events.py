"""Typed events fanned out by the swap client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from swapdesk.domain.models import OrderSide
from swapdesk.numeric import to_decimal

TRADE_UPDATE = "update:trade"
LEVEL_UPDATE = "update:level"
ORDER_UPDATE = "update:order"
POOL_UPDATE = "update:pool"
SWAP_READY = "swap:ready"


@dataclass(frozen=True)
class SwapEvent:
    """Base stream event; ``data`` keeps the raw notification payload."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    ts: str = field(default_factory=lambda: datetime.now(tz=UTC).isoformat())

    def to_record(self) -> dict[str, Any]:
        return {"ts": self.ts, "type": self.type, "data": self.data}


@dataclass(frozen=True)
class TradeUpdate(SwapEvent):
    type: str = TRADE_UPDATE

    @property
    def primary_asset_id(self) -> str | None:
        asset = self.data.get("primaryAsset")
        if isinstance(asset, dict):
            return str(asset.get("id")) if asset.get("id") is not None else None
        return str(asset) if asset is not None else None

    @property
    def secondary_asset_id(self) -> str | None:
        asset = self.data.get("secondaryAsset")
        if isinstance(asset, dict):
            return str(asset.get("id")) if asset.get("id") is not None else None
        return str(asset) if asset is not None else None

    @property
    def secondary_base(self) -> str | None:
        base = self.data.get("secondaryBase")
        return str(base) if base is not None else None

    @property
    def price(self) -> Decimal:
        return to_decimal(self.data.get("price"))

    @property
    def quantity(self) -> Decimal:
        return to_decimal(self.data.get("quantity", 0))

    @property
    def side(self) -> OrderSide:
        raw = self.data.get("side", OrderSide.BUY)
        try:
            return OrderSide(int(raw))
        except (TypeError, ValueError):
            return OrderSide.BUY

    @property
    def account(self) -> str | None:
        account = self.data.get("account")
        return str(account) if account else None


@dataclass(frozen=True)
class LevelUpdate(SwapEvent):
    """Upsert when price and quantity are present, delete when only ``id`` is."""

    type: str = LEVEL_UPDATE

    @property
    def level_id(self) -> int | None:
        raw = self.data.get("id")
        if raw is None:
            return None
        return int(raw)

    @property
    def is_delete(self) -> bool:
        return self.data.get("price") is None and self.data.get("quantity") is None

    @property
    def side(self) -> OrderSide | None:
        raw = self.data.get("side")
        if raw is None:
            return None
        return OrderSide(int(raw))


@dataclass(frozen=True)
class OrderUpdate(SwapEvent):
    type: str = ORDER_UPDATE


@dataclass(frozen=True)
class PoolUpdate(SwapEvent):
    type: str = POOL_UPDATE


@dataclass(frozen=True)
class SwapReady(SwapEvent):
    type: str = SWAP_READY


EVENT_TYPES: dict[str, type[SwapEvent]] = {
    TRADE_UPDATE: TradeUpdate,
    LEVEL_UPDATE: LevelUpdate,
    ORDER_UPDATE: OrderUpdate,
    POOL_UPDATE: PoolUpdate,
    SWAP_READY: SwapReady,
}


def event_from_notification(kind: str, data: Any) -> SwapEvent:
    """Wrap a channel notification in its typed event class."""
    payload = data if isinstance(data, dict) else {}
    event_class = EVENT_TYPES.get(kind)
    if event_class is None:
        return SwapEvent(type=kind, data=payload)
    return event_class(data=payload)
