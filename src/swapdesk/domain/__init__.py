"""Domain models and event types."""

from .events import LevelUpdate, OrderUpdate, PoolUpdate, SwapEvent, SwapReady, TradeUpdate
from .models import (
    AccountSnapshot,
    AccountTier,
    AggregatedLevel,
    AggregatedMatch,
    AggregatedPair,
    AssetId,
    Balance,
    Market,
    Order,
    OrderCondition,
    OrderPolicy,
    OrderSide,
    Pool,
    PriceBar,
    PricePoint,
    VolumeBar,
    order_progress,
)

__all__ = [
    "AccountSnapshot",
    "AccountTier",
    "AggregatedLevel",
    "AggregatedMatch",
    "AggregatedPair",
    "AssetId",
    "Balance",
    "LevelUpdate",
    "Market",
    "Order",
    "OrderCondition",
    "OrderPolicy",
    "OrderSide",
    "OrderUpdate",
    "Pool",
    "PoolUpdate",
    "PriceBar",
    "PricePoint",
    "SwapEvent",
    "SwapReady",
    "TradeUpdate",
    "VolumeBar",
    "order_progress",
]
