"""Core exchange domain models."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Any

from swapdesk.numeric import ONE, ZERO, gt, lt, safe_div, to_decimal


class OrderCondition(IntEnum):
    """Order trigger types, numbered as the server encodes them."""

    MARKET = 0
    LIMIT = 1
    STOP = 2
    STOP_LIMIT = 3
    TRAILING_STOP = 4
    TRAILING_STOP_LIMIT = 5


class OrderSide(IntEnum):
    """Supported order directions."""

    BUY = 0
    SELL = 1


class OrderPolicy(IntEnum):
    """Fill semantics: resting vs immediate, partial vs all-or-nothing."""

    DEFERRED = 0
    DEFERRED_ALL = 1
    IMMEDIATE = 2
    IMMEDIATE_ALL = 3


class MarketPolicy(IntEnum):
    SPOT = 0
    MARGIN = 1


@dataclass(frozen=True)
class AssetId:
    """Fungible asset on a chain; two identifiers are equal iff their ids match."""

    id: str
    chain: str = ""
    token: str | None = None
    checksum: str | None = None

    @classmethod
    def from_handle(
        cls,
        chain: str,
        token: str | None = None,
        checksum: str | None = None,
    ) -> AssetId:
        normalized_chain = chain.strip().upper()
        normalized_token = token.strip().upper() if token else None
        handle = normalized_chain
        if normalized_token:
            handle = f"{handle}:{normalized_token}:{checksum or ''}"
        digest = hashlib.sha256(handle.encode("utf-8")).hexdigest()
        return cls(id=digest, chain=normalized_chain, token=normalized_token, checksum=checksum)

    @classmethod
    def from_payload(cls, payload: Any) -> AssetId:
        """Build from a server object (``{"id", "chain", "token"}``) or a raw id."""
        if isinstance(payload, AssetId):
            return payload
        if isinstance(payload, dict):
            raw_id = payload.get("id")
            chain = str(payload.get("chain") or "")
            token = payload.get("token") or None
            checksum = payload.get("checksum") or None
            if raw_id is None:
                return cls.from_handle(chain, token, checksum)
            return cls(id=str(raw_id), chain=chain, token=token, checksum=checksum)
        return cls(id=str(payload))

    @property
    def symbol(self) -> str:
        return self.token or self.chain

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssetId):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


@dataclass(frozen=True)
class Balance:
    """Per-chain balance bucket of one asset."""

    asset: AssetId
    available: Decimal
    unavailable: Decimal = ZERO
    price: Decimal | None = None

    def __post_init__(self) -> None:
        if lt(self.available) or lt(self.unavailable):
            raise ValueError("balance amounts must be non-negative")


@dataclass(frozen=True)
class PricePoint:
    """Session open and latest close; ``None`` when unknown."""

    open: Decimal | None = None
    close: Decimal | None = None


@dataclass(frozen=True)
class PriceDescriptor:
    """Equity-denominated price entry of the shared price table."""

    asset: AssetId | None
    price: PricePoint
    whitelist: bool = False
    base: str | None = None


@dataclass(frozen=True)
class Order:
    """Client-side view of a server order."""

    id: str
    market_id: str
    primary_asset: AssetId
    secondary_asset: AssetId
    condition: OrderCondition
    side: OrderSide
    policy: OrderPolicy
    starting_value: Decimal
    value: Decimal
    active: bool = True
    price: Decimal | None = None
    stop_price: Decimal | None = None
    filling_price: Decimal | None = None
    slippage: Decimal | None = None
    trailing_step: Decimal | None = None
    trailing_distance: Decimal | None = None

    @property
    def progress(self) -> Decimal:
        return order_progress(self.starting_value, self.value)

    @property
    def is_consistent(self) -> bool:
        return not (gt(self.starting_value) and self.starting_value < self.value)


@dataclass(frozen=True)
class Pool:
    """Client-side view of a liquidity pool."""

    id: str
    market_id: str
    primary_asset: AssetId
    secondary_asset: AssetId
    primary_value: Decimal
    secondary_value: Decimal
    liquidity: Decimal
    price: Decimal
    fee_rate: Decimal
    exit_fee: Decimal = ZERO
    primary_revenue: Decimal = ZERO
    secondary_revenue: Decimal = ZERO
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    active: bool = True

    @property
    def concentrated(self) -> bool:
        return (
            gt(self.min_price)
            and gt(self.max_price)
            and self.min_price < self.max_price
        )

    @property
    def in_range(self) -> bool:
        if not self.concentrated:
            return True
        return self.min_price < self.price < self.max_price


@dataclass
class AggregatedLevel:
    """One order-book price level keyed by the server level id."""

    id: int
    price: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class AggregatedMatch:
    """Trade print."""

    time: datetime
    account: str
    side: OrderSide
    price: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class PriceBar:
    time: int
    open: float
    low: float
    high: float
    close: float
    value: float


@dataclass(frozen=True)
class VolumeBar:
    time: int
    value: float
    color: str | None = None


@dataclass(frozen=True)
class PairStats:
    open: Decimal | None = None
    low: Decimal | None = None
    high: Decimal | None = None
    close: Decimal | None = None
    order_liquidity: Decimal | None = None
    pool_liquidity: Decimal | None = None
    total_liquidity: Decimal | None = None
    order_volume: Decimal | None = None
    pool_volume: Decimal | None = None
    total_volume: Decimal | None = None


@dataclass(frozen=True)
class AggregatedPair:
    id: str
    primary_asset: AssetId
    secondary_asset: AssetId
    secondary_base: str | None = None
    launch_time: int = 0
    price: PairStats = field(default_factory=PairStats)


@dataclass(frozen=True)
class Market:
    id: str
    account: str
    policy: MarketPolicy = MarketPolicy.SPOT
    pool_exit_fee: Decimal = ZERO
    max_pool_fee_rate: Decimal = ONE
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def policy_label(self) -> str:
        return {MarketPolicy.SPOT: "Spot", MarketPolicy.MARGIN: "Margin"}.get(self.policy, "Unknown")


@dataclass(frozen=True)
class FeeTier:
    volume: Decimal | None = None
    maker_fee: Decimal | None = None
    taker_fee: Decimal | None = None


@dataclass(frozen=True)
class AccountTier:
    primary: FeeTier = field(default_factory=FeeTier)
    secondary: FeeTier = field(default_factory=FeeTier)


@dataclass(frozen=True)
class AccountSnapshot:
    """Balances, orders and pools of one account; replaced wholesale on refresh."""

    balances: list[Balance] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    pools: list[Pool] = field(default_factory=list)


def optional_decimal(value: Any) -> Decimal | None:
    """Server optional numeric: missing, empty or unparseable values become None."""
    if value is None or value == "":
        return None
    parsed = to_decimal(value)
    if parsed.is_nan():
        return None
    return parsed


def order_progress(starting_value: Decimal, value: Decimal) -> Decimal:
    """Filled fraction; 1 for a non-positive start, 0 when value exceeds the start."""
    if not gt(starting_value):
        return ONE
    if starting_value < value:
        return ZERO
    return safe_div(starting_value - value, starting_value)
