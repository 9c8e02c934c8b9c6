"""Order-ticket draft state and the context it is evaluated against."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from decimal import Decimal
from typing import Any, Self

from swapdesk.domain.models import AssetId, Balance, OrderCondition, OrderPolicy, OrderSide
from swapdesk.execution.sizing import total_available

DEFAULT_SLIPPAGE = "1%"
DEFAULT_FEE_RATE = "0.15%"

REQUIRED_FIELDS: dict[OrderCondition, tuple[str, ...]] = {
    OrderCondition.MARKET: ("slippage",),
    OrderCondition.LIMIT: ("price",),
    OrderCondition.STOP: ("stop_price", "slippage"),
    OrderCondition.STOP_LIMIT: ("stop_price", "price"),
    OrderCondition.TRAILING_STOP: (
        "stop_price",
        "slippage",
        "trailing_step",
        "trailing_distance",
    ),
    OrderCondition.TRAILING_STOP_LIMIT: (
        "stop_price",
        "price",
        "trailing_step",
        "trailing_distance",
    ),
}

IMMEDIATE_CONDITIONS = frozenset(
    {OrderCondition.MARKET, OrderCondition.STOP, OrderCondition.TRAILING_STOP}
)


def required_fields(condition: OrderCondition) -> tuple[str, ...]:
    """Draft fields a condition reads, besides the spend value."""
    return REQUIRED_FIELDS[OrderCondition(condition)]


def is_immediate(condition: OrderCondition) -> bool:
    """Market-style triggers execute right away; limit-style ones rest on the book."""
    return OrderCondition(condition) in IMMEDIATE_CONDITIONS


def policy_for(condition: OrderCondition, fill_or_kill: bool) -> OrderPolicy:
    if is_immediate(condition):
        return OrderPolicy.IMMEDIATE_ALL if fill_or_kill else OrderPolicy.IMMEDIATE
    return OrderPolicy.DEFERRED_ALL if fill_or_kill else OrderPolicy.DEFERRED


@dataclass(frozen=True)
class TicketDraft:
    """Raw ticket fields exactly as typed; every change produces a new draft."""

    condition: OrderCondition = OrderCondition.MARKET
    side: OrderSide = OrderSide.BUY
    fill_or_kill: bool = False
    pool: bool = False
    stop_price: str = ""
    price: str = ""
    slippage: str = DEFAULT_SLIPPAGE
    trailing_step: str = ""
    trailing_distance: str = ""
    value: str = ""
    base_price: str = ""
    min_price: str = ""
    max_price: str = ""
    primary_value: str = ""
    secondary_value: str = ""
    fee_rate: str = DEFAULT_FEE_RATE

    def evolve(self, **changes: Any) -> Self:
        return replace(self, **changes)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["condition"] = int(self.condition)
        record["side"] = int(self.side)
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any], base: TicketDraft | None = None) -> Self:
        """Merge a stored record over ``base`` (defaults when omitted); unknown keys are ignored."""
        origin = base if base is not None else cls()
        known = {item.name for item in fields(cls)}
        changes: dict[str, Any] = {}
        for key, value in record.items():
            if key not in known or value is None:
                continue
            if key == "condition":
                changes[key] = OrderCondition(int(value))
            elif key == "side":
                changes[key] = OrderSide(int(value))
            elif key in {"fill_or_kill", "pool"}:
                changes[key] = bool(value)
            else:
                changes[key] = str(value)
        return replace(origin, **changes)


@dataclass(frozen=True)
class TicketPreset:
    """Versioned draft handed over from outside (e.g. a clicked order-book price)."""

    id: int
    values: Mapping[str, Any] = field(default_factory=dict)

    def to_draft(self) -> TicketDraft:
        return TicketDraft.from_record(self.values)


@dataclass(frozen=True)
class TicketContext:
    """Market, assets and the account's spendable balances for a ticket."""

    market_id: str
    primary_asset: AssetId
    secondary_asset: AssetId
    primary_balances: tuple[Balance, ...] | None = None
    secondary_balances: tuple[Balance, ...] | None = None

    @property
    def has_balances(self) -> bool:
        return self.primary_balances is not None and self.secondary_balances is not None

    def spend_balances(self, side: OrderSide) -> tuple[Balance, ...]:
        """Buying spends the secondary asset, selling spends the primary one."""
        if side == OrderSide.BUY:
            return tuple(self.secondary_balances or ())
        return tuple(self.primary_balances or ())

    def spend_asset(self, side: OrderSide) -> AssetId:
        return self.secondary_asset if side == OrderSide.BUY else self.primary_asset

    @property
    def primary_total(self) -> Decimal | None:
        if self.primary_balances is None:
            return None
        return total_available(self.primary_balances)

    @property
    def secondary_total(self) -> Decimal | None:
        if self.secondary_balances is None:
            return None
        return total_available(self.secondary_balances)

    def spend_total(self, side: OrderSide) -> Decimal | None:
        return self.secondary_total if side == OrderSide.BUY else self.primary_total
