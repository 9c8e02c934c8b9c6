"""Order and pool payload derivation from a ticket draft.

Builders never raise on bad input: an unparseable, missing or out-of-range
field yields ``None`` and the ticket simply stays unsubmittable.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from swapdesk.domain.models import AccountTier, OrderCondition, OrderPolicy, OrderSide
from swapdesk.execution.draft import (
    TicketContext,
    TicketDraft,
    policy_for,
    required_fields,
)
from swapdesk.execution.sizing import allocate
from swapdesk.numeric import NAN, ONE, ZERO, fmt, gt, gte
from swapdesk.quantity import parse_value, parse_value_or_percent

PAYLOAD_KEYS = {
    "stop_price": "stopPrice",
    "price": "price",
    "slippage": "slippage",
    "trailing_step": "trailingStep",
    "trailing_distance": "trailingDistance",
}


def _serialize_pays(pays: dict[str, Decimal]) -> dict[str, str]:
    return {asset_id: fmt(amount) for asset_id, amount in pays.items()}


@dataclass(frozen=True)
class OrderPayload:
    """Order creation request; condition fields are decimal strings."""

    market_id: str
    primary_asset_hash: str
    secondary_asset_hash: str
    condition: OrderCondition
    policy: OrderPolicy
    side: OrderSide
    pays: dict[str, Decimal]
    value: Decimal
    stop_price: str | None = None
    price: str | None = None
    slippage: str | None = None
    trailing_step: str | None = None
    trailing_distance: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "marketId": self.market_id,
            "primaryAssetHash": self.primary_asset_hash,
            "secondaryAssetHash": self.secondary_asset_hash,
            "condition": int(self.condition),
            "policy": int(self.policy),
            "side": int(self.side),
        }
        for name, key in PAYLOAD_KEYS.items():
            value = getattr(self, name)
            if value is not None:
                body[key] = value
        body["pays"] = _serialize_pays(self.pays)
        return body


@dataclass(frozen=True)
class PoolPayload:
    """Pool creation request."""

    market_id: str
    primary_asset_hash: str
    secondary_asset_hash: str
    primary_pays: dict[str, Decimal]
    secondary_pays: dict[str, Decimal]
    price: str
    fee_rate: str
    min_price: str | None = None
    max_price: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "marketId": self.market_id,
            "primaryAssetHash": self.primary_asset_hash,
            "secondaryAssetHash": self.secondary_asset_hash,
            "primaryPays": _serialize_pays(self.primary_pays),
            "secondaryPays": _serialize_pays(self.secondary_pays),
            "price": self.price,
            "feeRate": self.fee_rate,
        }
        if self.min_price is not None:
            body["minPrice"] = self.min_price
        if self.max_price is not None:
            body["maxPrice"] = self.max_price
        return body


@dataclass(frozen=True)
class FeeBounds:
    """Maker/taker fee span for the spending side plus the slippage allowance."""

    min: Decimal = ZERO
    max: Decimal = ZERO
    relative_price: Decimal = ZERO
    absolute_price: Decimal = ZERO


def resolve_spend(draft: TicketDraft, context: TicketContext) -> Decimal:
    """Absolute amount to spend, or NaN when unset or above the side balance."""
    quantity = parse_value_or_percent(draft.value)
    if not gt(quantity.value):
        return NAN
    total = context.spend_total(draft.side)
    if total is None:
        return NAN
    amount = quantity.resolve(total)
    if not gt(amount) or amount > total:
        return NAN
    return amount


def _parse_condition_field(name: str, text: str) -> str | None:
    if name in {"stop_price", "price"}:
        value = parse_value(text)
        return fmt(value) if gt(value) else None
    quantity = parse_value_or_percent(text)
    if name == "slippage":
        if not gte(quantity.value):
            return None
        if quantity.relative is not None:
            return fmt(-quantity.relative)
        return fmt(quantity.value)
    if not gt(quantity.value):
        return None
    return fmt(quantity.value)


def build_order_payload(draft: TicketDraft, context: TicketContext) -> OrderPayload | None:
    """Typed order request for the draft, or ``None`` while it is incomplete."""
    if draft.pool or not context.has_balances:
        return None
    spend = resolve_spend(draft, context)
    if not gt(spend):
        return None

    condition_fields: dict[str, str] = {}
    for name in required_fields(draft.condition):
        parsed = _parse_condition_field(name, getattr(draft, name))
        if parsed is None:
            return None
        condition_fields[name] = parsed

    return OrderPayload(
        market_id=context.market_id,
        primary_asset_hash=context.primary_asset.id,
        secondary_asset_hash=context.secondary_asset.id,
        condition=draft.condition,
        policy=policy_for(draft.condition, draft.fill_or_kill),
        side=draft.side,
        pays=allocate(context.spend_balances(draft.side), spend),
        value=spend,
        **condition_fields,
    )


def build_pool_payload(draft: TicketDraft, context: TicketContext) -> PoolPayload | None:
    """Typed pool request for the draft, or ``None`` while it is incomplete."""
    if not draft.pool:
        return None

    price = parse_value(draft.base_price)
    if not gt(price):
        return None

    min_price = parse_value(draft.min_price)
    max_price = parse_value(draft.max_price)
    ranged = gt(min_price) and gt(max_price)
    if ranged and (min_price >= price or max_price <= price or min_price >= max_price):
        return None

    primary_total = context.primary_total
    secondary_total = context.secondary_total
    if primary_total is None or secondary_total is None:
        return None

    primary = parse_value_or_percent(draft.primary_value).resolve(primary_total)
    secondary = parse_value_or_percent(draft.secondary_value).resolve(secondary_total)
    if not gt(primary) or not gt(secondary):
        return None
    if primary > primary_total or secondary > secondary_total:
        return None

    fee_rate = parse_value_or_percent(draft.fee_rate)
    if fee_rate.absolute is not None or not gte(fee_rate.value) or fee_rate.value > ONE:
        return None

    return PoolPayload(
        market_id=context.market_id,
        primary_asset_hash=context.primary_asset.id,
        secondary_asset_hash=context.secondary_asset.id,
        primary_pays=allocate(context.primary_balances or (), primary),
        secondary_pays=allocate(context.secondary_balances or (), secondary),
        price=fmt(price),
        fee_rate=fmt(fee_rate.value),
        min_price=fmt(min_price) if ranged else None,
        max_price=fmt(max_price) if ranged else None,
    )


def fee_bounds(draft: TicketDraft, tiers: AccountTier | None) -> FeeBounds:
    """Fee span shown next to the ticket: maker fee as the floor, taker fee as the cap."""
    if tiers is None:
        tier_min = tier_max = None
    elif draft.side == OrderSide.BUY:
        tier_min, tier_max = tiers.secondary.maker_fee, tiers.secondary.taker_fee
    else:
        tier_min, tier_max = tiers.primary.maker_fee, tiers.primary.taker_fee

    relative = absolute = ZERO
    if "slippage" in required_fields(draft.condition):
        slippage = parse_value_or_percent(draft.slippage)
        relative = slippage.relative if slippage.relative is not None else ZERO
        absolute = slippage.absolute if slippage.absolute is not None else ZERO

    return FeeBounds(
        min=tier_min if tier_min is not None else ZERO,
        max=tier_max if tier_max is not None else ZERO,
        relative_price=relative,
        absolute_price=absolute,
    )
