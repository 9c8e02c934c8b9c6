"""Order-ticket state machine: field edits, pool reserve cascade, presets and persistence."""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

from swapdesk.domain.models import AssetId, OrderCondition, OrderSide, PricePoint
from swapdesk.execution.draft import TicketContext, TicketDraft, TicketPreset
from swapdesk.execution.engine import (
    OrderPayload,
    PoolPayload,
    build_order_payload,
    build_pool_payload,
)
from swapdesk.execution.liquidity import primary_for_secondary, secondary_for_primary
from swapdesk.numeric import ZERO, fmt, gt
from swapdesk.quantity import apply_edit, edit_percent, parse_value, parse_value_or_percent
from swapdesk.state.store import KeyValueStore

PriceLookup = Callable[[AssetId, AssetId], PricePoint]

# field -> (percent allowed, leading minus allowed)
FIELD_FLAVOURS: dict[str, tuple[bool, bool]] = {
    "stop_price": (False, False),
    "price": (False, False),
    "slippage": (True, True),
    "trailing_step": (True, False),
    "trailing_distance": (True, False),
    "value": (True, False),
    "base_price": (False, False),
    "min_price": (False, False),
    "max_price": (False, False),
    "primary_value": (True, False),
    "secondary_value": (True, False),
}
PERCENT_FIELDS = frozenset({"fee_rate"})
RANGE_FIELDS = frozenset({"base_price", "min_price", "max_price"})


class OrderTicket:
    """Owns one ticket draft; every transition replaces the draft and persists it."""

    def __init__(
        self,
        context: TicketContext,
        store: KeyValueStore | None = None,
        path: str | None = None,
        price_lookup: PriceLookup | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.path = path
        self.price_lookup = price_lookup
        self.draft = TicketDraft()
        self.preset_id = 0

    def select_condition(self, condition: OrderCondition) -> TicketDraft:
        return self._commit(self.draft.evolve(condition=OrderCondition(condition)))

    def select_side(self, side: OrderSide) -> TicketDraft:
        return self._commit(self.draft.evolve(side=OrderSide(side), pool=False))

    def set_fill_or_kill(self, enabled: bool) -> TicketDraft:
        return self._commit(self.draft.evolve(fill_or_kill=bool(enabled)))

    def select_pool(self, enabled: bool = True) -> TicketDraft:
        """Toggle pool mode; entering it seeds the base price from the pair close."""
        if not enabled:
            return self._commit(self.draft.evolve(pool=False))
        return self._commit(self.draft.evolve(pool=True, base_price=self._pair_close()))

    def edit_field(self, name: str, raw: str) -> TicketDraft:
        """Apply a keystroke-level edit to ``name`` and run the reserve cascade."""
        if name in PERCENT_FIELDS:
            text = edit_percent(getattr(self.draft, name), raw)
        elif name in FIELD_FLAVOURS:
            percent, negative = FIELD_FLAVOURS[name]
            text = apply_edit(getattr(self.draft, name), raw, percent=percent, negative=negative)
        else:
            raise ValueError(f"Unknown ticket field '{name}'")
        changes: dict[str, Any] = {name: text}
        if name in RANGE_FIELDS:
            changes["primary_value"] = ""
            changes["secondary_value"] = ""
        elif name == "primary_value":
            counterpart = self._counter_amount(text, self.context.primary_total, secondary_for_primary)
            if counterpart is not None:
                changes["secondary_value"] = counterpart
        elif name == "secondary_value":
            counterpart = self._counter_amount(text, self.context.secondary_total, primary_for_secondary)
            if counterpart is not None:
                changes["primary_value"] = counterpart
        return self._commit(self.draft.evolve(**changes))

    def fill_max(self) -> TicketDraft:
        """Spend the whole balance of the side's paying asset."""
        total = self.context.spend_total(self.draft.side)
        if total is None:
            return self.draft
        return self._commit(self.draft.evolve(value=fmt(total)))

    def apply_preset(self, preset: TicketPreset | None) -> bool:
        """Replace the draft with a strictly newer preset; stale ones are ignored."""
        if preset is None:
            return False
        if preset.id <= self.preset_id:
            return False
        self.preset_id = preset.id
        self._commit(preset.to_draft())
        return True

    def restore(self) -> TicketDraft:
        """Merge the persisted draft over the defaults."""
        if self.store is None or self.path is None:
            return self.draft
        record = self.store.get(self.path)
        if not isinstance(record, dict):
            return self.draft
        self.draft = TicketDraft.from_record(record, base=TicketDraft())
        return self.draft

    def order_payload(self) -> OrderPayload | None:
        return build_order_payload(self.draft, self.context)

    def pool_payload(self) -> PoolPayload | None:
        return build_pool_payload(self.draft, self.context)

    def _commit(self, draft: TicketDraft) -> TicketDraft:
        self.draft = draft
        if self.store is not None and self.path is not None:
            self.store.set(self.path, draft.to_record())
        return draft

    def _pair_close(self) -> str:
        if self.price_lookup is None:
            return ""
        point = self.price_lookup(self.context.primary_asset, self.context.secondary_asset)
        if point.close is None or not gt(point.close):
            return ""
        return fmt(point.close)

    def _counter_amount(
        self,
        text: str,
        total: Decimal | None,
        solver: Callable[[Decimal, Decimal, Decimal, Decimal], Decimal],
    ) -> str | None:
        price = parse_value(self.draft.base_price)
        if not gt(price):
            return None
        amount = parse_value_or_percent(text).resolve(total) if total is not None else ZERO
        if not gt(amount):
            return None
        counterpart = solver(
            amount,
            price,
            parse_value(self.draft.min_price),
            parse_value(self.draft.max_price),
        )
        return fmt(counterpart)
