from __future__ import annotations

from decimal import Decimal

import pytest

from swapdesk.domain.models import (
    AccountTier,
    AssetId,
    Balance,
    FeeTier,
    OrderCondition,
    OrderPolicy,
    OrderSide,
)
from swapdesk.execution.draft import (
    REQUIRED_FIELDS,
    TicketContext,
    TicketDraft,
    policy_for,
    required_fields,
)
from swapdesk.execution.engine import PAYLOAD_KEYS, build_order_payload, build_pool_payload, fee_bounds

PRIMARY = AssetId(id="primary-asset", chain="ETH")
SECONDARY = AssetId(id="secondary-asset", chain="ETH", token="USDT", checksum="abc")


def _context(primary: tuple[str, ...] = ("50",), secondary: tuple[str, ...] = ("120", "80")) -> TicketContext:
    return TicketContext(
        market_id="7",
        primary_asset=PRIMARY,
        secondary_asset=SECONDARY,
        primary_balances=tuple(
            Balance(asset=AssetId(id=f"p{index}"), available=Decimal(amount))
            for index, amount in enumerate(primary, start=1)
        ),
        secondary_balances=tuple(
            Balance(asset=AssetId(id=f"a{index}"), available=Decimal(amount))
            for index, amount in enumerate(secondary, start=1)
        ),
    )


def test_market_buy_spends_percent_of_secondary_balance() -> None:
    draft = TicketDraft(side=OrderSide.BUY, condition=OrderCondition.MARKET, value="50%", slippage="1%")

    payload = build_order_payload(draft, _context())

    assert payload is not None
    assert payload.value == Decimal(100)
    assert payload.pays == {"a1": Decimal(100), "a2": Decimal(0)}
    assert payload.slippage == "-0.01"
    assert payload.policy is OrderPolicy.IMMEDIATE
    assert payload.to_dict() == {
        "marketId": "7",
        "primaryAssetHash": "primary-asset",
        "secondaryAssetHash": "secondary-asset",
        "condition": 0,
        "policy": 2,
        "side": 0,
        "slippage": "-0.01",
        "pays": {"a1": "100", "a2": "0"},
    }


def test_sell_spends_primary_balance() -> None:
    draft = TicketDraft(side=OrderSide.SELL, condition=OrderCondition.LIMIT, value="20", price="105.5")

    payload = build_order_payload(draft, _context())

    assert payload is not None
    assert payload.pays == {"p1": Decimal(20)}
    assert payload.price == "105.5"
    assert payload.slippage is None
    assert payload.policy is OrderPolicy.DEFERRED


def test_absolute_slippage_is_serialized_as_value() -> None:
    draft = TicketDraft(value="10", slippage="5")

    payload = build_order_payload(draft, _context())

    assert payload is not None
    assert payload.slippage == "5"


@pytest.mark.parametrize("value", ["", "0", "250", "101%", "abc"])
def test_spend_outside_balance_is_rejected(value: str) -> None:
    assert build_order_payload(TicketDraft(value=value), _context()) is None


@pytest.mark.parametrize("price", ["", "0", "-1", "5%"])
def test_limit_requires_positive_absolute_price(price: str) -> None:
    draft = TicketDraft(condition=OrderCondition.LIMIT, value="10", price=price)

    assert build_order_payload(draft, _context()) is None


def test_trailing_stop_limit_requires_distance() -> None:
    draft = TicketDraft(
        condition=OrderCondition.TRAILING_STOP_LIMIT,
        value="10",
        stop_price="95",
        price="94",
        trailing_step="0.5",
    )

    assert build_order_payload(draft, _context()) is None

    payload = build_order_payload(draft.evolve(trailing_distance="2%"), _context())
    assert payload is not None
    body = payload.to_dict()
    assert body["stopPrice"] == "95"
    assert body["price"] == "94"
    assert body["trailingStep"] == "0.5"
    assert body["trailingDistance"] == "0.02"
    assert "slippage" not in body


VALID_CONDITION_FIELDS = {
    "stop_price": "100",
    "price": "99",
    "slippage": "1%",
    "trailing_step": "1",
    "trailing_distance": "2",
}
ORDER_BASE_KEYS = {"marketId", "primaryAssetHash", "secondaryAssetHash", "condition", "policy", "side", "pays"}


@pytest.mark.parametrize("condition", list(OrderCondition))
def test_complete_draft_carries_exactly_its_condition_fields(condition: OrderCondition) -> None:
    draft = TicketDraft(condition=condition, value="10", **VALID_CONDITION_FIELDS)

    payload = build_order_payload(draft, _context())

    assert payload is not None
    expected = ORDER_BASE_KEYS | {PAYLOAD_KEYS[name] for name in required_fields(condition)}
    assert set(payload.to_dict()) == expected


@pytest.mark.parametrize(
    ("condition", "missing"),
    [(condition, name) for condition, names in REQUIRED_FIELDS.items() for name in names],
)
def test_missing_required_field_blocks_payload(condition: OrderCondition, missing: str) -> None:
    fields = {**VALID_CONDITION_FIELDS, missing: ""}
    draft = TicketDraft(condition=condition, value="10", **fields)

    assert build_order_payload(draft, _context()) is None


def test_order_payload_is_none_in_pool_mode_or_without_balances() -> None:
    draft = TicketDraft(value="10")
    bare = TicketContext(market_id="7", primary_asset=PRIMARY, secondary_asset=SECONDARY)

    assert build_order_payload(draft.evolve(pool=True), _context()) is None
    assert build_order_payload(draft, bare) is None


def test_fill_or_kill_selects_all_or_nothing_policy() -> None:
    draft = TicketDraft(condition=OrderCondition.LIMIT, value="10", price="100", fill_or_kill=True)

    payload = build_order_payload(draft, _context())

    assert payload is not None
    assert payload.policy is OrderPolicy.DEFERRED_ALL


@pytest.mark.parametrize(
    ("condition", "fill_or_kill", "expected"),
    [
        (OrderCondition.MARKET, False, OrderPolicy.IMMEDIATE),
        (OrderCondition.MARKET, True, OrderPolicy.IMMEDIATE_ALL),
        (OrderCondition.LIMIT, False, OrderPolicy.DEFERRED),
        (OrderCondition.STOP, True, OrderPolicy.IMMEDIATE_ALL),
        (OrderCondition.STOP_LIMIT, True, OrderPolicy.DEFERRED_ALL),
        (OrderCondition.TRAILING_STOP, False, OrderPolicy.IMMEDIATE),
        (OrderCondition.TRAILING_STOP_LIMIT, False, OrderPolicy.DEFERRED),
    ],
)
def test_policy_for(condition: OrderCondition, fill_or_kill: bool, expected: OrderPolicy) -> None:
    assert policy_for(condition, fill_or_kill) is expected


def test_required_fields() -> None:
    assert required_fields(OrderCondition.MARKET) == ("slippage",)
    assert required_fields(OrderCondition.STOP_LIMIT) == ("stop_price", "price")
    assert "trailing_distance" in required_fields(OrderCondition.TRAILING_STOP)


def _pool_draft(**changes: str) -> TicketDraft:
    values = {
        "pool": True,
        "base_price": "100",
        "min_price": "80",
        "max_price": "120",
        "primary_value": "10",
        "secondary_value": "150",
    }
    values.update(changes)
    return TicketDraft(**values)


def test_ranged_pool_payload() -> None:
    payload = build_pool_payload(_pool_draft(), _context())

    assert payload is not None
    body = payload.to_dict()
    assert body["price"] == "100"
    assert body["minPrice"] == "80"
    assert body["maxPrice"] == "120"
    assert body["feeRate"] == "0.0015"
    assert body["primaryPays"] == {"p1": "10"}
    assert body["secondaryPays"] == {"a1": "120", "a2": "30"}


def test_full_range_pool_omits_bounds() -> None:
    payload = build_pool_payload(_pool_draft(min_price="", max_price=""), _context())

    assert payload is not None
    body = payload.to_dict()
    assert "minPrice" not in body
    assert "maxPrice" not in body


@pytest.mark.parametrize(
    "changes",
    [
        {"min_price": "100"},
        {"max_price": "100"},
        {"min_price": "130", "max_price": "140"},
        {"base_price": "0"},
        {"primary_value": "51"},
        {"secondary_value": "0"},
        {"fee_rate": "150%"},
        {"fee_rate": "abc"},
    ],
)
def test_invalid_pool_drafts_are_rejected(changes: dict[str, str]) -> None:
    assert build_pool_payload(_pool_draft(**changes), _context()) is None


def test_pool_fee_rate_must_be_a_percent() -> None:
    assert build_pool_payload(_pool_draft(fee_rate="0.5"), _context()) is None

    payload = build_pool_payload(_pool_draft(fee_rate="50%"), _context())

    assert payload is not None
    assert payload.fee_rate == "0.5"


def test_pool_payload_requires_pool_mode() -> None:
    assert build_pool_payload(_pool_draft().evolve(pool=False), _context()) is None


def test_fee_bounds_follow_spending_side() -> None:
    tiers = AccountTier(
        primary=FeeTier(maker_fee=Decimal("0.003"), taker_fee=Decimal("0.004")),
        secondary=FeeTier(maker_fee=Decimal("0.001"), taker_fee=Decimal("0.002")),
    )

    buy = fee_bounds(TicketDraft(side=OrderSide.BUY), tiers)
    sell = fee_bounds(TicketDraft(side=OrderSide.SELL, condition=OrderCondition.LIMIT), tiers)

    assert (buy.min, buy.max) == (Decimal("0.001"), Decimal("0.002"))
    assert buy.relative_price == Decimal("0.01")
    assert (sell.min, sell.max) == (Decimal("0.003"), Decimal("0.004"))
    assert sell.relative_price == 0
    assert fee_bounds(TicketDraft(), None).max == 0
