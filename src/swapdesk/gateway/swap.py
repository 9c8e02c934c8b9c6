"""Swap client: session warm-up barrier, shared price caches, event dispatch and queries."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TypeVar

from swapdesk.config import Settings
from swapdesk.domain.events import SwapEvent, SwapReady, TradeUpdate, event_from_notification
from swapdesk.domain.models import (
    AccountSnapshot,
    AccountTier,
    AggregatedLevel,
    AggregatedMatch,
    AggregatedPair,
    AssetId,
    Balance,
    FeeTier,
    Market,
    MarketPolicy,
    Order,
    OrderCondition,
    OrderPolicy,
    OrderSide,
    PairStats,
    Pool,
    PriceDescriptor,
    PricePoint,
    optional_decimal,
)
from swapdesk.errors import GatewayError, SwapdeskError
from swapdesk.gateway.base import ChannelFactory, EventChannel, SwapTransport
from swapdesk.gateway.bus import EventBus
from swapdesk.gateway.rest import coerce_numbers, to_jsonable
from swapdesk.logging.alerts import AlertQueue
from swapdesk.logging.logger import HumanLogger
from swapdesk.market.series import series_rows
from swapdesk.numeric import ONE, ZERO, gt, safe_div, to_decimal
from swapdesk.state.store import KeyValueStore, MemoryStore

CACHE_PREFIX = "__swap__/"
PORTFOLIO_CACHE_KEY = f"{CACHE_PREFIX}portfolio"
WHITELIST_CACHE_KEY = f"{CACHE_PREFIX}whitelist"
ORDERBOOK_KEY = "__orderbook__"
BASE_PRICE_KEY = "__BASE__"

# Failures that degrade a single operation instead of propagating.
RECOVERABLE_ERRORS = (SwapdeskError, ValueError, TypeError, KeyError)

ResultT = TypeVar("ResultT")


@dataclass(frozen=True)
class OrderbookKey:
    """Selected order book: market plus the pair's asset ids."""

    market_id: str
    primary_asset_id: str
    secondary_asset_id: str

    def to_record(self) -> dict[str, str]:
        return {
            "marketId": self.market_id,
            "primaryAssetId": self.primary_asset_id,
            "secondaryAssetId": self.secondary_asset_id,
        }

    @classmethod
    def from_record(cls, record: Any) -> OrderbookKey | None:
        if not isinstance(record, Mapping):
            return None
        values = [record.get("marketId"), record.get("primaryAssetId"), record.get("secondaryAssetId")]
        if any(value in (None, "") for value in values):
            return None
        return cls(*(str(value) for value in values))


class SwapClient:
    """Application-wide swap session; construct once and pass it where needed."""

    def __init__(
        self,
        settings: Settings,
        transport: SwapTransport,
        channel_factory: ChannelFactory | None = None,
        store: KeyValueStore | None = None,
        alerts: AlertQueue | None = None,
        logger: HumanLogger | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.settings = settings
        self.transport = transport
        self.store = store if store is not None else MemoryStore()
        self.logger = logger
        self.alerts = alerts or AlertQueue(settings.alert_min_ms, settings.alert_max_ms, logger)
        self.bus = bus or EventBus()
        self.channel: EventChannel | None = channel_factory(self.dispatch) if channel_factory else None
        self.accounts = list(settings.accounts)
        self.prices: dict[str, PriceDescriptor] = {}
        self.markets_cache: list[Market] = []
        self.descriptors: list[dict[str, Any]] = []
        self.whitelist: frozenset[str] = frozenset()
        self.equity_asset = AssetId.from_handle(settings.equity_asset)
        self.orderbook: OrderbookKey | None = None
        self.ready = False
        self._waiters: list[asyncio.Future] | None = []

    async def ensure_ready(self) -> None:
        """Wait for the one-time warm-up; the first caller runs it."""
        if self._waiters is None:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        if len(self._waiters) == 1:
            await self.acquire()
        await waiter

    async def acquire(self) -> bool:
        """Open the channel and load the shared caches; waiters are released either way."""
        try:
            if self.channel is not None:
                connected = await self.channel.open(self.accounts)
                if not connected:
                    raise GatewayError("Connection failed")
            portfolio = await self._call("GET", "assets/portfolio", {}, barrier=False)
            self._load_portfolio(portfolio)
            self.whitelist = await self._fetch_whitelist()
            self.orderbook = OrderbookKey.from_record(self.store.get(ORDERBOOK_KEY))
            self._persist_caches(portfolio)
            self.ready = True
            if self.logger is not None:
                self.logger.ready(
                    self.equity_asset.symbol,
                    len(self.markets_cache),
                    len(self.descriptors),
                    len(self.prices),
                )
            self.bus.publish(SwapReady(data={"equityAsset": self.equity_asset.symbol}))
            return True
        except RECOVERABLE_ERRORS as exc:
            self.alerts.error(f"Swap server error: {exc}")
            self._restore_caches()
            return False
        finally:
            self._release_waiters()

    async def close(self) -> None:
        if self.channel is not None:
            await self.channel.close()
        await asyncio.to_thread(self.transport.close)

    async def subscribe_accounts(self, accounts: list[str]) -> bool:
        """Replace the streamed account set and resubscribe the channel."""
        self.accounts = list(accounts)
        if self.channel is None:
            return False
        return await self.channel.open(self.accounts)

    def dispatch(self, kind: str, data: dict[str, Any]) -> SwapEvent:
        """Turn a channel notification into a typed event and fan it out."""
        event = event_from_notification(kind, data)
        if isinstance(event, TradeUpdate) and event.secondary_base == self.equity_asset.symbol:
            self._apply_trade_price(event)
        self.bus.publish(event)
        return event

    def price_of(self, primary: AssetId, secondary: AssetId | None = None) -> PricePoint:
        """Equity-denominated price, or the cross price when ``secondary`` is given."""
        primary_entry = self.prices.get(self.symbol_of(primary))
        if secondary is None:
            return primary_entry.price if primary_entry is not None else PricePoint()
        secondary_entry = self.prices.get(self.symbol_of(secondary))
        if primary_entry is None or secondary_entry is None:
            return PricePoint()
        return PricePoint(
            open=_ratio(primary_entry.price.open, secondary_entry.price.open),
            close=_ratio(primary_entry.price.close, secondary_entry.price.close),
        )

    def symbol_of(self, asset: AssetId) -> str:
        if asset.symbol:
            return asset.symbol
        for descriptor in self.descriptors:
            if str(descriptor.get("id")) == asset.id:
                return _descriptor_symbol(descriptor)
        return ""

    def whitelist_of(self, asset: AssetId) -> bool:
        """Native coins are trusted; tokens must be on the server whitelist."""
        if not asset.token or not asset.checksum:
            return True
        return asset.id in self.whitelist

    def set_orderbook(self, market_id: str, primary: AssetId, secondary: AssetId) -> OrderbookKey | None:
        key = None
        if market_id and primary.id and secondary.id:
            key = OrderbookKey(str(market_id), primary.id, secondary.id)
        if key != self.orderbook:
            self.orderbook = key
            if key is None:
                self.store.delete(ORDERBOOK_KEY)
            else:
                self.store.set(ORDERBOOK_KEY, key.to_record())
        return key

    def get_orderbook(self) -> OrderbookKey | None:
        return self.orderbook

    async def asset_query(self, query: str) -> list[AssetId]:
        result = await self._call("GET", "asset/query", {"query": query.strip()})
        return [AssetId.from_payload(item) for item in result or []]

    async def asset_prices(self) -> dict[str, PriceDescriptor]:
        return _to_price_table(await self._call("GET", "asset/prices", {}))

    async def asset_descriptors(self) -> list[dict[str, Any]]:
        result = await self._call("GET", "asset/descriptors", {})
        return _sorted_descriptors(result or [])

    async def markets(self) -> list[Market]:
        result = await self._call("GET", "markets", {})
        return [_to_market(item) for item in result or []]

    async def market(self, market_id: str) -> Market:
        return _to_market(await self._call("GET", "market", {"id": str(market_id)}))

    async def market_pairs(self, market_id: str) -> list[AggregatedPair]:
        result = await self._call("GET", "market/pairs", {"id": str(market_id)})
        return [_to_pair(item) for item in result or []]

    async def market_pair(self, market_id: str, primary: AssetId, secondary: AssetId) -> AggregatedPair:
        result = await self._call(
            "GET",
            "market/pair",
            {
                "id": str(market_id),
                "primaryAssetHash": primary.id,
                "secondaryAssetHash": secondary.id,
            },
        )
        return _to_pair(result)

    async def market_price_series(
        self,
        pair_id: str,
        interval: int,
        page: int | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> list[dict[str, Any]]:
        result = await self._call(
            "GET",
            "market/price/series",
            {
                "pairId": str(pair_id),
                "interval": str(interval),
                "page": page,
                "from": start,
                "to": end,
            },
        )
        return series_rows(result or [])

    async def market_price_levels(self, market_id: str, pair_id: str) -> dict[str, list[AggregatedLevel]]:
        result = await self._call(
            "GET",
            "market/price/levels",
            {"marketId": str(market_id), "pairId": str(pair_id)},
        )
        result = result or {}
        return {
            "ask": [_to_level(row) for row in result.get("ask") or []],
            "bid": [_to_level(row) for row in result.get("bid") or []],
        }

    async def market_assets(self, market_id: str, pair_id: str | None = None) -> dict[str, list[AssetId]]:
        result = await self._call(
            "GET",
            "market/assets",
            {"marketId": str(market_id), "pairId": pair_id},
        )
        result = result or {}
        return {
            "primary": [AssetId.from_payload(item) for item in result.get("primary") or []],
            "secondary": [AssetId.from_payload(item) for item in result.get("secondary") or []],
        }

    async def market_trades(
        self,
        market_id: str | None = None,
        pair_id: str | None = None,
        page: int | None = None,
    ) -> list[AggregatedMatch]:
        result = await self._call(
            "GET",
            "market/trades",
            {"marketId": market_id, "pairId": pair_id, "page": page},
        )
        return [_to_match(item) for item in result or []]

    async def account_portfolio(
        self,
        account: str | None = None,
        account_id: str | None = None,
        resync: bool | None = None,
    ) -> AccountSnapshot | None:
        result = await self._call(
            "GET",
            "account/portfolio",
            {"id": account_id, "account": account, "resync": resync},
        )
        if not result:
            return None
        return AccountSnapshot(
            balances=[_to_balance(item) for item in result.get("balances") or []],
            orders=[_to_order(item) for item in result.get("orders") or []],
            pools=[_to_pool(item) for item in result.get("pools") or []],
        )

    async def account_balances(
        self,
        account: str | None = None,
        account_id: str | None = None,
        resync: bool | None = None,
    ) -> list[Balance]:
        result = await self._call(
            "GET",
            "account/balances",
            {"id": account_id, "account": account, "resync": resync},
        )
        return [_to_balance(item) for item in result or []]

    async def account_orders(
        self,
        account: str | None = None,
        account_id: str | None = None,
        market_id: str | None = None,
        pair_id: str | None = None,
        active: bool | None = None,
        page: int | None = None,
    ) -> list[Order]:
        result = await self._call(
            "GET",
            "account/orders",
            {
                "id": account_id,
                "account": account,
                "marketId": market_id,
                "pairId": pair_id,
                "active": active,
                "page": page,
            },
        )
        return [_to_order(item) for item in result or []]

    async def account_pools(
        self,
        account: str | None = None,
        account_id: str | None = None,
        market_id: str | None = None,
        pair_id: str | None = None,
        page: int | None = None,
    ) -> list[Pool]:
        result = await self._call(
            "GET",
            "account/pools",
            {
                "id": account_id,
                "account": account,
                "marketId": market_id,
                "pairId": pair_id,
                "page": page,
            },
        )
        return [_to_pool(item) for item in result or []]

    async def account_tiers(
        self,
        account: str | None = None,
        account_id: str | None = None,
        market_id: str | None = None,
        pair_id: str | None = None,
    ) -> AccountTier:
        result = await self._call(
            "GET",
            "account/tiers",
            {"id": account_id, "account": account, "marketId": market_id, "pairId": pair_id},
        )
        return _to_tier(result or {})

    async def account_snapshot(self, account: str) -> AccountSnapshot:
        """Balances, orders and pools fetched independently; a failed part comes back empty."""
        balances, orders, pools = await asyncio.gather(
            self._guarded(self.account_balances(account=account), [], "balances"),
            self._guarded(self.account_orders(account=account), [], "orders"),
            self._guarded(self.account_pools(account=account), [], "pools"),
        )
        if self.logger is not None:
            self.logger.portfolio(account, len(balances), len(orders), len(pools))
        return AccountSnapshot(balances=balances, orders=orders, pools=pools)

    async def authorize_order_creation(self, payload: Any) -> Any:
        return await self._call("POST", "authorize/order/creation", _body(payload))

    async def authorize_order_deletion(self, payload: Any) -> Any:
        return await self._call("POST", "authorize/order/deletion", _body(payload))

    async def authorize_pool_creation(self, payload: Any) -> Any:
        return await self._call("POST", "authorize/pool/creation", _body(payload))

    async def authorize_pool_deletion(self, payload: Any) -> Any:
        return await self._call("POST", "authorize/pool/deletion", _body(payload))

    async def _call(
        self,
        method: str,
        location: str,
        args: Mapping[str, Any] | None,
        barrier: bool = True,
    ) -> Any:
        if barrier:
            await self.ensure_ready()
        if self.logger is not None:
            self.logger.request(method, location)
        return await asyncio.to_thread(self.transport.request, method, location, args)

    async def _guarded(self, operation: Awaitable[ResultT], fallback: ResultT, label: str) -> ResultT:
        try:
            return await operation
        except RECOVERABLE_ERRORS as exc:
            self.alerts.error(f"Failed to load {label}: {exc}")
            return fallback

    async def _fetch_whitelist(self) -> frozenset[str]:
        try:
            result = await self._call("GET", "asset/whitelist", {}, barrier=False)
        except RECOVERABLE_ERRORS:
            return frozenset()
        if not isinstance(result, list):
            return frozenset()
        return frozenset(str(item) for item in result)

    def _load_portfolio(self, portfolio: Any) -> None:
        if not isinstance(portfolio, Mapping):
            raise GatewayError("Portfolio snapshot is missing")
        prices = _to_price_table(portfolio.get("prices") or {})
        markets = [_to_market(item) for item in portfolio.get("markets") or []]
        descriptors = _sorted_descriptors(portfolio.get("descriptors") or [])
        self.prices = prices
        self.markets_cache = markets
        self.descriptors = descriptors
        base_entry = prices.get(BASE_PRICE_KEY)
        if base_entry is not None and base_entry.base:
            self.equity_asset = AssetId.from_handle(base_entry.base)

    def _persist_caches(self, portfolio: Any) -> None:
        self.store.set(PORTFOLIO_CACHE_KEY, to_jsonable(portfolio))
        self.store.set(WHITELIST_CACHE_KEY, sorted(self.whitelist))

    def _restore_caches(self) -> None:
        cached = self.store.get(PORTFOLIO_CACHE_KEY)
        if isinstance(cached, Mapping):
            try:
                self._load_portfolio(coerce_numbers(cached))
            except RECOVERABLE_ERRORS as exc:
                if self.logger is not None:
                    self.logger.warning(f"cached portfolio unusable: {exc}")
        whitelist = self.store.get(WHITELIST_CACHE_KEY)
        if isinstance(whitelist, list):
            self.whitelist = frozenset(str(item) for item in whitelist)
        self.orderbook = OrderbookKey.from_record(self.store.get(ORDERBOOK_KEY))

    def _release_waiters(self) -> None:
        waiters, self._waiters = self._waiters or [], None
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    def _apply_trade_price(self, event: TradeUpdate) -> None:
        price = event.price
        if not gt(price):
            return
        raw_asset = event.data.get("primaryAsset")
        if raw_asset is None:
            return
        asset = AssetId.from_payload(raw_asset)
        symbol = self.symbol_of(asset)
        if not symbol:
            return
        whitelist = self.whitelist_of(asset)
        previous = self.prices.get(symbol)
        if previous is not None and previous.whitelist and not whitelist:
            return
        open_price = previous.price.open if previous is not None and previous.price.open is not None else price
        base = previous.base if previous is not None and previous.base else self.equity_asset.chain
        self.prices = {
            **self.prices,
            symbol: PriceDescriptor(
                asset=asset,
                price=PricePoint(open=open_price, close=price),
                whitelist=whitelist,
                base=base,
            ),
        }
        if self.logger is not None:
            self.logger.price_update(symbol, price, whitelist)


def _ratio(numerator: Decimal | None, denominator: Decimal | None) -> Decimal | None:
    if numerator is None or denominator is None:
        return None
    result = safe_div(numerator, denominator)
    return None if result.is_nan() else result


def _body(payload: Any) -> dict[str, Any]:
    if hasattr(payload, "to_dict"):
        return payload.to_dict()
    return dict(payload)


def _amount(value: Any) -> Decimal:
    parsed = optional_decimal(value)
    return parsed if parsed is not None else ZERO


def _descriptor_symbol(descriptor: Mapping[str, Any]) -> str:
    return str(descriptor.get("token") or descriptor.get("chain") or "")


def _sorted_descriptors(items: Any) -> list[dict[str, Any]]:
    descriptors = [dict(item) for item in items if isinstance(item, Mapping)]
    return sorted(descriptors, key=lambda item: _descriptor_symbol(item).lower())


def _to_price_table(raw: Any) -> dict[str, PriceDescriptor]:
    table: dict[str, PriceDescriptor] = {}
    if not isinstance(raw, Mapping):
        return table
    for symbol, item in raw.items():
        if not isinstance(item, Mapping):
            continue
        price = item.get("price") or {}
        table[str(symbol)] = PriceDescriptor(
            asset=None,
            price=PricePoint(
                open=optional_decimal(price.get("open")),
                close=optional_decimal(price.get("close")),
            ),
            whitelist=bool(item.get("whitelist", False)),
            base=str(item["base"]) if item.get("base") else None,
        )
    return table


def _to_market(item: Mapping[str, Any]) -> Market:
    try:
        policy = MarketPolicy(int(to_decimal(item.get("marketPolicy", 0))))
    except ValueError:
        policy = MarketPolicy.SPOT
    return Market(
        id=str(item.get("id")),
        account=str(item.get("account") or ""),
        policy=policy,
        pool_exit_fee=_amount(item.get("poolExitFee")),
        max_pool_fee_rate=optional_decimal(item.get("maxPoolFeeRate")) or ONE,
        raw=dict(item),
    )


def _to_pair(item: Mapping[str, Any]) -> AggregatedPair:
    price = item.get("price") or {}
    return AggregatedPair(
        id=str(item.get("id")),
        primary_asset=AssetId.from_payload(item.get("primaryAsset")),
        secondary_asset=AssetId.from_payload(item.get("secondaryAsset")),
        secondary_base=str(item["secondaryBase"]) if item.get("secondaryBase") else None,
        launch_time=int(to_decimal(item.get("launchTime") or 0)),
        price=PairStats(
            open=optional_decimal(price.get("open")),
            low=optional_decimal(price.get("low")),
            high=optional_decimal(price.get("high")),
            close=optional_decimal(price.get("close")),
            order_liquidity=optional_decimal(price.get("orderLiquidity")),
            pool_liquidity=optional_decimal(price.get("poolLiquidity")),
            total_liquidity=optional_decimal(price.get("totalLiquidity")),
            order_volume=optional_decimal(price.get("orderVolume")),
            pool_volume=optional_decimal(price.get("poolVolume")),
            total_volume=optional_decimal(price.get("totalVolume")),
        ),
    )


def _to_level(row: Any) -> AggregatedLevel:
    return AggregatedLevel(id=int(to_decimal(row[0])), price=to_decimal(row[1]), quantity=to_decimal(row[2]))


def _to_match(item: Mapping[str, Any]) -> AggregatedMatch:
    millis = float(to_decimal(item.get("time") or 0))
    return AggregatedMatch(
        time=datetime.fromtimestamp(millis / 1000, tz=UTC),
        account=str(item.get("account") or ""),
        side=OrderSide(int(to_decimal(item.get("side") or 0))),
        price=_amount(item.get("price")),
        quantity=_amount(item.get("quantity")),
    )


def _to_balance(item: Mapping[str, Any]) -> Balance:
    return Balance(
        asset=AssetId.from_payload(item.get("asset")),
        available=_amount(item.get("available")),
        unavailable=_amount(item.get("unavailable")),
        price=optional_decimal(item.get("price")),
    )


def _to_order(item: Mapping[str, Any]) -> Order:
    return Order(
        id=str(item.get("id")),
        market_id=str(item.get("marketId")),
        primary_asset=AssetId.from_payload(item.get("primaryAsset")),
        secondary_asset=AssetId.from_payload(item.get("secondaryAsset")),
        condition=OrderCondition(int(to_decimal(item.get("condition") or 0))),
        side=OrderSide(int(to_decimal(item.get("side") or 0))),
        policy=OrderPolicy(int(to_decimal(item.get("policy") or 0))),
        starting_value=_amount(item.get("startingValue")),
        value=_amount(item.get("value")),
        active=bool(item.get("active", True)),
        price=optional_decimal(item.get("price")),
        stop_price=optional_decimal(item.get("stopPrice")),
        filling_price=optional_decimal(item.get("fillingPrice")),
        slippage=optional_decimal(item.get("slippage")),
        trailing_step=optional_decimal(item.get("trailingStep")),
        trailing_distance=optional_decimal(item.get("trailingDistance")),
    )


def _to_pool(item: Mapping[str, Any]) -> Pool:
    return Pool(
        id=str(item.get("id")),
        market_id=str(item.get("marketId")),
        primary_asset=AssetId.from_payload(item.get("primaryAsset")),
        secondary_asset=AssetId.from_payload(item.get("secondaryAsset")),
        primary_value=_amount(item.get("primaryValue")),
        secondary_value=_amount(item.get("secondaryValue")),
        liquidity=_amount(item.get("liquidity")),
        price=_amount(item.get("price")),
        fee_rate=_amount(item.get("feeRate")),
        exit_fee=_amount(item.get("exitFee")),
        primary_revenue=_amount(item.get("primaryRevenue")),
        secondary_revenue=_amount(item.get("secondaryRevenue")),
        min_price=optional_decimal(item.get("minPrice")),
        max_price=optional_decimal(item.get("maxPrice")),
        active=bool(item.get("active", True)),
    )


def _to_fee_tier(item: Any) -> FeeTier:
    if not isinstance(item, Mapping):
        return FeeTier()
    return FeeTier(
        volume=optional_decimal(item.get("volume")),
        maker_fee=optional_decimal(item.get("makerFee")),
        taker_fee=optional_decimal(item.get("takerFee")),
    )


def _to_tier(item: Mapping[str, Any]) -> AccountTier:
    return AccountTier(primary=_to_fee_tier(item.get("primary")), secondary=_to_fee_tier(item.get("secondary")))
