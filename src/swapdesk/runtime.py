"""Runtime wiring for one-shot command-line actions."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from swapdesk.config import Settings
from swapdesk.errors import SwapdeskError
from swapdesk.gateway.base import ChannelFactory, NotificationHandler
from swapdesk.gateway.channel import PipeChannel
from swapdesk.gateway.rest import SwapRestClient
from swapdesk.gateway.swap import SwapClient
from swapdesk.logging.alerts import AlertQueue
from swapdesk.logging.logger import HumanLogger
from swapdesk.logging.report import generate_series_report
from swapdesk.market.debounce import AssetSearch
from swapdesk.market.orderbook import OrderBook
from swapdesk.market.series import bars_from_rows
from swapdesk.state.sqlite_store import SqliteKeyValueStore
from swapdesk.state.store import KeyValueStore

ResultT = TypeVar("ResultT")


def build_channel_factory(settings: Settings, logger: HumanLogger) -> ChannelFactory:
    def factory(handler: NotificationHandler) -> PipeChannel:
        return PipeChannel(
            base_url=settings.swap_url,
            on_notification=handler,
            subroute=settings.trading_subroute,
            reconnect_delay=settings.reconnect_delay_seconds,
            logger=logger,
        )

    return factory


def build_client(
    settings: Settings,
    logger: HumanLogger,
    store: KeyValueStore,
    stream: bool = True,
) -> SwapClient:
    """Wire transport, channel, alerts and store into one client."""
    transport = SwapRestClient(
        base_url=settings.swap_url,
        timeout=settings.request_timeout_seconds,
        max_retries=settings.max_retries,
    )
    channel_factory = build_channel_factory(settings, logger) if stream else None
    alerts = AlertQueue(settings.alert_min_ms, settings.alert_max_ms, logger)
    return SwapClient(
        settings=settings,
        transport=transport,
        channel_factory=channel_factory,
        store=store,
        alerts=alerts,
        logger=logger,
    )


def run_action(
    settings: Settings,
    action: Callable[[SwapClient, HumanLogger], Awaitable[ResultT]],
    stream: bool = True,
) -> int:
    """Run one async action against a fresh client and map failures to an exit code."""
    logger = HumanLogger(level=settings.log_level)
    store = SqliteKeyValueStore(settings.state_db_path)
    client = build_client(settings, logger, store, stream=stream)

    async def _run() -> None:
        try:
            await action(client, logger)
        finally:
            await client.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        return 0
    except SwapdeskError as exc:
        logger.error(str(exc))
        return 1
    finally:
        store.close()
    return 0


def show_portfolio(settings: Settings, account: str, stream: bool = True) -> int:
    """Print balances, orders and pools for one account."""

    async def action(client: SwapClient, logger: HumanLogger) -> None:
        snapshot = await client.account_snapshot(account)
        for balance in snapshot.balances:
            logger.balance(client.symbol_of(balance.asset), balance.available, balance.unavailable)
        for order in snapshot.orders:
            logger.order(order.id, order.side.name, order.condition.name, order.value, order.progress)

    return run_action(settings, action, stream=stream)


def show_prices(settings: Settings, stream: bool = True) -> int:
    """Print the cached equity prices loaded at warm-up."""

    async def action(client: SwapClient, logger: HumanLogger) -> None:
        await client.ensure_ready()
        for symbol, descriptor in sorted(client.prices.items()):
            if symbol.startswith("__"):
                continue
            logger.price(symbol, descriptor.price.open, descriptor.price.close)

    return run_action(settings, action, stream=stream)


def show_levels(settings: Settings, market_id: str, pair_id: str, stream: bool = True) -> int:
    """Print the aggregated order book of one pair."""

    async def action(client: SwapClient, logger: HumanLogger) -> None:
        levels = await client.market_price_levels(market_id, pair_id)
        book = OrderBook()
        book.load(levels["ask"], levels["bid"])
        for level in reversed(book.asks):
            logger.level("ask", level.price, level.quantity)
        for level in book.bids:
            logger.level("bid", level.price, level.quantity)

    return run_action(settings, action, stream=stream)


def render_chart(settings: Settings, pair_id: str, stream: bool = True) -> int:
    """Write the pair's price and volume series to an HTML report."""

    async def action(client: SwapClient, logger: HumanLogger) -> None:
        rows = await client.market_price_series(pair_id, settings.series_interval_seconds)
        prices, volumes = bars_from_rows(rows)
        output = Path(settings.reports_dir) / f"pair_{pair_id}_{settings.series_interval_seconds}.html"
        path = generate_series_report(prices, volumes, str(output), title=f"Pair {pair_id}")
        logger.report(str(path))

    return run_action(settings, action, stream=stream)


def search_assets(settings: Settings, query: str, stream: bool = True) -> int:
    """Resolve an asset query through the debounced search box."""

    async def action(client: SwapClient, logger: HumanLogger) -> None:
        search = AssetSearch(client.asset_query, delay=settings.search_debounce_ms / 1000)
        task = search.type(query)
        if task is not None:
            await task
        for asset in search.results:
            logger.asset(client.symbol_of(asset), asset.id, client.whitelist_of(asset))

    return run_action(settings, action, stream=stream)
