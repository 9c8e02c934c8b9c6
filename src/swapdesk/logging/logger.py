"""Concise human-readable session logger."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from swapdesk.numeric import fmt, to_decimal


class HumanLogger:
    """Console logger with fixed line types."""

    def __init__(self, level: str = "INFO") -> None:
        self._logger = logging.getLogger("swapdesk")
        self._logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        self._logger.propagate = False
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s | %(message)s", "%Y-%m-%d %H:%M:%S")
            handler.setFormatter(formatter)
            self._logger.addHandler(handler)

    def ready(self, equity_asset: str, markets: int, descriptors: int, prices: int) -> None:
        self._logger.info(
            "ready | equity %s | markets %s | assets %s | prices %s",
            equity_asset,
            markets,
            descriptors,
            prices,
        )

    def channel(self, status: str, detail: str | None = None) -> None:
        parts = [f"channel | {status}"]
        if detail:
            parts.append(detail)
        self._logger.info(" | ".join(parts))

    def request(self, method: str, location: str, details: Mapping[str, Any] | None = None) -> None:
        parts = [f"request | {method.upper()} {location}"]
        if details:
            parts.extend(f"{key} {value}" for key, value in details.items() if value is not None)
        self._logger.debug(" | ".join(parts))

    def price_update(self, symbol: str, close: Decimal, whitelist: bool) -> None:
        self._logger.debug(
            "price | %s | close %s%s",
            symbol,
            self._format_amount(close),
            "" if whitelist else " | unlisted",
        )

    def price(self, symbol: str, open_price: Decimal | None, close: Decimal | None) -> None:
        parts = [f"price | {symbol}"]
        parts.append(f"open {self._format_amount(open_price)}")
        parts.append(f"close {self._format_amount(close)}")
        change = self._change(open_price, close)
        if change is not None:
            parts.append(f"chg {change * 100:+.2f}%")
        self._logger.info(" | ".join(parts))

    def portfolio(self, account: str, balances: int, orders: int, pools: int) -> None:
        self._logger.info(
            "portfolio | %s | balances %s | orders %s | pools %s",
            self._short_id(account),
            balances,
            orders,
            pools,
        )

    def balance(self, symbol: str, available: Decimal, unavailable: Decimal) -> None:
        self._logger.info(
            "balance | %s | available %s | locked %s",
            symbol,
            self._format_amount(available),
            self._format_amount(unavailable),
        )

    def order(self, order_id: str, side: str, condition: str, value: Decimal, progress: Decimal) -> None:
        self._logger.info(
            "order | %s | %s %s | value %s | filled %s%%",
            self._short_id(order_id),
            side.lower(),
            condition.lower(),
            self._format_amount(value),
            f"{float(progress) * 100:.2f}",
        )

    def level(self, side: str, price: Decimal, quantity: Decimal) -> None:
        self._logger.info(
            "level | %s | price %s | qty %s",
            side,
            self._format_amount(price),
            self._format_amount(quantity),
        )

    def alert(self, kind: str, message: str, count: int = 1) -> None:
        line = f"alert | {kind} | {message}"
        if count > 1:
            line = f"{line} | x{count}"
        if kind == "error":
            self._logger.error(line)
        elif kind == "warning":
            self._logger.warning(line)
        else:
            self._logger.info(line)

    def asset(self, symbol: str, asset_id: str, whitelist: bool) -> None:
        self._logger.info(
            "asset | %s | %s%s",
            symbol or "?",
            self._short_id(asset_id),
            "" if whitelist else " | unlisted",
        )

    def report(self, path: str) -> None:
        self._logger.info("report | %s", path)

    def warning(self, message: str) -> None:
        self._logger.warning("warning | %s", message)

    def error(self, message: str) -> None:
        self._logger.error("error | %s", message)

    @staticmethod
    def _short_id(value: str | None, head: int = 10, tail: int = 6) -> str:
        if not value:
            return ""
        text = str(value)
        if len(text) <= head + tail + 1:
            return text
        return f"{text[:head]}...{text[-tail:]}"

    @staticmethod
    def _format_amount(value: Any) -> str:
        if value is None:
            return "n/a"
        parsed = to_decimal(value)
        if parsed.is_nan():
            return "n/a"
        return fmt(parsed)

    @staticmethod
    def _change(open_price: Decimal | None, close: Decimal | None) -> float | None:
        if open_price is None or close is None or open_price.is_nan() or close.is_nan():
            return None
        if open_price == 0:
            return None
        return float((close - open_price) / open_price)
