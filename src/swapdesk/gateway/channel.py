"""Reconnecting websocket pipe carrying server notifications."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from swapdesk.gateway.base import NotificationHandler
from swapdesk.logging.logger import HumanLogger

RECONNECT_DELAY_SECONDS = 5.0
CONNECT_ID = "connect"


def pipe_url(base_url: str) -> str:
    """``http(s)://host/api`` becomes ``ws(s)://host/api/pipe``."""
    base = base_url.rstrip("/")
    if base.startswith("http"):
        base = "ws" + base[len("http"):]
    return f"{base}/pipe"


class PipeChannel:
    """Websocket channel that resubscribes on close and backs off on connect failure.

    A connection that drops after opening is re-established immediately with
    the last account set. A connection that cannot be opened is retried after
    ``reconnect_delay`` seconds, but only while ``route()`` still points into
    the trading section.
    """

    def __init__(
        self,
        base_url: str,
        on_notification: NotificationHandler,
        route: Callable[[], str] | None = None,
        subroute: str = "/swap",
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        logger: HumanLogger | None = None,
        connect: Callable[..., Any] | None = None,
    ) -> None:
        self.url = pipe_url(base_url)
        self.on_notification = on_notification
        self.subroute = subroute
        self.route = route or (lambda: subroute)
        self.reconnect_delay = reconnect_delay
        self.logger = logger
        self._connect = connect or websockets.connect
        self.pipe_id: str | None = None
        self.accounts: list[str] = []
        self._socket: Any = None
        self._reader: asyncio.Task | None = None
        self._retry: asyncio.Task | None = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._socket is not None

    async def open(self, accounts: list[str]) -> bool:
        """Connect if needed, then (re)send the subscription for ``accounts``."""
        self.accounts = list(accounts)
        self._closed = False
        if self._socket is None:
            try:
                self._socket = await self._connect(self.url)
            except (OSError, WebSocketException) as exc:
                self._log("failed", f"{self.url} | {exc}")
                self._schedule_retry()
                return False
            self._log("connected", self.url)
            self._reader = asyncio.create_task(self._listen(self._socket))
        await self._subscribe()
        return True

    async def close(self) -> None:
        self._closed = True
        if self._retry is not None:
            self._retry.cancel()
            self._retry = None
        socket, self._socket = self._socket, None
        if socket is not None:
            await socket.close()
        reader, self._reader = self._reader, None
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
        self.pipe_id = None
        self._log("closed")

    def handle_message(self, raw: Any) -> None:
        """Route one frame: handshake replies set the pipe id, notifications fan out."""
        if not isinstance(raw, str):
            return
        try:
            data = json.loads(raw)
        except ValueError:
            return
        if not isinstance(data, dict) or "id" not in data:
            return
        notification = data.get("notification")
        if isinstance(notification, dict):
            kind = notification.get("type")
            if isinstance(kind, str):
                payload = notification.get("data")
                self.on_notification(kind, payload if isinstance(payload, dict) else {})
            return
        if data.get("id") == CONNECT_ID and "result" in data:
            result = data.get("result")
            if isinstance(result, dict) and result.get("pipeId") is not None:
                self.pipe_id = str(result["pipeId"])

    async def _subscribe(self) -> None:
        message = {
            "method": "post://pipe",
            "params": {"accounts": self.accounts},
            "id": CONNECT_ID,
        }
        try:
            await self._socket.send(json.dumps(message))
        except ConnectionClosed:
            return

    async def _listen(self, socket: Any) -> None:
        try:
            async for raw in socket:
                self.handle_message(raw)
        except ConnectionClosed:
            pass
        finally:
            if self._socket is socket:
                self._socket = None
        if self._closed:
            return
        self._log("reconnecting", self.url)
        await self.open(self.accounts)

    def _schedule_retry(self) -> None:
        if self._closed or not self.route().startswith(self.subroute):
            self._log("gave up", self.url)
            return
        self._retry = asyncio.create_task(self._retry_later())

    async def _retry_later(self) -> None:
        await asyncio.sleep(self.reconnect_delay)
        if self._closed or not self.route().startswith(self.subroute):
            return
        await self.open(self.accounts)

    def _log(self, status: str, detail: str | None = None) -> None:
        if self.logger is not None:
            self.logger.channel(status, detail)
