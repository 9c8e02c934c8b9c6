"""Gateway contracts consumed by the swap client."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

NotificationHandler = Callable[[str, dict[str, Any]], None]


class SwapTransport(Protocol):
    """Request/response access to the swap server."""

    def request(self, method: str, location: str, args: Mapping[str, Any] | None = None) -> Any:
        """Perform one call and return its decoded result."""

    def close(self) -> None:
        """Release transport resources."""


class EventChannel(Protocol):
    """Duplex notification stream."""

    pipe_id: str | None

    async def open(self, accounts: list[str]) -> bool:
        """Connect (or resubscribe) with ``accounts``; False when the connection failed."""

    async def close(self) -> None:
        """Stop the channel and any pending reconnect."""


ChannelFactory = Callable[[NotificationHandler], EventChannel]
