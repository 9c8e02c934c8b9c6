"""Swap server transport, event channel and client."""

from .base import EventChannel, SwapTransport
from .bus import EventBus
from .channel import PipeChannel
from .rest import SwapRestClient
from .swap import OrderbookKey, SwapClient

__all__ = [
    "EventBus",
    "EventChannel",
    "OrderbookKey",
    "PipeChannel",
    "SwapClient",
    "SwapRestClient",
    "SwapTransport",
]
