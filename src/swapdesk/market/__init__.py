"""Order book, chart series and debounced lookups."""

from .debounce import AssetSearch, Debouncer
from .orderbook import OrderBook, group_levels
from .series import (
    SeriesView,
    bucket,
    merge_price_series,
    merge_series,
    merge_volume_series,
)

__all__ = [
    "AssetSearch",
    "Debouncer",
    "OrderBook",
    "SeriesView",
    "bucket",
    "group_levels",
    "merge_price_series",
    "merge_series",
    "merge_volume_series",
]
