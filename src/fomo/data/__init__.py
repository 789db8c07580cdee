"""Historical data loading and candle construction."""

from fomo.data.builder import build_candle, build_candles, compute_premium
from fomo.data.loader import (
    BackgroundLoad,
    HistoricalLoader,
    InitialLoad,
    merge_batches,
)

__all__ = [
    "BackgroundLoad",
    "HistoricalLoader",
    "InitialLoad",
    "build_candle",
    "build_candles",
    "compute_premium",
    "merge_batches",
]
