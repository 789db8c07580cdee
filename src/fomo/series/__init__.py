"""Candle series store and its single-writer owner."""

from fomo.series.owner import SeriesOwner
from fomo.series.store import CandleSeriesStore

__all__ = ["CandleSeriesStore", "SeriesOwner"]
