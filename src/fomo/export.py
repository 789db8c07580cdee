"""Flat exports of the candle series: CSV download and tooltip detail."""

from collections.abc import Iterable
from datetime import datetime, timezone

import pandas as pd

from fomo.models import Candle
from fomo.sentiment import color_for, label_for

CSV_COLUMNS = [
    "timestamp_iso",
    "open_time_ms",
    "close_time_ms",
    "futures_open",
    "futures_high",
    "futures_low",
    "futures_close",
    "spot_open",
    "spot_close",
    "premium_pct",
    "funding_8h",
    "fomo_index",
]


def export_filename(symbol: str, interval: str) -> str:
    """Download filename, e.g. fomo_finder_btcusdt_8h.csv."""
    return f"fomo_finder_{symbol.lower()}_{interval}.csv"


def _iso_ms(timestamp_ms: int) -> str:
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{timestamp_ms % 1000:03d}Z"


def _cell(value: object) -> str:
    return "" if value is None else str(value)


def candle_row(candle: Candle) -> dict[str, str]:
    """One export row; missing values become empty cells."""
    return {
        "timestamp_iso": _iso_ms(candle.open_time),
        "open_time_ms": str(candle.open_time),
        "close_time_ms": str(candle.close_time),
        "futures_open": _cell(candle.open),
        "futures_high": _cell(candle.high),
        "futures_low": _cell(candle.low),
        "futures_close": _cell(candle.close),
        "spot_open": _cell(candle.spot_open),
        "spot_close": _cell(candle.spot_close),
        "premium_pct": _cell(candle.premium),
        "funding_8h": _cell(candle.funding_rate_8h),
        "fomo_index": str(candle.sentiment_index),
    }


def to_csv(candles: Iterable[Candle]) -> str:
    """Render a series snapshot as CSV text with a fixed header row."""
    frame = pd.DataFrame([candle_row(c) for c in candles], columns=CSV_COLUMNS)
    return frame.to_csv(index=False, lineterminator="\n")


def tooltip_detail(candle: Candle) -> dict:
    """Full OHLC and sentiment detail for one candle, keyed for display."""
    label = label_for(candle.sentiment_index)
    index_display = (
        f"{candle.sentiment_index} {label}" if label else str(candle.sentiment_index)
    )
    return {
        "open_time": candle.open_time,
        "open": str(candle.open),
        "high": str(candle.high),
        "low": str(candle.low),
        "close": str(candle.close),
        "funding_rate_8h": str(candle.funding_rate_8h),
        "sentiment_index": candle.sentiment_index,
        "label": label,
        "index_display": index_display,
        "color": color_for(candle.sentiment_index),
    }
