"""Shared data models for the chart data pipeline.

All prices and rates use Decimal. All times are Unix milliseconds.
Funding rates are stored as percentage-decimals: -0.063 means -6.3% per 8h.
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Market(str, Enum):
    """Which market a kline batch comes from."""

    SPOT = "spot"
    FUTURES = "futures"


@dataclass(frozen=True)
class RawCandle:
    """A single parsed kline record, before funding alignment."""

    open_time: int
    close_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal


@dataclass(frozen=True)
class FundingSample:
    """A timestamped funding observation."""

    time: int
    rate_8h: Decimal


@dataclass(frozen=True)
class Candle:
    """One colored candle in the series.

    Frozen: the trailing candle is updated by swapping in a new instance,
    so readers never observe a half-updated value.
    """

    open_time: int
    close_time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    funding_rate_8h: Decimal
    sentiment_index: int
    color: str
    spot_open: Decimal | None = None
    spot_close: Decimal | None = None
    premium: Decimal | None = None  # percent, futures close vs spot close

    def to_dict(self) -> dict:
        """Serialize for the display surface (Decimals as strings)."""
        return {
            "open_time": self.open_time,
            "close_time": self.close_time,
            "open": str(self.open),
            "high": str(self.high),
            "low": str(self.low),
            "close": str(self.close),
            "funding_rate_8h": str(self.funding_rate_8h),
            "sentiment_index": self.sentiment_index,
            "color": self.color,
            "spot_open": str(self.spot_open) if self.spot_open is not None else None,
            "spot_close": str(self.spot_close) if self.spot_close is not None else None,
            "premium": str(self.premium) if self.premium is not None else None,
        }


@dataclass(frozen=True)
class LivePricePoint:
    """Coalesced live update: latest spot, futures mark price and funding."""

    spot: Decimal
    futures: Decimal
    funding_8h: Decimal
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
