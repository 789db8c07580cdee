"""Turn raw futures klines into colored candles.

Each candle's funding rate is the aligned sample nearest its close time,
except the newest candle of a fresh load, which takes the live funding
value directly (the stored timeline may lag behind it).
"""

from decimal import Decimal

from fomo.funding.aligner import FundingAligner
from fomo.models import Candle, RawCandle
from fomo.sentiment import color_for, sentiment_index

_HUNDRED = Decimal("100")


def compute_premium(futures: Decimal, spot: Decimal | None) -> Decimal | None:
    """Futures-over-spot premium in percent, or None without a usable spot price."""
    if spot is None or spot <= 0:
        return None
    return (futures - spot) / spot * _HUNDRED


def build_candle(
    raw: RawCandle,
    funding_8h: Decimal,
    spot: RawCandle | None = None,
) -> Candle:
    """Build one candle from a futures kline, its funding rate and matching spot kline."""
    index = sentiment_index(funding_8h)
    spot_close = spot.close if spot is not None else None
    return Candle(
        open_time=raw.open_time,
        close_time=raw.close_time,
        open=raw.open,
        high=raw.high,
        low=raw.low,
        close=raw.close,
        funding_rate_8h=funding_8h,
        sentiment_index=index,
        color=color_for(index),
        spot_open=spot.open if spot is not None else None,
        spot_close=spot_close,
        premium=compute_premium(raw.close, spot_close),
    )


def build_candles(
    futures: list[RawCandle],
    aligner: FundingAligner,
    spot_by_open_time: dict[int, RawCandle] | None = None,
    latest_funding: Decimal | None = None,
) -> list[Candle]:
    """Build candles for an ascending batch of futures klines.

    Args:
        futures: Futures klines, oldest first.
        aligner: Funding timeline used for every candle's rate lookup.
        spot_by_open_time: Spot klines keyed by open time, if loaded.
        latest_funding: When given, used for the last candle instead of a
            timeline lookup. Only pass this for the newest batch.
    """
    spot_lookup = spot_by_open_time or {}
    candles: list[Candle] = []
    last = len(futures) - 1
    for i, raw in enumerate(futures):
        if i == last and latest_funding is not None:
            funding = latest_funding
        else:
            funding = aligner.nearest_funding(raw.close_time)
        candles.append(build_candle(raw, funding, spot_lookup.get(raw.open_time)))
    return candles
