"""Exchange payload parsing helpers.

All prices and rates come out as Decimal. Malformed records raise
ParseFailure so callers can drop them and keep the rest of a batch.
"""

from decimal import Decimal, InvalidOperation

from fomo.exceptions import ParseFailure
from fomo.models import FundingSample, RawCandle

#: Binance reports funding as a fraction (0.0001 = 0.01%). The chart works
#: in percentage-decimals, so exchange values are scaled by 100.
FUNDING_PERCENT_SCALE = Decimal("100")


def to_decimal(value: object) -> Decimal:
    """Convert an exchange number (str, int or float) to a finite Decimal."""
    if value is None or isinstance(value, bool):
        raise ParseFailure(f"not a number: {value!r}")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ParseFailure(f"not a number: {value!r}") from e
    if not result.is_finite():
        raise ParseFailure(f"not a finite number: {value!r}")
    return result


def parse_kline(row: list, interval_ms: int) -> RawCandle:
    """Parse one kline row into a RawCandle.

    Accepts the native Binance shape (close time at index 6) and the
    six-column ccxt shape, where close time is derived from the interval.
    """
    if not isinstance(row, (list, tuple)) or len(row) < 5:
        raise ParseFailure(f"malformed kline: {row!r}")

    try:
        open_time = int(row[0])
    except (TypeError, ValueError) as e:
        raise ParseFailure(f"malformed kline open time: {row!r}") from e

    close_time = open_time + interval_ms - 1
    if len(row) > 6 and isinstance(row[6], int) and not isinstance(row[6], bool):
        close_time = row[6]

    candle = RawCandle(
        open_time=open_time,
        close_time=close_time,
        open=to_decimal(row[1]),
        high=to_decimal(row[2]),
        low=to_decimal(row[3]),
        close=to_decimal(row[4]),
    )
    if candle.high < candle.low:
        raise ParseFailure(f"kline high below low: {row!r}")
    return candle


def parse_funding_record(record: dict) -> FundingSample:
    """Parse a funding history record (ccxt or raw Binance) into a sample."""
    if not isinstance(record, dict):
        raise ParseFailure(f"malformed funding record: {record!r}")

    raw_time = record.get("timestamp", record.get("fundingTime"))
    try:
        time_ms = int(raw_time)
    except (TypeError, ValueError) as e:
        raise ParseFailure(f"malformed funding time: {record!r}") from e

    rate = to_decimal(record.get("fundingRate")) * FUNDING_PERCENT_SCALE
    return FundingSample(time=time_ms, rate_8h=rate)


def extract_current_funding(snapshot: dict) -> Decimal | None:
    """Pull the latest funding rate out of a premium-index snapshot.

    Prefers the exchange's raw ``lastFundingRate`` field, then the unified
    ``fundingRate``. Returns None when neither is present so callers can
    fall back to the history endpoint.
    """
    if not isinstance(snapshot, dict):
        return None
    info = snapshot.get("info") or {}
    raw = info.get("lastFundingRate")
    if raw is None:
        raw = snapshot.get("fundingRate")
    if raw is None:
        return None
    return to_decimal(raw) * FUNDING_PERCENT_SCALE
