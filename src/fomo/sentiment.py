"""FOMO sentiment index derived from the 8-hour funding rate.

The funding rate (percentage-decimal, e.g. 0.01 = 1% per 8h) is scaled to a
daily figure and bucketed into an integer index in [-3, 3]. The ladder has
no bucket for 0: any non-negative daily funding below 0.07 maps to -1.
"""

from decimal import Decimal

#: Daily funding thresholds, checked top-down. First match wins.
_LADDER: tuple[tuple[Decimal, int], ...] = (
    (Decimal("0.18"), 3),
    (Decimal("0.11"), 2),
    (Decimal("0.07"), 1),
    (Decimal("0"), -1),
    (Decimal("-0.14"), -2),
)
_FLOOR_INDEX = -3

NEUTRAL_COLOR = "#64748b"

_COLORS: dict[int, str] = {
    -3: "#ec4899",  # pink
    -2: "#c084fc",  # purple
    -1: "#facc15",  # yellow
    1: "#facc15",  # yellow
    2: "#fb923c",  # orange
    3: "#ef4444",  # red
}

_LABELS: dict[int, str] = {
    -3: "CAPITULATION",
    -2: "PANIC",
    -1: "UNCERTAIN",
    0: "BALANCE",
    1: "CANARY",
    2: "GREED",
    3: "FOMO",
}


def daily_funding(funding_8h: Decimal) -> Decimal:
    """Scale an 8-hour funding rate to a daily rate (three periods per day)."""
    return funding_8h * 3


def classify_daily(funding_daily: Decimal) -> int:
    """Bucket a daily funding rate into the sentiment ladder."""
    for threshold, index in _LADDER:
        if funding_daily >= threshold:
            return index
    return _FLOOR_INDEX


def sentiment_index(funding_8h: Decimal, premium: Decimal | None = None) -> int:
    """Return the sentiment index for an 8-hour funding rate.

    Args:
        funding_8h: Funding rate per 8h as a percentage-decimal.
        premium: Futures-over-spot premium in percent. Accepted for
            signature compatibility; it does not affect the index.

    Returns:
        Integer in [-3, 3], never 0.
    """
    return classify_daily(daily_funding(funding_8h))


def color_for(index: int) -> str:
    """Candle color for a sentiment index; unknown values get the neutral color."""
    return _COLORS.get(index, NEUTRAL_COLOR)


def label_for(index: int) -> str:
    """Human-readable name for a sentiment index, or "" if unknown."""
    return _LABELS.get(index, "")


def gauge_value(index: int) -> float:
    """Map an index in [-3, 3] onto a 0-100 gauge scale (-3 -> 0, 3 -> 100)."""
    return (index + 3) / 6 * 100
