"""Custom exceptions for the chart data pipeline.

Most failures are contained where they happen (a failed batch becomes an
empty batch, a bad record is dropped). These types mark the points where
that containment happens.
"""


class ChartError(Exception):
    """Base exception for all chart pipeline errors."""


class NetworkFailure(ChartError):
    """Raised when a REST request or stream connection fails.

    Upstream rate limits and 4xx/5xx responses are surfaced as this type.
    """


class ParseFailure(ChartError):
    """Raised when an upstream record cannot be parsed into a model."""


class SeriesOrderError(ChartError):
    """Raised when a mutation would break the candle series ordering invariant."""
