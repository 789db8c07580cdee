"""Abstract market data client interface.

The loader, live feed and pagination code depend only on this interface,
keeping Binance/ccxt details in the concrete implementation.
"""

from abc import ABC, abstractmethod

from fomo.models import Market


class MarketDataClient(ABC):
    """Abstract base class for read-only market data REST clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connections and load markets."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources (CRITICAL for ccxt async)."""
        ...

    @abstractmethod
    async def fetch_klines(
        self,
        market: Market,
        limit: int = 1000,
        end_time: int | None = None,
    ) -> list[list]:
        """Fetch up to ``limit`` klines for a market, oldest first.

        Returns rows shaped [open_time_ms, open, high, low, close, volume, ...].
        When ``end_time`` is given, only klines opening at or before it are
        returned; otherwise the newest klines.
        """
        ...

    @abstractmethod
    async def fetch_funding_history(self, limit: int = 1000) -> list[dict]:
        """Fetch historical funding records.

        Returns dicts with at least ``timestamp`` (ms) and ``fundingRate``
        (raw exchange fraction, e.g. 0.0001 = 0.01%).
        """
        ...

    @abstractmethod
    async def fetch_current_funding(self) -> dict:
        """Fetch the latest funding snapshot for the futures symbol.

        Returns the raw ccxt funding-rate structure including ``info``.
        """
        ...
