"""Binance market data client implementation via ccxt async.

Wraps two ccxt exchanges: ``binance`` for spot klines and ``binanceusdm``
for USDT-M futures klines and funding data. Only public endpoints are used.
"""

import ccxt.async_support as ccxt_async

from fomo.config import ExchangeSettings
from fomo.exchange.client import MarketDataClient
from fomo.logging import get_logger
from fomo.models import Market

logger = get_logger(__name__)


class BinanceClient(MarketDataClient):
    """Concrete Binance spot + USDT-M futures client using ccxt async."""

    def __init__(self, settings: ExchangeSettings) -> None:
        self._settings = settings
        config: dict = {"enableRateLimit": True}
        self._spot = ccxt_async.binance(config)
        self._futures = ccxt_async.binanceusdm(config)

    def _exchange_for(self, market: Market) -> ccxt_async.Exchange:
        return self._spot if market is Market.SPOT else self._futures

    def _symbol_for(self, market: Market) -> str:
        if market is Market.SPOT:
            return self._settings.spot_symbol
        return self._settings.futures_symbol

    async def connect(self) -> None:
        """Load markets on both exchanges."""
        logger.info("connecting_to_binance")
        await self._spot.load_markets()
        await self._futures.load_markets()
        logger.info("binance_connected")

    async def close(self) -> None:
        """Clean up ccxt async resources. CRITICAL: must be called to avoid resource leaks."""
        logger.info("closing_binance_connection")
        await self._spot.close()
        await self._futures.close()
        logger.info("binance_connection_closed")

    async def fetch_klines(
        self,
        market: Market,
        limit: int = 1000,
        end_time: int | None = None,
    ) -> list[list]:
        """Fetch klines via ccxt fetch_ohlcv, passing endTime through params."""
        params: dict = {}
        if end_time is not None:
            params["endTime"] = end_time
        return await self._exchange_for(market).fetch_ohlcv(
            self._symbol_for(market),
            timeframe=self._settings.interval,
            limit=limit,
            params=params,
        )

    async def fetch_funding_history(self, limit: int = 1000) -> list[dict]:
        """Fetch funding rate history records for the futures symbol."""
        return await self._futures.fetch_funding_rate_history(
            self._settings.futures_symbol,
            limit=limit,
        )

    async def fetch_current_funding(self) -> dict:
        """Fetch the premium-index funding snapshot for the futures symbol."""
        return await self._futures.fetch_funding_rate(self._settings.futures_symbol)
