"""Tests for BinanceClient.

All tests use mocked ccxt exchange objects to avoid real API calls.
"""

from unittest.mock import AsyncMock

import pytest

from fomo.config import ExchangeSettings
from fomo.exchange.binance_client import BinanceClient
from fomo.models import Market


@pytest.fixture
def binance_client(exchange_settings: ExchangeSettings) -> BinanceClient:
    client = BinanceClient(exchange_settings)
    client._spot.fetch_ohlcv = AsyncMock(return_value=[[1, 1, 1, 1, 1, 1]])
    client._futures.fetch_ohlcv = AsyncMock(return_value=[[2, 2, 2, 2, 2, 2]])
    client._futures.fetch_funding_rate_history = AsyncMock(return_value=[])
    client._futures.fetch_funding_rate = AsyncMock(return_value={"fundingRate": 0.0001})
    client._spot.close = AsyncMock()
    client._futures.close = AsyncMock()
    return client


class TestBinanceClientInit:
    """Tests for BinanceClient initialization."""

    def test_rate_limit_enabled(self, exchange_settings: ExchangeSettings) -> None:
        client = BinanceClient(exchange_settings)
        assert client._spot.enableRateLimit is True
        assert client._futures.enableRateLimit is True


class TestBinanceClientDelegation:
    """Tests for methods that delegate to ccxt exchanges."""

    @pytest.mark.asyncio
    async def test_spot_klines_use_spot_exchange(self, binance_client: BinanceClient) -> None:
        rows = await binance_client.fetch_klines(Market.SPOT, limit=500)
        assert rows == [[1, 1, 1, 1, 1, 1]]
        binance_client._spot.fetch_ohlcv.assert_awaited_once_with(
            "BTC/USDT", timeframe="8h", limit=500, params={}
        )
        binance_client._futures.fetch_ohlcv.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_futures_klines_pass_end_time(self, binance_client: BinanceClient) -> None:
        await binance_client.fetch_klines(Market.FUTURES, limit=1000, end_time=999)
        binance_client._futures.fetch_ohlcv.assert_awaited_once_with(
            "BTC/USDT:USDT", timeframe="8h", limit=1000, params={"endTime": 999}
        )

    @pytest.mark.asyncio
    async def test_funding_history(self, binance_client: BinanceClient) -> None:
        await binance_client.fetch_funding_history(limit=1)
        binance_client._futures.fetch_funding_rate_history.assert_awaited_once_with(
            "BTC/USDT:USDT", limit=1
        )

    @pytest.mark.asyncio
    async def test_current_funding(self, binance_client: BinanceClient) -> None:
        snapshot = await binance_client.fetch_current_funding()
        assert snapshot == {"fundingRate": 0.0001}

    @pytest.mark.asyncio
    async def test_close_closes_both_exchanges(self, binance_client: BinanceClient) -> None:
        await binance_client.close()
        binance_client._spot.close.assert_awaited_once()
        binance_client._futures.close.assert_awaited_once()
