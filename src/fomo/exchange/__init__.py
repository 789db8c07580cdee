"""Exchange client abstraction and Binance implementation."""

from fomo.exchange.binance_client import BinanceClient
from fomo.exchange.client import MarketDataClient

__all__ = ["BinanceClient", "MarketDataClient"]
