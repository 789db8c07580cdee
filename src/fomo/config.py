"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict

#: Width of one candle in milliseconds for each supported interval.
INTERVAL_MS: dict[str, int] = {
    "1h": 60 * 60 * 1000,
    "4h": 4 * 60 * 60 * 1000,
    "8h": 8 * 60 * 60 * 1000,
    "1d": 24 * 60 * 60 * 1000,
}


class ExchangeSettings(BaseSettings):
    """Binance REST market data settings (spot + USDT-M futures)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    symbol: str = "BTCUSDT"  # exchange id, also used for stream names
    spot_symbol: str = "BTC/USDT"  # ccxt unified spot symbol
    futures_symbol: str = "BTC/USDT:USDT"  # ccxt unified linear perpetual symbol
    interval: str = "8h"
    batch_size: int = 1000  # Binance kline max per request
    background_batches: int = 5  # extra batches fetched after first paint
    funding_history_limit: int = 1000
    max_retries: int = 3
    retry_base_delay: float = 1.0

    @property
    def interval_ms(self) -> int:
        """Candle width in milliseconds for the configured interval."""
        return INTERVAL_MS[self.interval]


class FundingSettings(BaseSettings):
    """Funding rate sources: bulk seed dataset and live polling cadence."""

    model_config = SettingsConfigDict(env_prefix="FUNDING_")

    seed_path: str | None = None  # CSV of timestamp,rate (percentage-decimal)
    poll_interval: float = 300.0  # seconds between current-funding refreshes


class LiveFeedSettings(BaseSettings):
    """Streaming spot ticker and futures mark price connections."""

    model_config = SettingsConfigDict(env_prefix="LIVE_")

    enabled: bool = True
    spot_ws_url: str = "wss://stream.binance.com:9443/ws/{stream}@ticker"
    futures_ws_url: str = "wss://fstream.binance.com/ws/{stream}@markPrice"
    max_reconnect_attempts: int = 5
    reconnect_base_delay: float = 1.0  # seconds, multiplied by attempt number


class PaginationSettings(BaseSettings):
    """Backward pagination trigger settings."""

    model_config = SettingsConfigDict(env_prefix="PAGINATION_")

    check_interval: float = 1.0  # fallback timer period in seconds
    buffer_candles: int = 1  # trigger when the view is this many candles from the edge


class DashboardSettings(BaseSettings):
    """Display surface server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True
    update_interval: float = 1.0  # seconds between WebSocket pushes


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    exchange: ExchangeSettings = ExchangeSettings()
    funding: FundingSettings = FundingSettings()
    live: LiveFeedSettings = LiveFeedSettings()
    pagination: PaginationSettings = PaginationSettings()
    dashboard: DashboardSettings = DashboardSettings()
