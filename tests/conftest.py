"""Shared test fixtures for the FOMO chart service."""

from unittest.mock import AsyncMock

import pytest

from fomo.config import (
    AppSettings,
    ExchangeSettings,
    FundingSettings,
    LiveFeedSettings,
    PaginationSettings,
)


@pytest.fixture
def exchange_settings() -> ExchangeSettings:
    """Exchange settings with fast retries for tests."""
    return ExchangeSettings(
        batch_size=3,
        background_batches=2,
        max_retries=3,
        retry_base_delay=0.0,
    )


@pytest.fixture
def live_settings() -> LiveFeedSettings:
    """Live feed settings with instant reconnects."""
    return LiveFeedSettings(
        max_reconnect_attempts=2,
        reconnect_base_delay=0.0,
    )


@pytest.fixture
def mock_settings(exchange_settings: ExchangeSettings, live_settings: LiveFeedSettings) -> AppSettings:
    """Return AppSettings with test defaults (no seed file, fast timers)."""
    return AppSettings(
        log_level="DEBUG",
        exchange=exchange_settings,
        funding=FundingSettings(seed_path=None, poll_interval=3600.0),
        live=live_settings,
        pagination=PaginationSettings(check_interval=3600.0, buffer_candles=1),
    )


@pytest.fixture
def mock_client() -> AsyncMock:
    """Market data client whose endpoints return empty payloads."""
    client = AsyncMock()
    client.fetch_klines = AsyncMock(return_value=[])
    client.fetch_funding_history = AsyncMock(return_value=[])
    client.fetch_current_funding = AsyncMock(return_value={})
    return client
