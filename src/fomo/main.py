"""Entry point for the FOMO chart service.

Wires the chart session to the Binance market data client and, optionally,
the FastAPI dashboard. When the dashboard is enabled (default), the session
and dashboard share a single asyncio event loop via uvicorn's programmatic
API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. BinanceClient (spot + futures REST)
4. ChartSession (loader, funding aligner, series store, live feed, pagination)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from fomo.config import AppSettings
from fomo.exchange.binance_client import BinanceClient
from fomo.logging import get_logger, setup_logging
from fomo.session import ChartSession


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the exchange client and chart session from settings.

    Note: Does NOT call exchange_client.connect() -- that happens in the
    lifespan (dashboard mode) or run() (non-dashboard mode).

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    exchange_client = BinanceClient(settings.exchange)
    session = ChartSession(settings, exchange_client)
    return {
        "exchange_client": exchange_client,
        "session": session,
    }


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to request a graceful shutdown.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("fomo.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage chart session lifecycle within the FastAPI application.

    On startup: connects to the exchange, starts the chart session, starts
    the dashboard update loop.

    On shutdown: cancels the update loop, stops the session, disconnects
    from the exchange.
    """
    from fomo.dashboard.update_loop import dashboard_update_loop

    logger = get_logger("fomo.main")
    settings = app.state.settings
    components = app.state.components

    app.state.update_interval = settings.dashboard.update_interval

    await components["exchange_client"].connect()
    await components["session"].start()
    app.state.session = components["session"]

    update_task = asyncio.create_task(dashboard_update_loop(app))

    logger.info(
        "lifespan_started",
        symbol=settings.exchange.symbol,
        interval=settings.exchange.interval,
    )

    yield

    update_task.cancel()
    try:
        await update_task
    except asyncio.CancelledError:
        pass

    await components["session"].stop()
    await components["exchange_client"].close()

    logger.info("fomo_chart_stopped")


async def run() -> None:
    """Run the FOMO chart service.

    When dashboard is enabled (DASHBOARD_ENABLED=true, the default):
    - Creates the FastAPI dashboard app with lifespan
    - Runs session and dashboard in a single asyncio event loop via uvicorn
    - Lifespan manages session startup/shutdown

    When dashboard is disabled (DASHBOARD_ENABLED=false):
    - Runs the session headless until SIGINT/SIGTERM
    """
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("fomo.main")

    components = _build_components(settings)

    if settings.dashboard.enabled:
        from fomo.dashboard.app import create_dashboard_app

        app = create_dashboard_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        stop_event = asyncio.Event()
        _setup_signal_handlers(stop_event)

        logger.info(
            "starting_without_dashboard",
            symbol=settings.exchange.symbol,
            interval=settings.exchange.interval,
            live=settings.live.enabled,
        )

        try:
            await components["exchange_client"].connect()
            await components["session"].start()
            await stop_event.wait()
        finally:
            await components["session"].stop()
            await components["exchange_client"].close()
            logger.info("fomo_chart_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
