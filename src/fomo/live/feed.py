"""Live feed service: spot ticker + futures mark price streams and funding polling.

Two websocket streams deliver the spot last price and the futures mark
price. The funding rate changes slowly, so it is polled over REST on a
separate cadence (default every 5 minutes). Whenever any of the three
updates and both prices are known, one LivePricePoint is emitted to every
subscriber.

Each stream reconnects with linearly increasing backoff up to a fixed
number of attempts, then goes idle for good. The series stays readable in
that state; it simply stops receiving live updates.
"""

import asyncio
import json
import time
from collections.abc import Callable
from decimal import Decimal

import websockets

from fomo.config import ExchangeSettings, FundingSettings, LiveFeedSettings
from fomo.exceptions import ParseFailure
from fomo.exchange.client import MarketDataClient
from fomo.exchange.types import extract_current_funding, parse_funding_record, to_decimal
from fomo.logging import get_logger
from fomo.models import LivePricePoint, Market

logger = get_logger(__name__)

#: JSON field carrying the current value in each stream's messages.
_PRICE_FIELDS = {
    Market.SPOT: "c",  # 24h ticker: last price
    Market.FUTURES: "p",  # markPrice stream: mark price
}

_CLOSED = object()


class LiveSubscription:
    """Cancellable, ordered stream of live price points for one consumer.

    Iterate with ``async for point in subscription``; iteration ends after
    cancel() or when the feed disconnects.
    """

    def __init__(self, on_cancel: Callable[["LiveSubscription"], None]) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_cancel = on_cancel
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, point: LivePricePoint) -> None:
        if not self._closed:
            self._queue.put_nowait(point)

    def cancel(self) -> None:
        """Stop receiving points. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self._on_cancel(self)

    def __aiter__(self) -> "LiveSubscription":
        return self

    async def __anext__(self) -> LivePricePoint:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class LiveFeedService:
    """Owns the live connections and fans coalesced updates out to subscribers.

    Usage:
        feed = LiveFeedService(client, exchange_settings, live_settings, funding_settings)
        await feed.connect()
        subscription = feed.subscribe()
        async for point in subscription:
            ...
        await feed.disconnect()
    """

    def __init__(
        self,
        client: MarketDataClient,
        exchange_settings: ExchangeSettings,
        live_settings: LiveFeedSettings,
        funding_settings: FundingSettings,
        connect: Callable = websockets.connect,
        sleep: Callable = asyncio.sleep,
    ) -> None:
        self._client = client
        self._exchange_settings = exchange_settings
        self._live_settings = live_settings
        self._funding_settings = funding_settings
        self._connect = connect
        self._sleep = sleep

        self._prices: dict[Market, Decimal] = {}
        self._funding_8h = Decimal("0")
        self._subscriptions: set[LiveSubscription] = set()
        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]
        self._idle: set[Market] = set()
        self._running = False

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def connect(self) -> None:
        """Open both price streams and start funding polling in the background."""
        if self._running:
            logger.warning("live_feed_already_running")
            return
        self._running = True
        self._idle.clear()

        stream = self._exchange_settings.symbol.lower()
        self._tasks = [
            asyncio.create_task(
                self._stream_loop(
                    Market.SPOT,
                    self._live_settings.spot_ws_url.format(stream=stream),
                )
            ),
            asyncio.create_task(
                self._stream_loop(
                    Market.FUTURES,
                    self._live_settings.futures_ws_url.format(stream=stream),
                )
            ),
            asyncio.create_task(self._funding_loop()),
        ]
        logger.info(
            "live_feed_started",
            funding_poll_interval=self._funding_settings.poll_interval,
        )

    async def disconnect(self) -> None:
        """Cancel streams and polling, and end every subscription."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        for subscription in list(self._subscriptions):
            subscription.cancel()
        self._subscriptions.clear()
        logger.info("live_feed_stopped")

    # ──────────────────────────────────────────────
    # Consumers
    # ──────────────────────────────────────────────

    def subscribe(self) -> LiveSubscription:
        """Register a consumer. Primed with the current point when one exists."""
        subscription = LiveSubscription(self._subscriptions.discard)
        self._subscriptions.add(subscription)
        current = self.current()
        if current is not None:
            subscription.push(current)
        return subscription

    def current(self) -> LivePricePoint | None:
        """Latest coalesced point, or None until both prices are known."""
        spot = self._prices.get(Market.SPOT)
        futures = self._prices.get(Market.FUTURES)
        if spot is None or futures is None:
            return None
        return LivePricePoint(
            spot=spot,
            futures=futures,
            funding_8h=self._funding_8h,
            timestamp=int(time.time() * 1000),
        )

    @property
    def funding_8h(self) -> Decimal:
        """Latest known funding rate (percentage-decimal)."""
        return self._funding_8h

    @property
    def idle_streams(self) -> set[Market]:
        """Streams that exhausted their reconnect attempts."""
        return set(self._idle)

    # ──────────────────────────────────────────────
    # Updates
    # ──────────────────────────────────────────────

    def update_price(self, market: Market, price: Decimal) -> None:
        """Record a price for one market and notify subscribers."""
        if price <= 0:
            return
        self._prices[market] = price
        self._notify()

    def update_funding(self, funding_8h: Decimal) -> None:
        """Record the latest funding rate and notify subscribers."""
        self._funding_8h = funding_8h
        self._notify()

    def _notify(self) -> None:
        point = self.current()
        if point is None:
            return
        for subscription in list(self._subscriptions):
            subscription.push(point)

    def handle_message(self, market: Market, message: str | bytes) -> None:
        """Parse one stream message and apply its price; bad messages are dropped."""
        try:
            data = json.loads(message)
            price = to_decimal(data[_PRICE_FIELDS[market]])
        except (ValueError, KeyError, TypeError, ParseFailure):
            logger.debug("live_message_dropped", market=market.value)
            return
        self.update_price(market, price)

    # ──────────────────────────────────────────────
    # Background loops
    # ──────────────────────────────────────────────

    async def _stream_loop(self, market: Market, url: str) -> None:
        """Consume one websocket stream, reconnecting with bounded backoff."""
        max_attempts = self._live_settings.max_reconnect_attempts
        attempts = 0

        while self._running:
            try:
                async with self._connect(url) as ws:
                    attempts = 0
                    logger.info("live_stream_connected", market=market.value)
                    async for message in ws:
                        self.handle_message(market, message)
                logger.info("live_stream_closed", market=market.value)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("live_stream_error", market=market.value, error=str(e))

            if not self._running:
                break
            if attempts >= max_attempts:
                self._idle.add(market)
                logger.error(
                    "live_stream_idle",
                    market=market.value,
                    attempts=attempts,
                )
                return

            attempts += 1
            delay = self._live_settings.reconnect_base_delay * attempts
            logger.info(
                "live_stream_reconnecting",
                market=market.value,
                attempt=attempts,
                delay=delay,
            )
            await self._sleep(delay)

    async def _funding_loop(self) -> None:
        """Poll the current funding rate until disconnected."""
        while self._running:
            try:
                await self.refresh_funding()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("funding_poll_error", exc_info=True)
            if self._running:
                await self._sleep(self._funding_settings.poll_interval)

    async def refresh_funding(self) -> Decimal | None:
        """Fetch the latest funding rate, falling back to the newest history record.

        Returns the new rate, or None when neither source produced one.
        """
        rate: Decimal | None = None
        try:
            rate = extract_current_funding(await self._client.fetch_current_funding())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("current_funding_failed", error=str(e))

        if rate is None:
            try:
                records = await self._client.fetch_funding_history(limit=1)
                if records:
                    rate = parse_funding_record(records[-1]).rate_8h
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning("funding_fallback_failed", error=str(e))

        if rate is None:
            return None

        self.update_funding(rate)
        logger.debug("funding_refreshed", funding_8h=str(rate))
        return rate
