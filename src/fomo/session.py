"""Chart session -- wires the data pipeline for one asset and owns its lifecycle.

Startup order:
  1. Initial load: newest futures + spot batch and funding history (blocking)
  2. Funding timeline refresh, current funding lookup for the newest candle
  3. Series initialization through the series owner
  4. Background tasks: older history, funding history refresh
  5. Live feed + reconciler, pagination controller

Teardown cancels everything together. Every background completion checks
that the session is still active before submitting a mutation, and the
series owner itself ignores submissions after close.
"""

import asyncio
import time
from collections.abc import Callable
from decimal import Decimal

from fomo.config import AppSettings
from fomo.data.builder import build_candles
from fomo.data.loader import HistoricalLoader
from fomo.exchange.client import MarketDataClient
from fomo.funding.aligner import FundingAligner
from fomo.funding.seed import load_seed_funding
from fomo.live.feed import LiveFeedService
from fomo.live.reconciler import LiveFeedReconciler
from fomo.logging import bind_session_context, clear_session_context, get_logger
from fomo.models import RawCandle
from fomo.pagination import PaginationController
from fomo.series.owner import SeriesOwner
from fomo.series.store import CandleSeriesStore

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class ChartSession:
    """One asset's candle timeline: loading, live updates and pagination.

    Args:
        settings: Application-wide settings.
        client: Market data REST client (already connected).
        feed: Live feed service; built from settings when omitted.
        aligner: Funding timeline; seeded from settings when omitted.
        clock: Millisecond wall clock used for candle rollover.
    """

    def __init__(
        self,
        settings: AppSettings,
        client: MarketDataClient,
        feed: LiveFeedService | None = None,
        aligner: FundingAligner | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._settings = settings
        self._client = client
        self._store = CandleSeriesStore()
        self._owner = SeriesOwner(self._store)
        self._loader = HistoricalLoader(client, settings.exchange)
        self._aligner = aligner or FundingAligner(
            load_seed_funding(settings.funding.seed_path)
        )
        self._feed = feed or LiveFeedService(
            client,
            settings.exchange,
            settings.live,
            settings.funding,
        )
        self._reconciler = LiveFeedReconciler(
            self._owner,
            self._feed,
            settings.exchange.interval_ms,
            clock=clock,
        )
        self._pagination = PaginationController(
            self._loader,
            self._owner,
            self._aligner,
            settings.pagination,
            settings.exchange.interval_ms,
        )
        self._spot_by_open_time: dict[int, RawCandle] = {}
        self._tasks: list[asyncio.Task] = []  # type: ignore[type-arg]
        self._active = False
        self._background_done = False

    # ──────────────────────────────────────────────
    # Read access
    # ──────────────────────────────────────────────

    @property
    def store(self) -> CandleSeriesStore:
        return self._store

    @property
    def active(self) -> bool:
        return self._active

    @property
    def symbol(self) -> str:
        return self._settings.exchange.symbol

    @property
    def interval(self) -> str:
        return self._settings.exchange.interval

    def status(self) -> dict:
        """Summary of the session for the status endpoint."""
        latest = self._store.latest()
        return {
            "symbol": self.symbol,
            "interval": self.interval,
            "active": self._active,
            "candles": len(self._store),
            "oldest_time": self._store.oldest_time(),
            "latest_open_time": latest.open_time if latest is not None else None,
            "history_exhausted": self._store.exhausted,
            "background_history_loaded": self._background_done,
            "pagination_in_flight": self._pagination.in_flight,
            "pagination_batches": self._pagination.batches_loaded,
            "live_updates": self._reconciler.applied,
            "idle_streams": sorted(m.value for m in self._feed.idle_streams),
            "funding_8h": str(self._feed.funding_8h),
        }

    # ──────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Load the initial series and start every background writer."""
        if self._active:
            logger.warning("chart_session_already_running")
            return
        bind_session_context(self.symbol, self.interval)
        self._active = True
        await self._owner.start()

        initial = await self._loader.load_initial()
        if not self._active:
            return
        self._aligner.refresh(initial.funding)
        self._spot_by_open_time = {c.open_time: c for c in initial.spot}

        latest_funding = await self._current_funding()
        if not self._active:
            return
        candles = build_candles(
            initial.futures,
            self._aligner,
            self._spot_by_open_time,
            latest_funding=latest_funding,
        )
        await self._owner.submit(lambda store: store.initialize(candles))
        if not self._active:
            return
        logger.info(
            "chart_session_initialized",
            candles=len(candles),
            latest_funding=str(latest_funding) if latest_funding is not None else None,
        )

        futures_oldest = initial.futures[0].open_time if initial.futures else None
        spot_oldest = initial.spot[0].open_time if initial.spot else None
        self._tasks.append(
            asyncio.create_task(self._load_background(futures_oldest, spot_oldest))
        )
        self._tasks.append(asyncio.create_task(self._funding_history_loop()))

        if self._settings.live.enabled:
            await self._feed.connect()
            await self._reconciler.start()

        await self._pagination.start()

    async def stop(self) -> None:
        """Tear down timers, subscriptions, streams and background tasks together."""
        if not self._active:
            return
        self._active = False

        await self._pagination.stop()
        await self._reconciler.stop()
        await self._feed.disconnect()

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        await self._owner.close()
        logger.info("chart_session_stopped", candles=len(self._store))
        clear_session_context()

    async def on_range_change(self, visible_from_ms: int) -> bool:
        """Forward a viewport range change to the pagination controller."""
        if not self._active:
            return False
        return await self._pagination.on_range_change(visible_from_ms)

    # ──────────────────────────────────────────────
    # Internals
    # ──────────────────────────────────────────────

    async def _current_funding(self) -> Decimal | None:
        """Latest authoritative funding for the newest candle.

        Uses the live current-funding endpoint when the live feed is enabled,
        else the newest sample of the funding timeline.
        """
        rate: Decimal | None = None
        if self._settings.live.enabled:
            rate = await self._feed.refresh_funding()
        if rate is None and len(self._aligner):
            rate = self._aligner.latest_rate()
        return rate

    async def _load_background(
        self,
        futures_oldest: int | None,
        spot_oldest: int | None,
    ) -> None:
        """Fetch older history off the first-paint path and merge it when complete."""
        try:
            result = await self._loader.load_background(futures_oldest, spot_oldest)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("background_history_error", exc_info=True)
            return

        if not self._active:
            logger.debug("background_history_after_stop_ignored")
            return

        for raw in result.spot:
            self._spot_by_open_time[raw.open_time] = raw

        candles = build_candles(result.futures, self._aligner, self._spot_by_open_time)
        added = await self._owner.submit(lambda store: store.prepend_older(candles))
        if result.futures_exhausted:
            await self._owner.submit(lambda store: store.mark_exhausted())
        self._background_done = True
        logger.info(
            "background_history_merged",
            added=added,
            oldest=self._store.oldest_time(),
            exhausted=self._store.exhausted,
        )

    async def _funding_history_loop(self) -> None:
        """Periodically refresh the API funding dataset and rebuild the timeline."""
        while self._active:
            await asyncio.sleep(self._settings.funding.poll_interval)
            if not self._active:
                break
            try:
                samples = await self._loader.fetch_funding_history()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("funding_history_refresh_error", exc_info=True)
                continue
            if samples and self._active:
                self._aligner.refresh(samples)
