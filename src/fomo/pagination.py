"""Pagination Controller: backfills history as the viewer scrolls left.

Watches the earliest visible time. When it comes within one candle width of
the oldest loaded candle, one more futures batch ending just before that
candle is fetched and prepended. A single in-flight flag makes repeated
triggers (range events plus the fallback timer) idempotent. A batch that
adds nothing before an unchanged head marks history exhausted and ends
pagination for good; a failed batch leaves the boundary untouched so a later
trigger retries.
"""

import asyncio

from fomo.config import PaginationSettings
from fomo.data.builder import build_candles
from fomo.data.loader import HistoricalLoader
from fomo.exceptions import ChartError
from fomo.funding.aligner import FundingAligner
from fomo.logging import get_logger
from fomo.models import Candle, Market
from fomo.series.owner import SeriesOwner
from fomo.series.store import CandleSeriesStore

logger = get_logger(__name__)


def _apply_batch(
    store: CandleSeriesStore,
    candles: list[Candle],
    boundary: int,
) -> tuple[int, bool]:
    """Prepend a fetched batch; returns (added, exhausted).

    History is exhausted only when nothing older exists before the boundary
    the fetch started from. If another writer already moved the head past
    that boundary, an empty or fully overlapping batch says nothing about
    what lies before the new head.
    """
    added = store.prepend_older(candles) if candles else 0
    if added or store.oldest_time() != boundary:
        return added, False
    store.mark_exhausted()
    return 0, True


class PaginationController:
    """Drives backward history loading from viewport range changes.

    Args:
        loader: Kline batch source.
        owner: Series owner through which batches are prepended.
        aligner: Funding timeline for coloring the older candles.
        settings: Trigger buffer and fallback timer period.
        interval_ms: Candle width; the trigger buffer is measured in candles.
    """

    def __init__(
        self,
        loader: HistoricalLoader,
        owner: SeriesOwner,
        aligner: FundingAligner,
        settings: PaginationSettings,
        interval_ms: int,
    ) -> None:
        self._loader = loader
        self._owner = owner
        self._aligner = aligner
        self._settings = settings
        self._buffer_ms = settings.buffer_candles * interval_ms
        self._visible_from: int | None = None
        self._in_flight = False
        self._active = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._batches_loaded = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def batches_loaded(self) -> int:
        return self._batches_loaded

    async def start(self) -> None:
        """Activate triggers and start the periodic fallback check."""
        if self._active:
            logger.warning("pagination_already_running")
            return
        self._active = True
        self._task = asyncio.create_task(self._timer_loop())
        logger.info("pagination_started", check_interval=self._settings.check_interval)

    async def stop(self) -> None:
        """Deactivate; later triggers and late fetch completions become no-ops."""
        self._active = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("pagination_stopped", batches_loaded=self._batches_loaded)

    async def on_range_change(self, visible_from_ms: int) -> bool:
        """Record the earliest visible time and paginate if near the edge.

        Returns True if this call performed a fetch.
        """
        if not self._active:
            return False
        self._visible_from = visible_from_ms
        return await self._maybe_fetch()

    async def _timer_loop(self) -> None:
        while self._active:
            await asyncio.sleep(self._settings.check_interval)
            try:
                await self._maybe_fetch()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("pagination_check_error", exc_info=True)

    async def _maybe_fetch(self) -> bool:
        if not self._active or self._in_flight or self._visible_from is None:
            return False

        boundary = self._owner.store.oldest_boundary
        if boundary is None:
            return False
        if self._visible_from > boundary + self._buffer_ms:
            return False

        self._in_flight = True
        try:
            await self._fetch_before(boundary)
        finally:
            self._in_flight = False
        return True

    async def _fetch_before(self, boundary: int) -> None:
        logger.info("pagination_fetching", before=boundary)
        try:
            batch = await self._loader.fetch_batch(
                Market.FUTURES,
                end_time_exclusive=boundary,
                raise_errors=True,
            )
        except ChartError as e:
            logger.warning("pagination_fetch_failed", before=boundary, error=str(e))
            return

        if not self._active:
            logger.debug("pagination_result_after_stop_ignored", candles=len(batch))
            return

        candles = build_candles(batch, self._aligner)
        result = await self._owner.submit(
            lambda store: _apply_batch(store, candles, boundary)
        )
        if result is None:
            return  # owner closed mid-flight
        added, exhausted = result
        if not added:
            if exhausted:
                logger.info("pagination_exhausted", before=boundary, fetched=len(batch))
            else:
                logger.info(
                    "pagination_head_moved",
                    before=boundary,
                    oldest=self._owner.store.oldest_time(),
                )
            return
        self._batches_loaded += 1
        logger.info(
            "pagination_batch_loaded",
            fetched=len(batch),
            added=added,
            oldest=self._owner.store.oldest_time(),
        )
