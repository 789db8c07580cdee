"""Live Feed Reconciler: folds live price points into the trailing candle.

The candle window check is wall-clock relative: a point belongs to the
trailing candle while ``now - trailing.open_time < window``. This is not
aligned to the exchange's funding schedule and drifts with client clock
skew; a new candle opened by the reconciler starts at ``now``.
"""

import asyncio
import time
from collections.abc import Callable

from fomo.data.builder import compute_premium
from fomo.live.feed import LiveFeedService, LiveSubscription
from fomo.logging import get_logger
from fomo.models import Candle, LivePricePoint
from fomo.sentiment import color_for, sentiment_index
from fomo.series.owner import SeriesOwner
from fomo.series.store import CandleSeriesStore

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def reconcile(
    trailing: Candle,
    point: LivePricePoint,
    now_ms: int,
    window_ms: int,
) -> tuple[Candle, bool]:
    """Compute the next trailing candle for a live point.

    The premium is computed for display only; the index comes from the
    funding rate alone.

    Returns:
        (candle, is_new): the updated trailing candle with is_new False, or
        a fresh candle opened at now_ms with is_new True.
    """
    premium = compute_premium(point.futures, point.spot)
    index = sentiment_index(point.funding_8h, premium)
    color = color_for(index)

    if now_ms - trailing.open_time < window_ms:
        updated = Candle(
            open_time=trailing.open_time,
            close_time=trailing.close_time,
            open=trailing.open,
            high=max(trailing.high, point.futures),
            low=min(trailing.low, point.futures),
            close=point.futures,
            funding_rate_8h=point.funding_8h,
            sentiment_index=index,
            color=color,
            spot_open=trailing.spot_open if trailing.spot_open is not None else point.spot,
            spot_close=point.spot,
            premium=premium,
        )
        return updated, False

    opened = Candle(
        open_time=now_ms,
        close_time=now_ms + window_ms - 1,
        open=point.futures,
        high=point.futures,
        low=point.futures,
        close=point.futures,
        funding_rate_8h=point.funding_8h,
        sentiment_index=index,
        color=color,
        spot_open=point.spot,
        spot_close=point.spot,
        premium=premium,
    )
    return opened, True


class LiveFeedReconciler:
    """Consumes a live subscription and applies each point through the series owner.

    The window check and the store mutation run together inside one
    owner-applied mutation, so readers see either the old tail or the new
    one, never both and never a partial update.
    """

    def __init__(
        self,
        owner: SeriesOwner,
        feed: LiveFeedService,
        window_ms: int,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._owner = owner
        self._feed = feed
        self._window_ms = window_ms
        self._clock = clock
        self._subscription: LiveSubscription | None = None
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._applied = 0

    @property
    def applied(self) -> int:
        """Number of live points folded into the series so far."""
        return self._applied

    async def start(self) -> None:
        """Subscribe to the feed and begin reconciling in the background."""
        if self._task is not None:
            logger.warning("reconciler_already_running")
            return
        self._subscription = self._feed.subscribe()
        self._task = asyncio.create_task(self._run(self._subscription))
        logger.info("reconciler_started", window_ms=self._window_ms)

    async def stop(self) -> None:
        """Cancel the subscription and the consuming task."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("reconciler_stopped", applied=self._applied)

    async def _run(self, subscription: LiveSubscription) -> None:
        async for point in subscription:
            try:
                await self.apply(point)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("reconcile_error", exc_info=True)

    async def apply(self, point: LivePricePoint) -> Candle | None:
        """Fold one point into the series. Returns the resulting tail candle."""
        return await self._owner.submit(lambda store: self._apply(store, point))

    def _apply(self, store: CandleSeriesStore, point: LivePricePoint) -> Candle | None:
        trailing = store.latest()
        if trailing is None:
            return None

        candle, is_new = reconcile(trailing, point, self._clock(), self._window_ms)
        if is_new:
            store.append_new(candle)
            logger.info(
                "live_candle_opened",
                open_time=candle.open_time,
                open=str(candle.open),
                sentiment_index=candle.sentiment_index,
            )
        else:
            store.update_trailing(candle)
        self._applied += 1
        return candle
