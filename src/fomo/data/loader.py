"""Historical kline and funding loader with retry and backward chaining.

Fetches bulk OHLC batches for the spot and futures markets and the funding
history. Batches are chained BACKWARD: each request's exclusive end is the
earliest open time seen so far. A batch that keeps failing after retries,
or whose payload is not a list, degrades to an empty batch (or stops a
backward chain without marking history exhausted). Partial history is
preferred over no history.
"""

import asyncio
from bisect import bisect_left
from collections.abc import Callable
from dataclasses import dataclass, field

import ccxt.async_support

from fomo.config import ExchangeSettings
from fomo.exceptions import ChartError, NetworkFailure, ParseFailure
from fomo.exchange.client import MarketDataClient
from fomo.exchange.types import parse_funding_record, parse_kline
from fomo.logging import get_logger
from fomo.models import FundingSample, Market, RawCandle

logger = get_logger(__name__)


@dataclass
class InitialLoad:
    """Newest batch of both markets plus funding history (blocks first paint)."""

    futures: list[RawCandle]
    spot: list[RawCandle]
    funding: list[FundingSample]


@dataclass
class BackgroundLoad:
    """Older batches fetched after first paint, merged per market."""

    futures: list[RawCandle] = field(default_factory=list)
    spot: list[RawCandle] = field(default_factory=list)
    futures_exhausted: bool = False


def merge_batches(*batches: list[RawCandle]) -> list[RawCandle]:
    """Merge kline batches into one ascending list keyed by open time.

    Batches are applied in argument order: when two batches share an open
    time, the later batch's record replaces the earlier one.
    """
    times: list[int] = []
    merged: list[RawCandle] = []
    for batch in batches:
        for candle in batch:
            idx = bisect_left(times, candle.open_time)
            if idx < len(times) and times[idx] == candle.open_time:
                merged[idx] = candle
            else:
                times.insert(idx, candle.open_time)
                merged.insert(idx, candle)
    return merged


class HistoricalLoader:
    """Fetches kline batches and funding history from a market data client.

    Usage:
        loader = HistoricalLoader(client, settings)
        initial = await loader.load_initial()
        older = await loader.load_background(
            initial.futures[0].open_time, initial.spot[0].open_time
        )
    """

    def __init__(
        self,
        client: MarketDataClient,
        settings: ExchangeSettings,
        sleep: Callable = asyncio.sleep,
    ) -> None:
        self._client = client
        self._settings = settings
        self._sleep = sleep

    # ──────────────────────────────────────────────
    # Public methods
    # ──────────────────────────────────────────────

    async def fetch_batch(
        self,
        market: Market,
        end_time_exclusive: int | None = None,
        *,
        raise_errors: bool = False,
    ) -> list[RawCandle]:
        """Fetch one batch of klines for a market, ascending by open time.

        When ``end_time_exclusive`` is given, every returned candle opens
        strictly before it; otherwise the newest batch is returned.

        Failures and malformed payloads yield an empty list. With
        ``raise_errors`` they raise NetworkFailure / ParseFailure instead, so
        callers can tell a failed request from an exhausted upstream.
        """
        end_time = end_time_exclusive - 1 if end_time_exclusive is not None else None
        try:
            rows = await self._fetch_with_retry(
                self._client.fetch_klines,
                market,
                limit=self._settings.batch_size,
                end_time=end_time,
            )
        except Exception as e:
            logger.warning(
                "kline_batch_failed",
                market=market.value,
                end_time=end_time,
                error=str(e),
            )
            if raise_errors:
                raise NetworkFailure(f"{market.value} kline batch failed: {e}") from e
            return []

        if not isinstance(rows, list):
            logger.warning(
                "kline_batch_malformed",
                market=market.value,
                payload_type=type(rows).__name__,
            )
            if raise_errors:
                raise ParseFailure(f"{market.value} kline payload is not a list")
            return []

        candles: list[RawCandle] = []
        dropped = 0
        for row in rows:
            try:
                candle = parse_kline(row, self._settings.interval_ms)
            except ParseFailure:
                dropped += 1
                continue
            if end_time_exclusive is not None and candle.open_time >= end_time_exclusive:
                continue
            candles.append(candle)

        if dropped:
            logger.warning("kline_records_dropped", market=market.value, dropped=dropped)

        batch = merge_batches(candles)
        logger.debug(
            "kline_batch_fetched",
            market=market.value,
            count=len(batch),
            end_time=end_time,
        )
        return batch

    async def fetch_funding_history(self) -> list[FundingSample]:
        """Fetch funding history as percentage-decimal samples, oldest first."""
        try:
            records = await self._fetch_with_retry(
                self._client.fetch_funding_history,
                limit=self._settings.funding_history_limit,
            )
        except Exception as e:
            logger.warning("funding_history_failed", error=str(e))
            return []

        if not isinstance(records, list):
            logger.warning(
                "funding_history_malformed",
                payload_type=type(records).__name__,
            )
            return []

        by_time: dict[int, FundingSample] = {}
        dropped = 0
        for record in records:
            try:
                sample = parse_funding_record(record)
            except ParseFailure:
                dropped += 1
                continue
            by_time[sample.time] = sample

        if dropped:
            logger.warning("funding_records_dropped", dropped=dropped)
        return [by_time[t] for t in sorted(by_time)]

    async def load_initial(self) -> InitialLoad:
        """Fetch the newest batch of both markets and funding history concurrently."""
        futures, spot, funding = await asyncio.gather(
            self.fetch_batch(Market.FUTURES),
            self.fetch_batch(Market.SPOT),
            self.fetch_funding_history(),
        )
        logger.info(
            "initial_load_complete",
            futures=len(futures),
            spot=len(spot),
            funding=len(funding),
        )
        return InitialLoad(futures=futures, spot=spot, funding=funding)

    async def load_background(
        self,
        futures_oldest: int | None,
        spot_oldest: int | None,
        batches: int | None = None,
    ) -> BackgroundLoad:
        """Chain further batches backward from each market's oldest open time.

        Both markets are walked concurrently. A market's chain stops on the
        first empty batch (upstream exhausted) or the first failed batch.
        """
        count = self._settings.background_batches if batches is None else batches

        (futures, futures_exhausted), (spot, _) = await asyncio.gather(
            self._walk_backward(Market.FUTURES, futures_oldest, count),
            self._walk_backward(Market.SPOT, spot_oldest, count),
        )
        logger.info(
            "background_load_complete",
            futures=len(futures),
            spot=len(spot),
            futures_exhausted=futures_exhausted,
        )
        return BackgroundLoad(
            futures=futures,
            spot=spot,
            futures_exhausted=futures_exhausted,
        )

    # ──────────────────────────────────────────────
    # Internal fetch orchestration
    # ──────────────────────────────────────────────

    async def _walk_backward(
        self,
        market: Market,
        oldest: int | None,
        batches: int,
    ) -> tuple[list[RawCandle], bool]:
        """Fetch up to ``batches`` batches ending before ``oldest``.

        Returns the merged candles and whether the upstream ran out.
        """
        if oldest is None:
            return [], False

        collected: list[list[RawCandle]] = []
        current_end = oldest
        exhausted = False

        for _ in range(batches):
            try:
                batch = await self.fetch_batch(
                    market, end_time_exclusive=current_end, raise_errors=True
                )
            except ChartError:
                logger.warning(
                    "background_chain_stopped",
                    market=market.value,
                    batches_loaded=len(collected),
                )
                break

            if not batch:
                exhausted = True
                break

            collected.append(batch)
            current_end = batch[0].open_time

        return merge_batches(*collected), exhausted

    # ──────────────────────────────────────────────
    # Retry wrapper
    # ──────────────────────────────────────────────

    async def _fetch_with_retry(self, fetch_fn: Callable, *args, **kwargs):
        """Execute a fetch function with exponential backoff retry.

        Delays are retry_base_delay * 2**attempt; rate limit errors wait
        three times longer. Re-raises on final failure.
        """
        max_retries = max(1, self._settings.max_retries)
        base_delay = self._settings.retry_base_delay

        for attempt in range(max_retries):
            try:
                return await fetch_fn(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt == max_retries - 1:
                    logger.error(
                        "fetch_failed_permanently",
                        error=str(e),
                        attempts=max_retries,
                    )
                    raise

                delay = base_delay * (2**attempt)

                if isinstance(e, ccxt.async_support.RateLimitExceeded):
                    delay *= 3
                    logger.warning(
                        "rate_limit_exceeded",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                    )
                else:
                    logger.warning(
                        "fetch_retry",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )

                await self._sleep(delay)

        return []  # Unreachable, but satisfies type checker
