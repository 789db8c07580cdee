"""Candle Series Store: the authoritative ordered candle sequence.

Invariants preserved across every mutation:
- strictly ascending by open_time, no duplicate open_time
- only the last element (the trailing candle) is ever replaced
- nothing is ever evicted

Every mutation validates against current state before applying, so the
invariants hold regardless of how writers interleave. Mutations are plain
synchronous methods; SeriesOwner serializes the async writers onto them.
"""

from bisect import bisect_left

from fomo.exceptions import SeriesOrderError
from fomo.logging import get_logger
from fomo.models import Candle

logger = get_logger(__name__)


def _check_ascending(candles: list[Candle]) -> None:
    for prev, cur in zip(candles, candles[1:]):
        if cur.open_time <= prev.open_time:
            raise SeriesOrderError(
                f"open_time {cur.open_time} does not follow {prev.open_time}"
            )


class CandleSeriesStore:
    """Ordered, deduplicated candle series with a single mutable tail."""

    def __init__(self) -> None:
        self._times: list[int] = []
        self._candles: list[Candle] = []
        self._exhausted = False

    # ──────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────

    def initialize(self, candles: list[Candle]) -> None:
        """Replace the series. Candles must be strictly ascending by open_time."""
        _check_ascending(candles)
        self._candles = list(candles)
        self._times = [c.open_time for c in candles]
        self._exhausted = False
        logger.info(
            "series_initialized",
            candles=len(self._candles),
            oldest=self.oldest_time(),
        )

    def prepend_older(self, candles: list[Candle]) -> int:
        """Merge older candles at the head of the series.

        Candles not strictly older than the current earliest are dropped,
        so loaded data wins at the boundary. Duplicates inside the batch
        resolve to the last occurrence. Returns the number of candles added.
        """
        earliest = self.oldest_time()
        times: list[int] = []
        older: list[Candle] = []
        for candle in candles:
            if earliest is not None and candle.open_time >= earliest:
                continue
            idx = bisect_left(times, candle.open_time)
            if idx < len(times) and times[idx] == candle.open_time:
                older[idx] = candle
            else:
                times.insert(idx, candle.open_time)
                older.insert(idx, candle)

        if older:
            self._candles[:0] = older
            self._times[:0] = times

        logger.debug(
            "series_prepended",
            offered=len(candles),
            added=len(older),
            total=len(self._candles),
        )
        return len(older)

    def update_trailing(self, candle: Candle) -> None:
        """Replace the trailing candle with a new value for the same open_time."""
        if not self._candles:
            raise SeriesOrderError("cannot update trailing candle of an empty series")
        if candle.open_time != self._times[-1]:
            raise SeriesOrderError(
                f"trailing update open_time {candle.open_time} "
                f"does not match tail {self._times[-1]}"
            )
        self._candles[-1] = candle

    def append_new(self, candle: Candle) -> None:
        """Add a new trailing candle strictly after the current tail."""
        if self._times and candle.open_time <= self._times[-1]:
            raise SeriesOrderError(
                f"new candle open_time {candle.open_time} "
                f"not after tail {self._times[-1]}"
            )
        self._candles.append(candle)
        self._times.append(candle.open_time)
        logger.debug("series_appended", open_time=candle.open_time, total=len(self._candles))

    def mark_exhausted(self) -> None:
        """Record that the upstream has no history older than the current head."""
        if not self._exhausted:
            self._exhausted = True
            logger.info("history_exhausted", oldest=self.oldest_time())

    # ──────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._candles)

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    @property
    def oldest_boundary(self) -> int | None:
        """Earliest loaded open_time, or None once history is exhausted."""
        if self._exhausted:
            return None
        return self.oldest_time()

    def oldest_time(self) -> int | None:
        return self._times[0] if self._times else None

    def latest(self) -> Candle | None:
        return self._candles[-1] if self._candles else None

    def snapshot(self) -> tuple[Candle, ...]:
        """Immutable copy of the whole series, oldest first."""
        return tuple(self._candles)

    def get(self, open_time: int) -> Candle | None:
        """Look up a candle by its open_time."""
        idx = bisect_left(self._times, open_time)
        if idx < len(self._times) and self._times[idx] == open_time:
            return self._candles[idx]
        return None
