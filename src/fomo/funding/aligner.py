"""Funding Aligner: one sorted funding timeline with nearest-time lookup.

The bulk seed dataset is large and static; the API dataset is small and
refreshed periodically. Each refresh rebuilds a single ascending timeline
(API entries win on identical timestamps). Candle lookups then binary-search
that timeline instead of merging per query.
"""

from bisect import bisect_left
from decimal import Decimal

from fomo.logging import get_logger
from fomo.models import FundingSample

logger = get_logger(__name__)


class FundingAligner:
    """Merged funding timeline answering nearest-sample queries.

    Usage:
        aligner = FundingAligner(seed_samples)
        aligner.refresh(api_samples)
        rate = aligner.nearest_funding(candle.close_time)
    """

    def __init__(self, seed: list[FundingSample] | None = None) -> None:
        self._seed: dict[int, Decimal] = {s.time: s.rate_8h for s in seed or []}
        self._live: dict[int, Decimal] = {}
        self._times: list[int] = []
        self._rates: list[Decimal] = []
        self._rebuild()

    def refresh(self, live_samples: list[FundingSample]) -> None:
        """Replace the live dataset and rebuild the merged timeline."""
        self._live = {s.time: s.rate_8h for s in live_samples}
        self._rebuild()

    def _rebuild(self) -> None:
        merged = dict(self._seed)
        merged.update(self._live)
        ordered = sorted(merged.items())
        self._times = [t for t, _ in ordered]
        self._rates = [r for _, r in ordered]
        if ordered:
            logger.debug(
                "funding_timeline_rebuilt",
                samples=len(ordered),
                first_ms=self._times[0],
                last_ms=self._times[-1],
                live_samples=len(self._live),
            )

    def __len__(self) -> int:
        return len(self._times)

    def timeline(self) -> list[FundingSample]:
        """Return the merged timeline as funding samples, oldest first."""
        return [FundingSample(t, r) for t, r in zip(self._times, self._rates)]

    def latest_rate(self) -> Decimal:
        """Rate of the newest sample, or 0 when the timeline is empty."""
        return self._rates[-1] if self._rates else Decimal("0")

    def nearest_funding(self, target_time: int) -> Decimal:
        """Return the rate of the sample closest in time to target_time.

        Out-of-range targets clamp to the first/last sample. When the
        preceding sample is at least as close as the following one, the
        preceding sample wins.
        """
        if not self._times:
            return Decimal("0")
        if target_time < self._times[0]:
            return self._rates[0]
        if target_time > self._times[-1]:
            return self._rates[-1]

        idx = bisect_left(self._times, target_time)
        if self._times[idx] == target_time or idx == 0:
            return self._rates[idx]

        diff_after = self._times[idx] - target_time
        diff_before = target_time - self._times[idx - 1]
        if diff_before <= diff_after:
            return self._rates[idx - 1]
        return self._rates[idx]
