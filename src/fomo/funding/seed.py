"""Loader for the pre-seeded historical funding dataset.

The dataset is a CSV with a millisecond timestamp column and a funding rate
column already expressed as a percentage-decimal. It is read once, in full,
at startup.
"""

from decimal import Decimal, InvalidOperation
from pathlib import Path

import pandas as pd

from fomo.logging import get_logger
from fomo.models import FundingSample

logger = get_logger(__name__)

_TIME_COLUMNS = ("timestamp", "time", "fundingTime", "timestamp_ms")
_RATE_COLUMNS = ("rate", "rate_8h", "fundingRate", "funding_8h")


def _pick_column(columns: list[str], candidates: tuple[str, ...], fallback: int) -> str:
    for name in candidates:
        if name in columns:
            return name
    return columns[fallback]


def load_seed_funding(path: str | Path | None) -> list[FundingSample]:
    """Read the seed CSV into funding samples, skipping unparseable rows.

    Returns an empty list when no path is configured or the file is missing;
    the chart still works from API funding data alone.
    """
    if path is None:
        return []

    csv_path = Path(path)
    if not csv_path.exists():
        logger.warning("funding_seed_missing", path=str(csv_path))
        return []

    frame = pd.read_csv(csv_path, dtype=str)
    if frame.empty or len(frame.columns) < 2:
        logger.warning("funding_seed_empty", path=str(csv_path))
        return []

    columns = [str(c) for c in frame.columns]
    time_col = _pick_column(columns, _TIME_COLUMNS, 0)
    rate_col = _pick_column(columns, _RATE_COLUMNS, 1)

    samples: list[FundingSample] = []
    dropped = 0
    for raw_time, raw_rate in zip(frame[time_col], frame[rate_col]):
        try:
            sample = FundingSample(
                time=int(Decimal(str(raw_time).strip())),
                rate_8h=Decimal(str(raw_rate).strip()),
            )
        except (InvalidOperation, ValueError, OverflowError):
            dropped += 1
            continue
        if not sample.rate_8h.is_finite():
            dropped += 1
            continue
        samples.append(sample)

    logger.info(
        "funding_seed_loaded",
        path=str(csv_path),
        samples=len(samples),
        dropped=dropped,
    )
    return samples
