"""Tests for SeriesOwner mutation serialization."""

import asyncio

import pytest

from factories import T0, make_candle
from fomo.exceptions import SeriesOrderError
from fomo.series.owner import SeriesOwner
from fomo.series.store import CandleSeriesStore


class TestSeriesOwner:
    """Mutations are applied in order by one task."""

    @pytest.mark.asyncio
    async def test_submit_returns_mutation_result(self) -> None:
        owner = SeriesOwner(CandleSeriesStore())
        await owner.start()
        await owner.submit(lambda s: s.initialize([make_candle(T0)]))
        assert await owner.submit(len) == 1
        await owner.close()

    @pytest.mark.asyncio
    async def test_mutation_errors_propagate(self) -> None:
        owner = SeriesOwner(CandleSeriesStore())
        await owner.start()
        with pytest.raises(SeriesOrderError):
            await owner.submit(lambda s: s.update_trailing(make_candle(T0)))
        # Owner keeps running after a failed mutation
        assert await owner.submit(len) == 0
        await owner.close()

    @pytest.mark.asyncio
    async def test_concurrent_submissions_applied_in_order(self) -> None:
        owner = SeriesOwner(CandleSeriesStore())
        await owner.start()
        applied: list[int] = []
        await asyncio.gather(*(owner.submit(lambda s, i=i: applied.append(i)) for i in range(10)))
        assert applied == list(range(10))
        await owner.close()

    @pytest.mark.asyncio
    async def test_submit_after_close_is_ignored(self) -> None:
        store = CandleSeriesStore()
        owner = SeriesOwner(store)
        await owner.start()
        await owner.close()
        result = await owner.submit(lambda s: s.initialize([make_candle(T0)]))
        assert result is None
        assert len(store) == 0
        assert not owner.active
