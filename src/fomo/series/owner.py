"""Single owner of the candle series: a mutation queue in front of the store.

Every writer (initial load, background history, pagination, live feed)
submits a mutation callable instead of touching the store directly. One
task applies them in arrival order. After close(), queued and future
submissions resolve to None without touching the store, so completions
that arrive after teardown cannot mutate it.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from fomo.logging import get_logger
from fomo.series.store import CandleSeriesStore

logger = get_logger(__name__)

Mutation = Callable[[CandleSeriesStore], Any]


class SeriesOwner:
    """Serializes all store mutations through one asyncio queue."""

    def __init__(self, store: CandleSeriesStore) -> None:
        self._store = store
        self._queue: asyncio.Queue[tuple[Mutation, asyncio.Future]] = asyncio.Queue()
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._active = False

    @property
    def store(self) -> CandleSeriesStore:
        """The owned store. Readers may use it freely; writers must submit()."""
        return self._store

    @property
    def active(self) -> bool:
        return self._active

    async def start(self) -> None:
        """Begin applying submitted mutations."""
        if self._active:
            logger.warning("series_owner_already_running")
            return
        self._active = True
        self._task = asyncio.create_task(self._run())
        logger.debug("series_owner_started")

    async def submit(self, mutation: Mutation) -> Any:
        """Queue a mutation and wait for its result.

        Exceptions raised by the mutation propagate to the caller.
        Returns None without applying anything if the owner is closed.
        """
        if not self._active:
            logger.debug("series_mutation_after_close_ignored")
            return None
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        await self._queue.put((mutation, future))
        return await future

    async def close(self) -> None:
        """Stop applying mutations and release any waiting submitters."""
        self._active = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.set_result(None)
        logger.debug("series_owner_closed")

    async def _run(self) -> None:
        while True:
            mutation, future = await self._queue.get()
            if future.done():
                continue
            if not self._active:
                future.set_result(None)
                continue
            try:
                result = mutation(self._store)
            except Exception as e:
                future.set_exception(e)
            else:
                future.set_result(result)
