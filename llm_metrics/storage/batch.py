"""
Buffered Metrics Writer

Optional write-behind buffer in front of MetricsDatabase. Outcomes are
accepted into memory and written with save_batch() when the buffer
reaches batch_size or when the background task's flush interval elapses.

A batch that fails to persist is put back at the head of the buffer, so
rows are written in arrival order. After a failure, save() stops
triggering flushes until the retry delay has passed and the periodic task
does the retrying. The buffer is capped at max_buffer_size; on overflow
the oldest outcomes are dropped and logged. Outcomes still buffered when
the process dies are lost.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from llm_metrics.metrics.outcome import CompletionOutcome
from llm_metrics.storage.database import MetricsDatabase, PersistenceError

logger = logging.getLogger(__name__)

# How often the background task checks whether the interval has elapsed
FLUSH_CHECK_INTERVAL_S = 1.0


class MetricsBatchWriter:
    """
    Batching front for the persistence store.

    Exposes the same save() coroutine as MetricsDatabase so the completion
    service can use either.

    Usage:
        writer = MetricsBatchWriter(database, batch_size=100, flush_interval=5.0)
        writer.start()
        await writer.save(outcome)
        ...
        await writer.shutdown()
    """

    def __init__(
        self,
        database: MetricsDatabase,
        batch_size: int = 100,
        flush_interval: float = 5.0,
        max_buffer_size: int = 10_000,
        retry_delay: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the writer.

        Args:
            database: Store that receives save_batch() calls.
            batch_size: Buffer length that triggers a flush from save().
            flush_interval: Seconds between periodic flushes.
            max_buffer_size: Upper bound on buffered outcomes; oldest are dropped.
            retry_delay: Seconds after a failed flush before save() flushes
                again. Defaults to flush_interval.
            clock: Monotonic time source.
        """
        self._database = database
        self._batch_size = batch_size
        self._flush_interval = flush_interval
        self._max_buffer_size = max(max_buffer_size, batch_size)
        self._retry_delay = flush_interval if retry_delay is None else retry_delay
        self._clock = clock

        self._buffer: list[CompletionOutcome] = []
        self._lock = asyncio.Lock()
        self._last_flush = clock()
        self._retry_at: float | None = None
        self._dropped = 0
        self._task: asyncio.Task | None = None

    @property
    def buffer_size(self) -> int:
        """Number of outcomes waiting to be written."""
        return len(self._buffer)

    @property
    def dropped_count(self) -> int:
        """Outcomes discarded because the buffer was full."""
        return self._dropped

    @property
    def backing_off(self) -> bool:
        """True while save() is holding off after a failed flush."""
        return self._retry_at is not None and self._clock() < self._retry_at

    def start(self) -> None:
        """Start the periodic flush task. Must be called from a running loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            logger.info(
                f"Batch writer started (batch_size={self._batch_size}, "
                f"flush_interval={self._flush_interval}s, "
                f"max_buffer_size={self._max_buffer_size})"
            )

    async def save(self, outcome: CompletionOutcome) -> None:
        """Buffer an outcome, flushing if the batch is full."""
        self._buffer.append(outcome)
        self._enforce_limit()
        if len(self._buffer) >= self._batch_size and not self.backing_off:
            await self.flush()

    def _enforce_limit(self) -> None:
        overflow = len(self._buffer) - self._max_buffer_size
        if overflow > 0:
            del self._buffer[:overflow]
            self._dropped += overflow
            logger.error(
                f"Metrics buffer full ({self._max_buffer_size}), "
                f"dropped {overflow} oldest metrics ({self._dropped} total)"
            )

    async def flush(self) -> int:
        """
        Write all buffered outcomes in one transaction.

        Returns:
            Number of outcomes written (0 when empty or on failure)
        """
        async with self._lock:
            self._last_flush = self._clock()
            if not self._buffer:
                return 0

            batch = self._buffer
            self._buffer = []
            try:
                await self._database.save_batch(batch)
            except PersistenceError as exc:
                # Put the batch back ahead of anything buffered meanwhile
                self._buffer = batch + self._buffer
                self._enforce_limit()
                self._retry_at = self._clock() + self._retry_delay
                logger.error(
                    f"Failed to flush {len(batch)} metrics, re-queued "
                    f"(retry in {self._retry_delay}s): {exc}"
                )
                return 0

            self._retry_at = None

        logger.info(f"Flushed {len(batch)} metrics to database")
        return len(batch)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(FLUSH_CHECK_INTERVAL_S)
            if self._clock() - self._last_flush >= self._flush_interval:
                await self.flush()

    async def shutdown(self) -> None:
        """Stop the periodic task and flush what is left."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self.flush()
        if self._buffer:
            logger.warning(f"Batch writer stopped with {len(self._buffer)} unwritten metrics")
        else:
            logger.info("Batch writer stopped")
