"""Batching pipeline: the ingestion loop of the relay.

Samples are taken from a bounded queue one at a time. After each sample
the pipeline checks two triggers, elapsed time since the last flush and
batch size, and on either one hands the batch to the backend writer.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from metricrelay.core.context import RelayContext
from metricrelay.core.models import Batch, MetricSample
from metricrelay.core.processor import SampleProcessor
from metricrelay.core.writer import BackendWriter

LOG = logging.getLogger(__name__)

FLUSH_INTERVAL = 1.0
FLUSH_LIMIT = 50
QUEUE_CAPACITY = 100


class BatchingPipeline:
    """Accumulates points and flushes them to a BackendWriter.

    Args:
        context: Catalog, cache and options shared with the processor.
        writer: Receives each flushed batch.
        queue: Source of decoded samples; a bounded queue of
            QUEUE_CAPACITY is created when omitted.
        flush_interval: Seconds after which the next sample triggers a flush.
        flush_limit: Batch size that triggers a flush.
        clock: Monotonic clock in seconds, replaceable in tests.
    """

    def __init__(
        self,
        context: RelayContext,
        writer: BackendWriter,
        queue: asyncio.Queue[MetricSample] | None = None,
        *,
        flush_interval: float = FLUSH_INTERVAL,
        flush_limit: int = FLUSH_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._context = context
        self._processor = SampleProcessor(context)
        self._writer = writer
        self._queue: asyncio.Queue[MetricSample] = (
            queue if queue is not None else asyncio.Queue(maxsize=QUEUE_CAPACITY)
        )
        self._flush_interval = flush_interval
        self._flush_limit = flush_limit
        self._clock = clock
        self._batch: Batch = []
        self._last_flush = clock()

    @property
    def queue(self) -> asyncio.Queue[MetricSample]:
        return self._queue

    @property
    def pending(self) -> int:
        """Number of points in the current, not yet flushed batch."""
        return len(self._batch)

    def ingest(self, sample: MetricSample) -> Batch | None:
        """Process one sample and flush if a trigger fired.

        Returns:
            The batch handed to the writer, or None if nothing was sent.
        """
        self._batch.extend(self._processor.process(sample))
        elapsed = self._clock() - self._last_flush
        if elapsed < self._flush_interval and len(self._batch) < self._flush_limit:
            return None
        return self.flush()

    def flush(self) -> Batch | None:
        """Hand the current batch to the writer and start a new one.

        The flush timer restarts even when the batch was empty, so an idle
        spell does not make the next sample look overdue.
        """
        batch, self._batch = self._batch, []
        self._last_flush = self._clock()
        if self._context.cache.max_idle_ms is not None:
            self._context.cache.evict_idle()
        if not batch:
            return None
        self._writer.submit(batch)
        return batch

    async def run(self) -> None:
        """Consume samples until cancelled."""
        LOG.info(
            "ingestion started (flush every %.1fs or %d points)",
            self._flush_interval,
            self._flush_limit,
        )
        while True:
            sample = await self._queue.get()
            try:
                self.ingest(sample)
            except Exception:
                LOG.exception("failed to process sample %s", sample)
            finally:
                self._queue.task_done()

    async def close(self, grace: float | None = None) -> int:
        """Flush the pending batch and wait up to grace seconds for writes.

        Samples still waiting in the queue are dropped.

        Returns:
            Number of writes abandoned after the grace period.
        """
        dropped = self._queue.qsize()
        if dropped:
            LOG.warning("dropping %d queued samples on shutdown", dropped)
        self.flush()
        return await self._writer.drain(timeout=grace)
