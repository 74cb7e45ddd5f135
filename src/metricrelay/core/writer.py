"""Backend writer: fire-and-forget delivery of batches.

Each flush hands its batch to submit(), which starts an independent task
and returns at once. A failed write is logged and the batch is dropped
(at-most-once delivery). Because tasks run concurrently, the order in which
batches reach the backend may differ from the order they were flushed.
"""

import asyncio
import logging
from collections.abc import Sequence

from metricrelay.core.models import Batch, Point
from metricrelay.core.ports import PointWriterPort

LOG = logging.getLogger(__name__)


class BackendWriter:
    """Writes batches to a PointWriterPort without blocking the caller.

    Args:
        client: Storage client the batches are written to.
        max_in_flight: Cap on concurrent backend calls, None for no cap.
            Tasks above the cap wait for a slot; submit() never blocks.
        write_timeout: Seconds allowed per backend call, None for no limit.
    """

    def __init__(
        self,
        client: PointWriterPort,
        *,
        max_in_flight: int | None = None,
        write_timeout: float | None = None,
    ) -> None:
        if max_in_flight is not None and max_in_flight < 1:
            raise ValueError("max_in_flight must be positive")
        self._client = client
        self._write_timeout = write_timeout
        self._slots = asyncio.Semaphore(max_in_flight) if max_in_flight else None
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def client(self) -> PointWriterPort:
        return self._client

    @property
    def in_flight(self) -> int:
        """Number of submitted writes that have not finished."""
        return len(self._tasks)

    def submit(self, batch: Batch) -> asyncio.Task[bool]:
        """Start writing batch in a new task and return the task.

        Must be called from a running event loop. The caller gives up the
        batch; it must not be mutated afterwards.
        """
        task = asyncio.get_running_loop().create_task(self.write(batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def write(self, batch: Sequence[Point]) -> bool:
        """Write batch once. Returns False if the write failed."""
        try:
            if self._slots is None:
                await self._write(batch)
            else:
                async with self._slots:
                    await self._write(batch)
        except asyncio.CancelledError:
            LOG.warning("write of %d points cancelled", len(batch))
            raise
        except Exception as exc:
            LOG.error("failed to write batch of %d points: %r", len(batch), exc)
            return False
        LOG.debug("wrote %d points", len(batch))
        return True

    async def _write(self, batch: Sequence[Point]) -> None:
        if self._write_timeout is None:
            await self._client.write_points(batch)
        else:
            await asyncio.wait_for(
                self._client.write_points(batch), timeout=self._write_timeout
            )

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for in-flight writes, cancelling those still running after timeout.

        Returns:
            Number of writes cancelled.
        """
        pending = set(self._tasks)
        if not pending:
            return 0
        LOG.info("waiting for %d in-flight writes", len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            LOG.warning("abandoned %d writes after %.1fs", len(still_running), timeout)
        return len(still_running)
