"""Port interfaces for storage backends.

The core depends only on these protocols; InfluxDB, SQLite and in-memory
clients live in metricrelay.adapters.storage.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from metricrelay.core.models import Point


@runtime_checkable
class PointWriterPort(Protocol):
    """Port for writing batches of points to a time-series backend.

    Examples: InfluxDBPointStorage, SQLitePointStorage, InMemoryPointStorage.
    """

    async def write_points(self, points: Sequence[Point]) -> None:
        """Write a batch of points in a single call.

        Raises:
            Exception: Any failure; the caller logs it and drops the batch.
        """
        ...

    async def close(self) -> None:
        """Release connections held by the client."""
        ...
