"""In-memory storage adapter for points."""

from collections.abc import Sequence

from metricrelay.core.models import Point


class InMemoryPointStorage:
    """In-memory implementation of PointWriterPort.

    Keeps every written batch as a list. Suitable for testing and dry runs
    where nothing should leave the process.
    """

    def __init__(self) -> None:
        self._batches: list[list[Point]] = []

    async def write_points(self, points: Sequence[Point]) -> None:
        """Record a batch of points."""
        self._batches.append(list(points))

    async def close(self) -> None:
        """Nothing to release."""

    @property
    def batches(self) -> list[list[Point]]:
        """Written batches, in the order the writes completed."""
        return self._batches

    @property
    def points(self) -> list[Point]:
        """All written points, flattened."""
        return [p for batch in self._batches for p in batch]
