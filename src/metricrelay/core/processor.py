"""Sample processor: turns one decoded sample into ready-to-send points."""

import logging
import math

from metricrelay.core.context import CounterResetPolicy, RelayContext
from metricrelay.core.models import CacheEntry, MetricSample, Point, Value

LOG = logging.getLogger(__name__)


def sanitize_host(host: str) -> str:
    """Replace dots so the host cannot be confused with the key separator."""
    return host.replace(".", "_")


def _qualified(name: str, instance: str | None) -> str:
    return f"{name}-{instance}" if instance else name


def compute_rate(current: CacheEntry, previous: CacheEntry) -> float:
    """Per-second rate between two raw observations.

    A non-positive elapsed time (duplicate timestamp or clock skew) yields
    the plain difference instead of dividing by zero or a negative span.
    """
    delta = current.value - previous.value
    elapsed_ms = current.timestamp - previous.timestamp
    if elapsed_ms > 0:
        return delta / (elapsed_ms / 1000)
    return delta


class SampleProcessor:
    """Resolves, labels and normalizes the values of a MetricSample.

    The processor mutates context.cache and is meant to be driven by a
    single ingestion loop.
    """

    def __init__(self, context: RelayContext) -> None:
        self._context = context

    @property
    def context(self) -> RelayContext:
        return self._context

    def process(self, sample: MetricSample) -> list[Point]:
        """Return one point per value that is ready to send.

        Values of an unknown type without a type instance are dropped, as
        are first observations of cumulative series (they only seed the
        cache).
        """
        LOG.debug("got a sample: %s", sample)
        definition = self._context.catalog.lookup(sample.type)
        host = sanitize_host(sample.host)
        plugin_name = _qualified(sample.plugin, sample.plugin_instance)

        points: list[Point] = []
        for index, value in enumerate(sample.values):
            if definition is None and not sample.type_instance:
                LOG.debug(
                    "unknown type %s without type instance on %s",
                    sample.type,
                    sample.plugin,
                )
                continue

            label = sample.type_instance
            if not label and definition is not None:
                label = definition.source_name(index) or ""
                if not label:
                    LOG.debug(
                        "type %s declares %d data sources, sample has %d",
                        sample.type,
                        len(definition.data_sources),
                        len(sample.values),
                    )

            type_name = _qualified(sample.type, label)
            name = f"{plugin_name}.{type_name}"
            key = f"{host}.{name}"

            point_value = self._point_value(key, sample.timestamp, value)
            if point_value is None:
                continue
            point = Point(
                name=name, timestamp=sample.timestamp, value=point_value, host=host
            )
            LOG.debug("ready to send point: %s", point)
            points.append(point)
        return points

    def _point_value(self, key: str, timestamp: int, value: Value) -> float | None:
        """Return the value to send for one data source, None to hold it back."""
        if not (self._context.normalize and value.kind.is_cumulative):
            return value.value

        current = CacheEntry(timestamp=timestamp, value=value.value)
        previous = self._context.cache.swap(key, current)
        if previous is None or math.isnan(previous.value):
            return None

        rate = compute_rate(current, previous)
        if current.value < previous.value:
            LOG.debug(
                "series %s decreased from %s to %s (counter reset?)",
                key,
                previous.value,
                current.value,
            )
            if self._context.counter_reset is CounterResetPolicy.SUPPRESS:
                return None
        return rate
