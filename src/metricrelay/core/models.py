"""Core domain models for relayed metric data."""

from dataclasses import dataclass, field
from enum import Enum


class DataSourceKind(Enum):
    """Kind of a data source, valued with its collectd wire code."""

    COUNTER = 0
    GAUGE = 1
    DERIVE = 2
    ABSOLUTE = 3

    @property
    def is_cumulative(self) -> bool:
        """True for kinds that need delta-over-time conversion."""
        return self in (DataSourceKind.COUNTER, DataSourceKind.DERIVE)


@dataclass(frozen=True)
class Value:
    """One (value, kind) pair carried by a sample."""

    value: float
    kind: DataSourceKind


@dataclass(frozen=True)
class MetricSample:
    """A single decoded observation from a monitored host.

    Attributes:
        host: Host identifier as sent by the host.
        plugin: Plugin name (e.g., "cpu").
        type: Type name, resolved against the type catalog.
        values: Ordered values, one per data source of the type.
        timestamp: Unix timestamp in milliseconds.
        plugin_instance: Optional plugin qualifier, empty when absent.
        type_instance: Optional type qualifier, empty when absent.
    """

    host: str
    plugin: str
    type: str
    values: tuple[Value, ...]
    timestamp: int
    plugin_instance: str = ""
    type_instance: str = ""


@dataclass(frozen=True)
class DataSource:
    """A data source declared for a type in types.db.

    Attributes:
        name: Data source name (e.g., "rx").
        kind: Declared kind.
        min: Lower bound, None when unbounded ("U").
        max: Upper bound, None when unbounded ("U").
    """

    name: str
    kind: DataSourceKind
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True)
class TypeDefinition:
    """Ordered data sources declared for one type name."""

    name: str
    data_sources: tuple[DataSource, ...] = field(default_factory=tuple)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(ds.name for ds in self.data_sources)

    def source_name(self, index: int) -> str | None:
        """Return the name of the index-th data source, None if out of range."""
        if 0 <= index < len(self.data_sources):
            return self.data_sources[index].name
        return None


@dataclass(frozen=True)
class CacheEntry:
    """Last raw observation of a cumulative series.

    Attributes:
        timestamp: Unix timestamp in milliseconds.
        value: Raw (not normalized) value.
    """

    timestamp: int
    value: float


@dataclass(frozen=True)
class Point:
    """A ready-to-send record for the storage backend.

    Attributes:
        name: Series name, plugin[-instance].type[-label].
        timestamp: Unix timestamp in milliseconds.
        value: Raw value, or per-second rate for normalized counters.
        host: Sanitized host label.
    """

    name: str
    timestamp: int
    value: float
    host: str


Batch = list[Point]
