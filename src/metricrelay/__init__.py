"""metricrelay - relay collectd metrics into a time-series backend."""

from metricrelay.adapters.storage import (
    InfluxDBPointStorage,
    InMemoryPointStorage,
    SQLitePointStorage,
)
from metricrelay.core.cache import NormalizationCache
from metricrelay.core.context import CounterResetPolicy, RelayContext
from metricrelay.core.models import (
    DataSourceKind,
    MetricSample,
    Point,
    TypeDefinition,
    Value,
)
from metricrelay.core.pipeline import BatchingPipeline
from metricrelay.core.processor import SampleProcessor
from metricrelay.core.types_db import TypeCatalog
from metricrelay.core.writer import BackendWriter

__all__ = [
    "BackendWriter",
    "BatchingPipeline",
    "CounterResetPolicy",
    "DataSourceKind",
    "InMemoryPointStorage",
    "InfluxDBPointStorage",
    "MetricSample",
    "NormalizationCache",
    "Point",
    "RelayContext",
    "SQLitePointStorage",
    "SampleProcessor",
    "TypeCatalog",
    "TypeDefinition",
    "Value",
]
