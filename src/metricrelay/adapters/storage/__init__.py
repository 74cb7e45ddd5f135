"""Storage adapters implementing core ports."""

from metricrelay.adapters.storage.in_memory import InMemoryPointStorage
from metricrelay.adapters.storage.influxdb import InfluxDBPointStorage
from metricrelay.adapters.storage.sqlite import SQLitePointStorage

__all__ = [
    "InMemoryPointStorage",
    "InfluxDBPointStorage",
    "SQLitePointStorage",
]
