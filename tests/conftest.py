"""Shared test fixtures for all test modules."""

import struct
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from metricrelay.adapters.storage.in_memory import InMemoryPointStorage
from metricrelay.core.context import RelayContext
from metricrelay.core.models import DataSourceKind, MetricSample, Value
from metricrelay.core.types_db import TypeCatalog

TYPES_DB = """\
# trimmed copy of collectd's types.db
cpu                     value:DERIVE:0:U
if_octets               rx:DERIVE:0:U, tx:DERIVE:0:U
load                    shortterm:GAUGE:0:5000, midterm:GAUGE:0:5000, longterm:GAUGE:0:5000
memory                  value:GAUGE:0:281474976710656
temperature             value:GAUGE:U:U
"""


@pytest.fixture
def types_db_text() -> str:
    return TYPES_DB


@pytest.fixture
def types_db_path(tmp_path: Path) -> str:
    """Provide a temporary types.db file."""
    path = tmp_path / "types.db"
    path.write_text(TYPES_DB)
    return str(path)


@pytest.fixture
def catalog() -> TypeCatalog:
    return TypeCatalog.parse(TYPES_DB)


@pytest.fixture
def context(catalog: TypeCatalog) -> RelayContext:
    """Fresh context with normalization enabled and an empty cache."""
    return RelayContext(catalog=catalog)


@pytest.fixture
def point_storage() -> InMemoryPointStorage:
    return InMemoryPointStorage()


@pytest.fixture
def make_sample() -> Callable[..., MetricSample]:
    """Factory fixture for MetricSample objects.

    Usage:
        sample = make_sample(150, kind=DataSourceKind.COUNTER, timestamp=1000)
    """

    def _sample(
        *values: float,
        kind: DataSourceKind = DataSourceKind.GAUGE,
        host: str = "h1",
        plugin: str = "cpu",
        plugin_instance: str = "",
        type: str = "cpu",
        type_instance: str = "",
        timestamp: int = 0,
    ) -> MetricSample:
        return MetricSample(
            host=host,
            plugin=plugin,
            plugin_instance=plugin_instance,
            type=type,
            type_instance=type_instance,
            values=tuple(Value(value=v, kind=kind) for v in values),
            timestamp=timestamp,
        )

    return _sample


# === collectd packet building ===


def _string_part(part_type: int, text: str) -> bytes:
    body = text.encode() + b"\0"
    return struct.pack("!HH", part_type, 4 + len(body)) + body


def _numeric_part(part_type: int, number: int) -> bytes:
    return struct.pack("!HHQ", part_type, 12, number)


def _values_part(values: Sequence[tuple[DataSourceKind, float]]) -> bytes:
    body = struct.pack("!H", len(values)) + bytes(kind.value for kind, _ in values)
    for kind, value in values:
        if kind is DataSourceKind.GAUGE:
            body += struct.pack("<d", value)
        elif kind is DataSourceKind.DERIVE:
            body += struct.pack("!q", int(value))
        else:
            body += struct.pack("!Q", int(value))
    return struct.pack("!HH", 0x0006, 4 + len(body)) + body


@pytest.fixture
def collectd_part() -> dict[str, Callable[..., bytes]]:
    """Builders for individual collectd protocol parts."""
    return {"string": _string_part, "numeric": _numeric_part, "values": _values_part}


@pytest.fixture
def collectd_packet() -> Callable[..., bytes]:
    """Factory fixture building a single-sample collectd datagram.

    Usage:
        data = collectd_packet(values=[(DataSourceKind.GAUGE, 1.5)], seconds=10)
    """

    def _packet(
        *,
        values: Sequence[tuple[DataSourceKind, float]],
        host: str = "h1",
        plugin: str = "cpu",
        plugin_instance: str = "",
        type: str = "cpu",
        type_instance: str = "",
        seconds: int = 1700000000,
    ) -> bytes:
        data = _string_part(0x0000, host)
        data += _numeric_part(0x0001, seconds)
        data += _string_part(0x0002, plugin)
        if plugin_instance:
            data += _string_part(0x0003, plugin_instance)
        data += _string_part(0x0004, type)
        if type_instance:
            data += _string_part(0x0005, type_instance)
        return data + _values_part(values)

    return _packet
