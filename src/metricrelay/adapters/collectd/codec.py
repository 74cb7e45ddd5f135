"""Decoder for collectd's binary network protocol.

A datagram is a sequence of parts, each introduced by a big-endian
(type, length) header where length includes the 4 header bytes. String
and numeric parts update the current state (host, time, plugin, ...);
every VALUES part emits one MetricSample built from that state.
"""

import struct

from metricrelay.core.errors import PacketDecodeError
from metricrelay.core.models import DataSourceKind, MetricSample, Value

PART_HOST = 0x0000
PART_TIME = 0x0001
PART_PLUGIN = 0x0002
PART_PLUGIN_INSTANCE = 0x0003
PART_TYPE = 0x0004
PART_TYPE_INSTANCE = 0x0005
PART_VALUES = 0x0006
PART_INTERVAL = 0x0007
PART_TIME_HR = 0x0008
PART_INTERVAL_HR = 0x0009
PART_MESSAGE = 0x0100
PART_SEVERITY = 0x0101
PART_SIGNATURE = 0x0200
PART_ENCRYPTION = 0x0210

_HEADER = struct.Struct("!HH")
_UINT64 = struct.Struct("!Q")
_COUNT = struct.Struct("!H")

_STRING_FIELDS = {
    PART_HOST: "host",
    PART_PLUGIN: "plugin",
    PART_PLUGIN_INSTANCE: "plugin_instance",
    PART_TYPE: "type",
    PART_TYPE_INSTANCE: "type_instance",
}

# collectd "high resolution" time is in units of 2**-30 seconds
_HR_SHIFT = 30


def _decode_string(body: bytes) -> str:
    if not body or body[-1] != 0:
        raise PacketDecodeError("string part is not NUL-terminated")
    return body[:-1].decode("utf-8", errors="replace")


def _decode_uint64(body: bytes) -> int:
    if len(body) != _UINT64.size:
        raise PacketDecodeError(f"numeric part has {len(body)} bytes, expected 8")
    return _UINT64.unpack(body)[0]


def _decode_value(kind: DataSourceKind, raw: bytes) -> float:
    # gauges are little-endian doubles, everything else is big-endian
    if kind is DataSourceKind.GAUGE:
        return struct.unpack("<d", raw)[0]
    if kind is DataSourceKind.DERIVE:
        return float(struct.unpack("!q", raw)[0])
    return float(struct.unpack("!Q", raw)[0])


def _decode_values(body: bytes) -> tuple[Value, ...]:
    if len(body) < _COUNT.size:
        raise PacketDecodeError("values part too short")
    (count,) = _COUNT.unpack_from(body)
    expected = _COUNT.size + count * 9
    if len(body) != expected:
        raise PacketDecodeError(
            f"values part has {len(body)} bytes, expected {expected} for {count} values"
        )
    kinds_start = _COUNT.size
    values_start = kinds_start + count
    values: list[Value] = []
    for i in range(count):
        code = body[kinds_start + i]
        try:
            kind = DataSourceKind(code)
        except ValueError:
            raise PacketDecodeError(f"unknown data source kind {code}") from None
        raw = body[values_start + 8 * i : values_start + 8 * (i + 1)]
        values.append(Value(value=_decode_value(kind, raw), kind=kind))
    return tuple(values)


def decode_packet(data: bytes) -> list[MetricSample]:
    """Decode one datagram into the samples it carries.

    Raises:
        PacketDecodeError: If the datagram is truncated, malformed or
            encrypted.
    """
    state: dict[str, str] = {name: "" for name in _STRING_FIELDS.values()}
    timestamp_ms = 0
    samples: list[MetricSample] = []
    offset = 0
    while offset < len(data):
        if len(data) - offset < _HEADER.size:
            raise PacketDecodeError("truncated part header")
        part_type, length = _HEADER.unpack_from(data, offset)
        if length < _HEADER.size or offset + length > len(data):
            raise PacketDecodeError(f"invalid length {length} for part 0x{part_type:04x}")
        body = data[offset + _HEADER.size : offset + length]
        offset += length

        if part_type in _STRING_FIELDS:
            state[_STRING_FIELDS[part_type]] = _decode_string(body)
        elif part_type == PART_TIME:
            timestamp_ms = _decode_uint64(body) * 1000
        elif part_type == PART_TIME_HR:
            timestamp_ms = (_decode_uint64(body) * 1000) >> _HR_SHIFT
        elif part_type == PART_VALUES:
            samples.append(
                MetricSample(
                    host=state["host"],
                    plugin=state["plugin"],
                    plugin_instance=state["plugin_instance"],
                    type=state["type"],
                    type_instance=state["type_instance"],
                    values=_decode_values(body),
                    timestamp=timestamp_ms,
                )
            )
        elif part_type == PART_ENCRYPTION:
            raise PacketDecodeError("encrypted packets are not supported")
        # interval, notification, signature and unknown parts are skipped
    return samples
