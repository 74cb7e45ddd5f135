"""collectd network protocol adapter."""

from metricrelay.adapters.collectd.codec import decode_packet
from metricrelay.adapters.collectd.listener import CollectdProtocol, start_listener

__all__ = ["CollectdProtocol", "decode_packet", "start_listener"]
