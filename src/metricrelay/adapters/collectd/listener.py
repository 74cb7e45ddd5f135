"""UDP listener feeding decoded collectd samples into the ingestion queue."""

import asyncio
import logging

from metricrelay.adapters.collectd.codec import decode_packet
from metricrelay.core.errors import PacketDecodeError
from metricrelay.core.models import MetricSample

LOG = logging.getLogger(__name__)

DEFAULT_PORT = 8096


class CollectdProtocol(asyncio.DatagramProtocol):
    """Decodes datagrams and enqueues their samples.

    UDP cannot push back on the sender, so samples arriving while the
    queue is full are dropped and counted. Malformed datagrams are logged
    and dropped; nothing is ever sent back to the source.
    """

    def __init__(self, queue: asyncio.Queue[MetricSample]) -> None:
        self._queue = queue
        self.received = 0
        self.dropped = 0

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        try:
            samples = decode_packet(data)
        except PacketDecodeError as exc:
            LOG.warning("dropping malformed packet from %s: %s", addr[0], exc)
            return
        for sample in samples:
            try:
                self._queue.put_nowait(sample)
            except asyncio.QueueFull:
                self.dropped += 1
                LOG.warning(
                    "ingestion queue full, dropped sample from %s (%d dropped so far)",
                    sample.host,
                    self.dropped,
                )
            else:
                self.received += 1

    def error_received(self, exc: Exception) -> None:
        LOG.warning("listener socket error: %s", exc)


async def start_listener(
    queue: asyncio.Queue[MetricSample],
    host: str = "0.0.0.0",
    port: int = DEFAULT_PORT,
) -> tuple[asyncio.DatagramTransport, CollectdProtocol]:
    """Bind a UDP socket and start delivering samples into queue.

    Returns:
        The transport (close it to stop listening) and the protocol.
    """
    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: CollectdProtocol(queue), local_addr=(host, port)
    )
    LOG.info("listening for collectd packets on %s:%d", host, port)
    return transport, protocol
