"""Assembly of a running relay from settings."""

import asyncio
import logging
import signal

from metricrelay.adapters.collectd.listener import start_listener
from metricrelay.adapters.storage import (
    InfluxDBPointStorage,
    InMemoryPointStorage,
    SQLitePointStorage,
)
from metricrelay.config import RelaySettings
from metricrelay.core.cache import NormalizationCache
from metricrelay.core.context import RelayContext
from metricrelay.core.errors import BackendConfigError, ListenerError
from metricrelay.core.pipeline import BatchingPipeline
from metricrelay.core.ports import PointWriterPort
from metricrelay.core.types_db import TypeCatalog
from metricrelay.core.writer import BackendWriter

LOG = logging.getLogger(__name__)


def create_storage(settings: RelaySettings) -> PointWriterPort:
    """Build the storage client selected by settings.BACKEND.

    Raises:
        BackendConfigError: If the backend cannot be configured.
    """
    if settings.BACKEND == "influxdb":
        return InfluxDBPointStorage(
            settings.INFLUXDB,
            settings.DATABASE,
            username=settings.USERNAME,
            password=settings.PASSWORD,
        )
    if settings.BACKEND == "sqlite":
        return SQLitePointStorage(settings.SQLITE_PATH)
    if settings.BACKEND == "memory":
        return InMemoryPointStorage()
    raise BackendConfigError(f"unknown backend {settings.BACKEND!r}")


def create_context(settings: RelaySettings, catalog: TypeCatalog) -> RelayContext:
    return RelayContext(
        catalog=catalog,
        cache=NormalizationCache(
            max_entries=settings.CACHE_MAX_ENTRIES,
            max_idle_ms=settings.cache_max_idle_ms,
        ),
        normalize=settings.NORMALIZE,
        counter_reset=settings.COUNTER_RESET,
    )


def create_pipeline(
    settings: RelaySettings, context: RelayContext, storage: PointWriterPort
) -> BatchingPipeline:
    writer = BackendWriter(
        storage,
        max_in_flight=settings.MAX_IN_FLIGHT,
        write_timeout=settings.WRITE_TIMEOUT,
    )
    return BatchingPipeline(context, writer)


async def run_relay(
    settings: RelaySettings,
    catalog: TypeCatalog,
    storage: PointWriterPort,
    stop: asyncio.Event | None = None,
) -> None:
    """Listen, ingest and write until stop is set or a signal arrives.

    On SIGINT/SIGTERM the listener is closed first so no new samples are
    accepted, the pending batch is flushed and in-flight writes get
    settings.SHUTDOWN_GRACE seconds before they are cancelled.

    Raises:
        ListenerError: If the UDP socket cannot be bound. Storage is
            closed before the error propagates.
    """
    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    received: list[signal.Signals] = []

    def _on_signal(sig: signal.Signals) -> None:
        received.append(sig)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _on_signal, sig)

    pipeline = create_pipeline(settings, create_context(settings, catalog), storage)
    transport: asyncio.DatagramTransport | None = None
    ingestion: asyncio.Task[None] | None = None
    try:
        try:
            transport, _ = await start_listener(
                pipeline.queue, host=settings.LISTEN_HOST, port=settings.PROXY_PORT
            )
        except OSError as exc:
            raise ListenerError(
                f"failed to bind {settings.LISTEN_HOST}:{settings.PROXY_PORT}: {exc}"
            ) from exc
        ingestion = asyncio.create_task(pipeline.run(), name="ingestion")
        LOG.info("relay started on port %d, backend=%s", settings.PROXY_PORT, settings.BACKEND)
        await stop.wait()
    finally:
        if received:
            LOG.info("exit with a signal: %s", received[0].name)
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        if transport is not None:
            transport.close()
        if ingestion is not None:
            ingestion.cancel()
            await asyncio.gather(ingestion, return_exceptions=True)
            abandoned = await pipeline.close(grace=settings.SHUTDOWN_GRACE)
            LOG.info("relay stopped (%d writes abandoned)", abandoned)
        await storage.close()
