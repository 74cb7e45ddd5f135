"""BDD step definitions for relay.feature.

Steps drive a BatchingPipeline in-process with a manual clock so flush
triggers are deterministic; points land in an InMemoryPointStorage.
"""

import asyncio
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

import pytest
from pytest_bdd import given, parsers, then, when

from metricrelay.adapters.storage.in_memory import InMemoryPointStorage
from metricrelay.core.context import CounterResetPolicy, RelayContext
from metricrelay.core.models import DataSourceKind, MetricSample
from metricrelay.core.pipeline import BatchingPipeline
from metricrelay.core.writer import BackendWriter


class ManualClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@dataclass
class RelayScenarioContext:
    """Shared state between steps in a relay scenario."""

    context: RelayContext
    storage: InMemoryPointStorage = field(default_factory=InMemoryPointStorage)
    clock: ManualClock = field(default_factory=ManualClock)
    writer: BackendWriter | None = None
    pipeline: BatchingPipeline | None = None

    def start(self) -> BatchingPipeline:
        if self.pipeline is None:
            self.writer = BackendWriter(self.storage)
            self.pipeline = BatchingPipeline(self.context, self.writer, clock=self.clock)
        return self.pipeline


def run_async(coro):
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


async def _ingest(
    relay: RelayScenarioContext, timed: Iterable[tuple[float, MetricSample]]
) -> None:
    """Feed (clock seconds, sample) pairs and wait for the resulting writes."""
    pipeline = relay.start()
    for now, sample in timed:
        relay.clock.now = now
        pipeline.ingest(sample)
    await relay.writer.drain()


@pytest.fixture
def relay(context: RelayContext) -> RelayScenarioContext:
    """Fresh relay for each scenario."""
    return RelayScenarioContext(context=context)


# === Given ===


@given("a relay with normalization enabled")
def given_relay(relay: RelayScenarioContext) -> None:
    relay.context.normalize = True


@given("counter resets are suppressed")
def given_counter_resets_suppressed(relay: RelayScenarioContext) -> None:
    relay.context.counter_reset = CounterResetPolicy.SUPPRESS


# === When ===


@when(
    parsers.parse(
        'a {kind} sample for host "{host}" with value {value:g} arrives at {ms:d} ms'
    )
)
def when_sample_arrives(
    relay: RelayScenarioContext,
    make_sample: Callable[..., MetricSample],
    kind: str,
    host: str,
    value: float,
    ms: int,
) -> None:
    sample = make_sample(value, kind=DataSourceKind[kind], host=host, timestamp=ms)
    run_async(_ingest(relay, [(ms / 1000, sample)]))


@when(parsers.parse("{count:d} GAUGE samples arrive within {ms:d} ms"))
def when_gauges_arrive(
    relay: RelayScenarioContext,
    make_sample: Callable[..., MetricSample],
    count: int,
    ms: int,
) -> None:
    step = ms / count
    timed = [
        (
            i * step / 1000,
            make_sample(
                float(i), plugin="load", type="load", type_instance="now", timestamp=int(i * step)
            ),
        )
        for i in range(count)
    ]
    run_async(_ingest(relay, timed))


@when("the relay shuts down")
def when_relay_shuts_down(relay: RelayScenarioContext) -> None:
    async def _close() -> int:
        return await relay.start().close(grace=1.0)

    assert run_async(_close()) == 0


# === Then ===


@then(parsers.re(r"the backend received (?P<count>\d+) points?"), converters={"count": int})
def then_point_count(relay: RelayScenarioContext, count: int) -> None:
    assert len(relay.storage.points) == count


@then(parsers.parse('the backend received "{name}" on host "{host}" with value {value:g}'))
def then_point_received(
    relay: RelayScenarioContext, name: str, host: str, value: float
) -> None:
    assert [(p.name, p.host, p.value) for p in relay.storage.points] == [(name, host, value)]


@then(parsers.parse("the backend received batches of {sizes}"))
def then_batch_sizes(relay: RelayScenarioContext, sizes: str) -> None:
    expected = [int(size) for size in sizes.split(",")]
    assert [len(batch) for batch in relay.storage.batches] == expected
