"""Pytest fixtures for conformance harness tests."""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio

from eventing_conformance.channels import CHANNEL_TYPES, InMemoryChannel
from eventing_conformance.cluster import LocalCluster
from eventing_conformance.framework.config import RunOptions
from eventing_conformance.framework.matrix_runner import TestMatrixRunner
from eventing_conformance.framework.resources import ResourceStatus


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--slow-cluster",
        action="store_true",
        default=False,
        help="Give every local cluster resource a real provisioning delay"
    )


class FakeClock:
    """Clock whose time only moves when someone sleeps on it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class ScriptedStatusSource:
    """Reports each resource ready once it has been polled ``ready_after`` times."""

    def __init__(self, ready_after: dict[str, int | None]):
        self.ready_after = ready_after
        self.polls: dict[str, int] = {}

    async def status(self, ref) -> ResourceStatus:
        count = self.polls[ref.name] = self.polls.get(ref.name, 0) + 1
        threshold = self.ready_after.get(ref.name, 1)
        if threshold is None or count < threshold:
            return ResourceStatus(False, "Provisioning")
        return ResourceStatus(True)


class ScriptedLogSource:
    """Returns successive outputs; the last one repeats once the script runs out."""

    def __init__(self, outputs: list[str]):
        self.outputs = outputs
        self.reads = 0

    async def read(self, subscriber) -> str:
        index = min(self.reads, len(self.outputs) - 1)
        self.reads += 1
        return self.outputs[index]


class CountingLogSource:
    """Wraps a LogSource and counts reads."""

    def __init__(self, inner):
        self.inner = inner
        self.reads = 0

    async def read(self, subscriber) -> str:
        self.reads += 1
        return await self.inner.read(subscriber)


class DroppingChannel(InMemoryChannel):
    """Accepts every message and delivers none of them."""

    kind = "DroppingChannel"

    async def _fan_out(self, message):
        return None


class DuplicatingChannel(InMemoryChannel):
    """Delivers every message twice."""

    kind = "DuplicatingChannel"

    async def _fan_out(self, message):
        await super()._fan_out(message)
        await super()._fan_out(message)


TEST_CHANNEL_TYPES = {
    **CHANNEL_TYPES,
    DroppingChannel.kind: DroppingChannel,
    DuplicatingChannel.kind: DuplicatingChannel,
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provisioning_delay(request):
    """Per-resource readiness delay for local clusters."""
    return 0.05 if request.config.getoption("--slow-cluster") else 0.0


@pytest_asyncio.fixture
async def cluster(tmp_path, provisioning_delay):
    """Local cluster with the reference channels plus the faulty test channels."""
    async with LocalCluster(
        namespace="e2e",
        channel_types=TEST_CHANNEL_TYPES,
        provisioning_delay=provisioning_delay,
        log_dir=tmp_path / "channel-logs",
    ) as c:
        yield c


@pytest.fixture
def fast_options():
    """Options sized for in-process runs."""
    return RunOptions(
        poll_interval=0.01,
        readiness_timeout=2.0,
        delivery_timeout=2.0,
        delivery_max_attempts=100,
        parallelism=4,
    )


@pytest.fixture
def runner(cluster):
    return TestMatrixRunner(cluster, cluster, cluster, cluster)
