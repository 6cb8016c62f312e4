"""ReadinessGate polling tests."""

import pytest

from eventing_conformance.framework.errors import ReadinessTimeout
from eventing_conformance.framework.readiness import ReadinessGate
from eventing_conformance.framework.resources import ResourceRef, ResourceRefs

from conftest import ScriptedStatusSource

REFS = ResourceRefs(
    channel=ResourceRef("InMemoryChannel", "ch", "messaging.conformance.dev/v1beta1"),
    subscriber=ResourceRef("Service", "logger", "v1"),
    subscription=ResourceRef("Subscription", "sub", "messaging.conformance.dev/v1beta1"),
)


@pytest.mark.asyncio
async def test_returns_immediately_when_all_ready(clock):
    source = ScriptedStatusSource({})
    gate = ReadinessGate(source, clock=clock, poll_interval=1.0)

    waited = await gate.wait_all(REFS, max_wait=10)

    assert waited == 0
    assert clock.sleeps == []


@pytest.mark.asyncio
async def test_polls_at_fixed_interval_until_ready(clock):
    source = ScriptedStatusSource({"ch": 2, "logger": 4, "sub": 3})
    gate = ReadinessGate(source, clock=clock, poll_interval=0.5)

    waited = await gate.wait_all(REFS, max_wait=10)

    assert clock.sleeps == [0.5, 0.5, 0.5]
    assert waited == pytest.approx(1.5)
    assert source.polls == {"ch": 4, "logger": 4, "sub": 4}


@pytest.mark.asyncio
async def test_timeout_names_resources_still_pending(clock):
    source = ScriptedStatusSource({"ch": 1, "logger": None, "sub": None})
    gate = ReadinessGate(source, clock=clock, poll_interval=1.0)

    with pytest.raises(ReadinessTimeout) as excinfo:
        await gate.wait_all(REFS, max_wait=3)

    error = excinfo.value
    assert error.not_ready == ["Service/logger", "Subscription/sub"]
    assert error.reasons["Service/logger"] == "Provisioning"
    assert error.waited == pytest.approx(3)
    assert error.kind == "ReadinessTimeout"


@pytest.mark.asyncio
async def test_last_sleep_is_clipped_to_remaining_budget(clock):
    source = ScriptedStatusSource({"ch": None})
    gate = ReadinessGate(source, clock=clock, poll_interval=2.0)

    with pytest.raises(ReadinessTimeout):
        await gate.wait_all([REFS.channel], max_wait=5)

    assert clock.sleeps == [2.0, 2.0, 1.0]
    assert clock.now == pytest.approx(5)


@pytest.mark.asyncio
async def test_zero_wait_checks_once(clock):
    source = ScriptedStatusSource({"ch": None})
    gate = ReadinessGate(source, clock=clock)

    with pytest.raises(ReadinessTimeout):
        await gate.wait_all([REFS.channel], max_wait=0)

    assert source.polls == {"ch": 1}


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        ReadinessGate(ScriptedStatusSource({}), poll_interval=0)
