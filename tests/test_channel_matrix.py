"""Channel x subscription-version x encoding conformance matrix.

Runs the single-event scenario for every reference channel implementation,
every subscription contract revision and every event encoding:
    2 channels x 2 subscription versions x 2 encodings = 8 test cases.

Each case provisions its own uniquely named resources in one shared local
cluster namespace.
"""

import pytest

from eventing_conformance import SUPPORTED_CHANNEL_KINDS
from eventing_conformance.channels import descriptor_for
from eventing_conformance.framework.config import RunOptions
from eventing_conformance.framework.envelope import Encoding
from eventing_conformance.framework.resources import Native, SubscriptionVersion
from eventing_conformance.scenarios.base import ScenarioStatus

CHANNELS = SUPPORTED_CHANNEL_KINDS
SUBSCRIPTION_VERSIONS = [v.value for v in SubscriptionVersion]
ENCODINGS = [e.value for e in Encoding]


@pytest.mark.asyncio
@pytest.mark.timeout(30)
@pytest.mark.parametrize("channel_kind", CHANNELS)
@pytest.mark.parametrize("subscription_version", SUBSCRIPTION_VERSIONS)
@pytest.mark.parametrize("encoding", ENCODINGS)
async def test_channel_single_event_matrix(runner, channel_kind, subscription_version, encoding):
    """Test a specific channel x subscription version x encoding combination."""
    options = RunOptions(
        encoding=Encoding.parse(encoding),
        poll_interval=0.01,
        readiness_timeout=5.0,
        delivery_timeout=5.0,
        delivery_max_attempts=500,
    )

    result = await runner.run_cell(
        descriptor_for(channel_kind),
        SubscriptionVersion.parse(subscription_version),
        Native(),
        options,
    )

    assert result.status == ScenarioStatus.PASS, (
        f"[{channel_kind} / subscription {subscription_version} / {encoding}] failed: "
        f"{result.error_message}"
    )
