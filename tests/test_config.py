"""RunOptions tests."""

import pytest

from eventing_conformance.framework.config import RunOptions
from eventing_conformance.framework.envelope import Encoding
from eventing_conformance.framework.resources import SubscriptionVersion


def test_defaults_cover_every_subscription_version():
    options = RunOptions()
    assert options.encoding is Encoding.BINARY
    assert options.subscription_versions == tuple(SubscriptionVersion)
    assert options.backoff.multiplier == 1.0


def test_from_env_reads_conformance_variables():
    options = RunOptions.from_env({
        "CONFORMANCE_ENCODING": "structured",
        "CONFORMANCE_SUBSCRIPTION_VERSIONS": "v1alpha1, ",
        "CONFORMANCE_POLL_INTERVAL": "0.25",
        "CONFORMANCE_DELIVERY_ATTEMPTS": "3",
        "CONFORMANCE_RUN_DEADLINE": "120",
    })

    assert options.encoding is Encoding.STRUCTURED
    assert options.subscription_versions == (SubscriptionVersion.V1ALPHA1,)
    assert options.poll_interval == 0.25
    assert options.delivery_max_attempts == 3
    assert options.run_deadline == 120.0


def test_overrides_win_and_none_is_ignored():
    options = RunOptions.from_env(
        {"CONFORMANCE_PARALLELISM": "8"}, parallelism=2, delivery_timeout=None
    )
    assert options.parallelism == 2
    assert options.delivery_timeout == RunOptions().delivery_timeout


def test_exponential_backoff_from_options():
    options = RunOptions(poll_interval=0.5, backoff_multiplier=2.0, max_poll_interval=3.0)
    assert [options.backoff.interval(n) for n in range(1, 5)] == [0.5, 1.0, 2.0, 3.0]


@pytest.mark.parametrize("kwargs", [
    {"subscription_versions": ()},
    {"parallelism": 0},
    {"readiness_timeout": -1},
    {"run_deadline": 0},
    {"backoff_multiplier": 0.5},
])
def test_invalid_options_rejected(kwargs):
    with pytest.raises(ValueError):
        RunOptions(**kwargs)
