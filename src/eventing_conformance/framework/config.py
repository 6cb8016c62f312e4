"""Run configuration.

Defaults can be overridden through environment variables:

  CONFORMANCE_ENCODING               binary | structured (default binary)
  CONFORMANCE_SUBSCRIPTION_VERSIONS  comma-separated, e.g. "v1alpha1,v1beta1"
  CONFORMANCE_POLL_INTERVAL          seconds between polls (default 0.5)
  CONFORMANCE_READINESS_TIMEOUT      seconds (default 60)
  CONFORMANCE_DELIVERY_TIMEOUT       seconds (default 30)
  CONFORMANCE_DELIVERY_ATTEMPTS      max log reads (default 20)
  CONFORMANCE_BACKOFF_MULTIPLIER     1 = fixed interval (default 1)
  CONFORMANCE_MAX_POLL_INTERVAL      cap for exponential backoff (default 5)
  CONFORMANCE_PARALLELISM            concurrent matrix cells (default 4)
  CONFORMANCE_RUN_DEADLINE           seconds for the whole run, unset = none
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from .envelope import Encoding
from .polling import Backoff
from .resources import SubscriptionVersion


def _all_versions() -> Tuple[SubscriptionVersion, ...]:
    return tuple(SubscriptionVersion)


@dataclass(frozen=True)
class RunOptions:
    """Knobs for one matrix run."""

    encoding: Encoding = Encoding.BINARY
    subscription_versions: Tuple[SubscriptionVersion, ...] = field(default_factory=_all_versions)
    poll_interval: float = 0.5
    readiness_timeout: float = 60.0
    delivery_timeout: float = 30.0
    delivery_max_attempts: int = 20
    backoff_multiplier: float = 1.0
    max_poll_interval: float = 5.0
    parallelism: int = 4
    run_deadline: Optional[float] = None
    test_name: str = "e2e-singleevent"

    def __post_init__(self):
        if not self.subscription_versions:
            raise ValueError("At least one subscription version is required")
        if self.parallelism < 1:
            raise ValueError(f"parallelism must be >= 1, got {self.parallelism}")
        if self.readiness_timeout < 0 or self.delivery_timeout < 0:
            raise ValueError("Timeouts must not be negative")
        if self.run_deadline is not None and self.run_deadline <= 0:
            raise ValueError(f"run_deadline must be positive, got {self.run_deadline}")
        # Validates interval/multiplier combination up front
        self.backoff

    @property
    def backoff(self) -> Backoff:
        return Backoff(
            initial=self.poll_interval,
            multiplier=self.backoff_multiplier,
            max_interval=max(self.max_poll_interval, self.poll_interval),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "RunOptions":
        """Build options from CONFORMANCE_* variables; keyword overrides win."""
        env = os.environ if environ is None else environ
        values = {}

        if "CONFORMANCE_ENCODING" in env:
            values["encoding"] = Encoding.parse(env["CONFORMANCE_ENCODING"])
        if "CONFORMANCE_SUBSCRIPTION_VERSIONS" in env:
            values["subscription_versions"] = tuple(
                SubscriptionVersion.parse(v)
                for v in env["CONFORMANCE_SUBSCRIPTION_VERSIONS"].split(",")
                if v.strip()
            )

        floats = {
            "CONFORMANCE_POLL_INTERVAL": "poll_interval",
            "CONFORMANCE_READINESS_TIMEOUT": "readiness_timeout",
            "CONFORMANCE_DELIVERY_TIMEOUT": "delivery_timeout",
            "CONFORMANCE_BACKOFF_MULTIPLIER": "backoff_multiplier",
            "CONFORMANCE_MAX_POLL_INTERVAL": "max_poll_interval",
            "CONFORMANCE_RUN_DEADLINE": "run_deadline",
        }
        for var, name in floats.items():
            if env.get(var):
                values[name] = float(env[var])

        ints = {
            "CONFORMANCE_DELIVERY_ATTEMPTS": "delivery_max_attempts",
            "CONFORMANCE_PARALLELISM": "parallelism",
        }
        for var, name in ints.items():
            if env.get(var):
                values[name] = int(env[var])

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
