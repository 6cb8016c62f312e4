"""Base classes for test scenarios."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..framework.config import RunOptions
from ..framework.delivery import DeliveryVerifier, VerificationResult
from ..framework.errors import ConformanceError, DeliveryNotObserved
from ..framework.readiness import ReadinessGate
from ..framework.resources import (
    ChannelDescriptor,
    EventPublisher,
    Feature,
    ResourceSet,
    SubscriptionVersion,
    SubscriptionVersionPolicy,
)


class ScenarioStatus(Enum):
    """Status of scenario execution."""

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    SKIP = "skip"


class ScenarioStep(Enum):
    """Protocol step a scenario is in; reported with failures."""

    PENDING = "pending"
    NAMING = "naming"
    PROVISIONING = "provisioning"
    READINESS = "readiness"
    PUBLISH = "publish"
    VERIFY = "verify"
    DONE = "done"


@dataclass
class ScenarioResult:
    """Result of scenario execution for one matrix cell."""

    status: ScenarioStatus
    duration_ms: float
    error_message: Optional[str] = None
    metrics: Optional[Dict[str, Any]] = None
    channel: Optional[str] = None
    subscription_version: Optional[str] = None
    step: Optional[ScenarioStep] = None
    error_kind: Optional[str] = None
    expected_payload: Optional[str] = None
    verification: Optional[VerificationResult] = None

    @property
    def passed(self) -> bool:
        return self.status == ScenarioStatus.PASS

    @property
    def cell(self) -> str:
        return f"{self.channel} x subscription {self.subscription_version}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "channel": self.channel,
            "subscription_version": self.subscription_version,
            "step": self.step.value if self.step else None,
            "error_kind": self.error_kind,
            "error_message": self.error_message,
            "expected_payload": self.expected_payload,
            "metrics": self.metrics,
        }
        if self.verification is not None:
            data["verification"] = {
                "matched": self.verification.matched,
                "observed_after": round(self.verification.observed_after, 3),
                "attempts": self.verification.attempts,
                "snippet": self.verification.snippet,
            }
        return data

    def __str__(self) -> str:
        status_str = self.status.value.upper()
        duration_str = f"{self.duration_ms:.2f}ms"

        if self.status == ScenarioStatus.PASS:
            return f"✓ {status_str} ({duration_str})"
        elif self.error_message:
            where = f" [{self.step.value}]" if self.step else ""
            return f"✗ {status_str}{where} ({duration_str}): {self.error_message}"
        else:
            return f"✗ {status_str} ({duration_str})"


@dataclass
class ScenarioContext:
    """Everything a scenario needs to run one matrix cell."""

    channel: ChannelDescriptor
    subscription_version: SubscriptionVersion
    policy: SubscriptionVersionPolicy
    options: RunOptions
    resource_set: ResourceSet
    publisher: EventPublisher
    readiness_gate: ReadinessGate
    verifier: DeliveryVerifier
    metrics: Dict[str, Any] = field(default_factory=dict)


class Scenario(ABC):
    """Base class for all test scenarios.

    A scenario instance runs exactly one matrix cell; ``step`` tracks how far
    it got so failures and cancellations can be attributed.
    """

    required_feature: Feature = Feature.BASIC

    def __init__(self):
        self.step = ScenarioStep.PENDING
        self.expected_payload: Optional[str] = None
        self.verification: Optional[VerificationResult] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique scenario name."""
        pass

    @property
    def description(self) -> str:
        """Human-readable description."""
        return self.name

    @abstractmethod
    async def execute(self, ctx: ScenarioContext) -> ScenarioResult:
        """Execute scenario and return result."""
        pass

    def _result(self, ctx: ScenarioContext, status: ScenarioStatus, duration_ms: float, **kwargs) -> ScenarioResult:
        return ScenarioResult(
            status=status,
            duration_ms=duration_ms,
            channel=str(ctx.channel),
            subscription_version=ctx.subscription_version.value,
            step=self.step,
            expected_payload=self.expected_payload,
            verification=self.verification,
            metrics=dict(ctx.metrics) or None,
            **kwargs,
        )

    async def _timed_execute(self, ctx: ScenarioContext, func):
        """Execute function and measure duration."""
        start = time.perf_counter()
        try:
            await func()
            duration_ms = (time.perf_counter() - start) * 1000
            return self._result(ctx, ScenarioStatus.PASS, duration_ms)
        except (AssertionError, DeliveryNotObserved) as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return self._result(
                ctx,
                ScenarioStatus.FAIL,
                duration_ms,
                error_kind=type(e).__name__,
                error_message=str(e),
            )
        except ConformanceError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return self._result(
                ctx,
                ScenarioStatus.ERROR,
                duration_ms,
                error_kind=e.kind,
                error_message=str(e),
            )
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return self._result(
                ctx,
                ScenarioStatus.ERROR,
                duration_ms,
                error_kind=type(e).__name__,
                error_message=f"{type(e).__name__}: {str(e)}",
            )
