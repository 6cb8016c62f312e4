"""Error taxonomy for scenario execution.

Every error a scenario can fail with derives from ConformanceError and
carries a ``kind`` used in reported results. DeliveryNotObserved is the only
error that indicates a defect in the channel under test; everything else is
a harness or infrastructure failure.
"""

from typing import Iterable, Optional


class ConformanceError(Exception):
    """Base class for scenario failures."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class ProvisioningError(ConformanceError):
    """A resource could not be created."""

    def __init__(self, resource_kind: str, name: str, reason: str):
        self.resource_kind = resource_kind
        self.name = name
        self.reason = reason
        super().__init__(f"Failed to create {resource_kind} {name!r}: {reason}")


class ReadinessTimeout(ConformanceError):
    """Resources did not all become ready within the allowed wait."""

    def __init__(
        self,
        not_ready: Iterable[str],
        waited: float,
        reasons: Optional[dict] = None,
    ):
        self.not_ready = sorted(not_ready)
        self.waited = waited
        self.reasons = dict(reasons or {})
        detail = ", ".join(
            f"{name} ({self.reasons[name]})" if self.reasons.get(name) else name
            for name in self.not_ready
        )
        super().__init__(
            f"Resources not ready after {waited:.2f}s: {detail}"
        )


class PublishError(ConformanceError):
    """The channel did not accept the published event."""

    def __init__(self, channel: str, reason: str):
        self.channel = channel
        self.reason = reason
        super().__init__(f"Channel {channel!r} rejected event: {reason}")


class DeliveryNotObserved(ConformanceError):
    """The expected payload never showed up in the subscriber's output."""

    def __init__(
        self,
        expected: str,
        subscriber: str,
        attempts: int,
        elapsed: float,
        last_output: str = "",
    ):
        self.expected = expected
        self.subscriber = subscriber
        self.attempts = attempts
        self.elapsed = elapsed
        self.last_output = last_output
        super().__init__(
            f"String {expected!r} not found in logs of subscriber {subscriber!r} "
            f"after {attempts} attempts ({elapsed:.2f}s)"
        )


class SubscriberUnreachable(ConformanceError):
    """The subscriber's output could not be read at all."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Subscriber {name!r} unreachable: {reason}")


class RunDeadlineExceeded(ConformanceError):
    """The surrounding run deadline expired while the scenario was in flight."""

    def __init__(self, step: str, deadline: float):
        self.step = step
        self.deadline = deadline
        super().__init__(f"Run deadline of {deadline:.2f}s exceeded during {step}")
