"""Core conformance test framework.

The matrix runner lives in ``eventing_conformance.framework.matrix_runner``
and is imported from there directly.
"""

from .config import RunOptions
from .delivery import CheckerContains, DeliveryVerifier, VerificationResult
from .envelope import Encoding, EventEnvelope
from .errors import (
    ConformanceError,
    DeliveryNotObserved,
    ProvisioningError,
    PublishError,
    ReadinessTimeout,
    RunDeadlineExceeded,
    SubscriberUnreachable,
)
from .polling import Backoff, Clock
from .readiness import ReadinessGate
from .resources import (
    ChannelDescriptor,
    Explicit,
    Feature,
    Native,
    ResourceRef,
    ResourceRefs,
    ResourceStatus,
    ScenarioNames,
    SubscriptionVersion,
    parse_policy,
)

__all__ = [
    "RunOptions",
    "CheckerContains",
    "DeliveryVerifier",
    "VerificationResult",
    "Encoding",
    "EventEnvelope",
    "ConformanceError",
    "DeliveryNotObserved",
    "ProvisioningError",
    "PublishError",
    "ReadinessTimeout",
    "RunDeadlineExceeded",
    "SubscriberUnreachable",
    "Backoff",
    "Clock",
    "ReadinessGate",
    "ChannelDescriptor",
    "Explicit",
    "Feature",
    "Native",
    "ResourceRef",
    "ResourceRefs",
    "ResourceStatus",
    "ScenarioNames",
    "SubscriptionVersion",
    "parse_policy",
]
