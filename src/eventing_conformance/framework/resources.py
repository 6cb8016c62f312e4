"""Resource identities and the collaborator contracts the core depends on.

The matrix runner never provisions anything itself. It talks to four
capabilities, all declared here as protocols:

    ResourceSet     create/teardown of channel + subscriber + subscription
    StatusSource    per-resource ready condition (polled by ReadinessGate)
    EventPublisher  puts one EventEnvelope onto a channel
    LogSource       accumulated output of a subscriber (polled by DeliveryVerifier)

``eventing_conformance.cluster.LocalCluster`` implements all four in-process.
"""

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Protocol, Tuple, Union

from .. import MESSAGING_GROUP
from .envelope import EventEnvelope


class Feature(Enum):
    """Capabilities a channel implementation may declare."""

    BASIC = "basic"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class ChannelDescriptor:
    """Identifies one pluggable channel implementation.

    Attributes:
        kind: Resource kind, e.g. "InMemoryChannel"
        api_version: "group/version" the channel is served at natively
        features: Capabilities the implementation claims to support
    """

    kind: str
    api_version: str = f"{MESSAGING_GROUP}/v1beta1"
    features: FrozenSet[Feature] = field(default_factory=lambda: frozenset({Feature.BASIC}))

    @classmethod
    def parse(cls, value: str) -> "ChannelDescriptor":
        """Parse ``Kind`` or ``Kind@group/version``."""
        kind, _, api_version = value.partition("@")
        if not kind:
            raise ValueError(f"Channel descriptor {value!r} has no kind")
        if api_version:
            return cls(kind=kind, api_version=api_version)
        return cls(kind=kind)

    @property
    def group(self) -> str:
        return self.api_version.rpartition("/")[0]

    @property
    def version(self) -> str:
        return self.api_version.rpartition("/")[2]

    def supports(self, feature: Feature) -> bool:
        return feature in self.features

    def __str__(self) -> str:
        return f"{self.kind}@{self.api_version}"


class SubscriptionVersion(Enum):
    """Revision of the subscription contract to exercise."""

    V1ALPHA1 = "v1alpha1"
    V1BETA1 = "v1beta1"

    @classmethod
    def parse(cls, value) -> "SubscriptionVersion":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(v.value for v in cls)
            raise ValueError(f"Unknown subscription version {value!r} (expected one of: {valid})")

    @property
    def api_version(self) -> str:
        return f"{MESSAGING_GROUP}/{self.value}"

    def render_spec(self, channel: "ResourceRef", subscriber_name: str) -> dict:
        """Build the subscription spec this contract revision expects.

        v1alpha1 addresses the subscriber by URI; v1beta1 by object reference.
        """
        channel_ref = {
            "apiVersion": channel.api_version,
            "kind": channel.kind,
            "name": channel.name,
        }
        if self is SubscriptionVersion.V1ALPHA1:
            return {
                "channel": channel_ref,
                "subscriber": {"uri": f"http://{subscriber_name}"},
            }
        return {
            "channel": channel_ref,
            "subscriber": {
                "ref": {"apiVersion": "v1", "kind": "Service", "name": subscriber_name},
            },
        }

    def subscriber_of(self, spec: dict) -> str:
        """Inverse of render_spec for the subscriber endpoint."""
        subscriber = spec.get("subscriber") or {}
        if self is SubscriptionVersion.V1ALPHA1:
            uri = subscriber.get("uri", "")
            if not uri.startswith("http://"):
                raise ValueError(f"v1alpha1 subscriber must be an http URI, got {uri!r}")
            return uri[len("http://"):]
        ref = subscriber.get("ref") or {}
        if not ref.get("name"):
            raise ValueError("v1beta1 subscriber must be an object reference")
        return ref["name"]


@dataclass(frozen=True)
class Native:
    """Subscribe to the channel at its own API version."""

    def resolve(self, channel: ChannelDescriptor) -> str:
        return channel.api_version

    def __str__(self) -> str:
        return "native"


@dataclass(frozen=True)
class Explicit:
    """Subscribe to the channel at a caller-chosen API version."""

    api_version: str

    def resolve(self, channel: ChannelDescriptor) -> str:
        return self.api_version

    def __str__(self) -> str:
        return self.api_version


SubscriptionVersionPolicy = Union[Native, Explicit]


def parse_policy(value: Optional[str]) -> SubscriptionVersionPolicy:
    """``None``, "" or "native" select Native; anything else is an explicit API version."""
    if value is None or value.strip() in ("", "native"):
        return Native()
    value = value.strip()
    if "/" not in value:
        value = f"{MESSAGING_GROUP}/{value}"
    return Explicit(value)


@dataclass(frozen=True)
class ResourceRef:
    """Pointer to one provisioned resource."""

    kind: str
    name: str
    api_version: str

    def __str__(self) -> str:
        return f"{self.kind}/{self.name}"


@dataclass(frozen=True)
class ResourceRefs:
    """Everything one scenario provisions."""

    channel: ResourceRef
    subscriber: ResourceRef
    subscription: ResourceRef

    def all(self) -> Tuple[ResourceRef, ResourceRef, ResourceRef]:
        return (self.channel, self.subscriber, self.subscription)


@dataclass(frozen=True)
class ResourceStatus:
    ready: bool
    reason: Optional[str] = None


_DNS_LABEL_MAX = 63
_INVALID_LABEL_CHARS = re.compile(r"[^a-z0-9-]+")


def _slug(value: str) -> str:
    return _INVALID_LABEL_CHARS.sub("-", value.lower()).strip("-")


@dataclass(frozen=True)
class ScenarioNames:
    """Resource names for one scenario.

    Names are a pure function of the scenario identity. The readable part
    (test name, role, encoding) is followed by a digest of the full identity,
    so two scenarios differing only in channel or subscription version never
    collide inside one namespace.
    """

    channel: str
    sender: str
    subscriber: str
    subscription: str

    @classmethod
    def for_scenario(
        cls,
        test_name: str,
        encoding,
        channel: ChannelDescriptor,
        subscription_version: SubscriptionVersion,
    ) -> "ScenarioNames":
        encoding_tag = getattr(encoding, "value", encoding)
        identity = "|".join(
            [test_name, encoding_tag, channel.kind, channel.api_version, subscription_version.value]
        )
        prefix = _slug(test_name) or "scenario"

        def name(role: str) -> str:
            digest = hashlib.sha1(f"{identity}|{role}".encode("utf-8")).hexdigest()[:10]
            readable = f"{prefix}-{role}-{_slug(encoding_tag)}"
            room = _DNS_LABEL_MAX - len(digest) - 1
            return f"{readable[:room].rstrip('-')}-{digest}"

        return cls(
            channel=name("channel"),
            sender=name("sender"),
            subscriber=name("logger"),
            subscription=name("subscription"),
        )


class ResourceSet(Protocol):
    async def create(
        self,
        channel: ChannelDescriptor,
        channel_name: str,
        subscriber_name: str,
        subscription_name: str,
        subscription_version: SubscriptionVersion,
        channel_ref_api_version: str,
    ) -> ResourceRefs:
        ...

    async def teardown(self, refs: ResourceRefs) -> None:
        ...


class StatusSource(Protocol):
    async def status(self, ref: ResourceRef) -> ResourceStatus:
        ...


class EventPublisher(Protocol):
    async def publish(self, channel: ResourceRef, envelope: EventEnvelope) -> None:
        ...


class LogSource(Protocol):
    async def read(self, subscriber: ResourceRef) -> str:
        ...
