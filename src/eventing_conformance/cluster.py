"""In-process reference cluster.

LocalCluster implements every collaborator the matrix runner needs
(ResourceSet, StatusSource, EventPublisher, LogSource) inside one asyncio
event loop, so the whole protocol can run without real infrastructure.

Resources live in a single namespace keyed by (kind, name). Each becomes
ready ``provisioning_delay`` seconds after creation, which mimics the
eventual consistency of a real control plane.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Type

from .channels import CHANNEL_TYPES, Channel, CborLogChannel, ChannelClosed, EventLogger
from .channels.message import encode
from .framework.envelope import EventEnvelope
from .framework.errors import ProvisioningError, PublishError, SubscriberUnreachable
from .framework.resources import (
    ChannelDescriptor,
    ResourceRef,
    ResourceRefs,
    ResourceStatus,
    SubscriptionVersion,
)

logger = logging.getLogger(__name__)

SUBSCRIBER_KIND = "Service"
SUBSCRIBER_API_VERSION = "v1"
SUBSCRIPTION_KIND = "Subscription"


@dataclass
class Resource:
    """One object stored in the cluster."""

    ref: ResourceRef
    created_at: float
    spec: Dict[str, Any] = field(default_factory=dict)
    obj: Any = None


class LocalCluster:
    """Single-namespace, in-process stand-in for a cluster.

    Args:
        namespace: Name reported in logs
        channel_types: Channel kind registry, defaults to all reference channels
        provisioning_delay: Seconds before a new resource may report ready
        log_dir: Directory for persistent channel logs (temporary if None)
    """

    def __init__(
        self,
        namespace: str = "default",
        channel_types: Optional[Dict[str, Type[Channel]]] = None,
        provisioning_delay: float = 0.0,
        log_dir: Optional[Path] = None,
    ):
        self.namespace = namespace
        self.channel_types = dict(channel_types if channel_types is not None else CHANNEL_TYPES)
        self.provisioning_delay = provisioning_delay
        self.log_dir = log_dir
        self._resources: Dict[Tuple[str, str], Resource] = {}
        self._stalled: Set[str] = set()
        self.teardowns = 0
        # Every resource ever created, in creation order
        self.history: List[Resource] = []

    # -- inspection -----------------------------------------------------

    def get(self, ref: ResourceRef) -> Optional[Resource]:
        return self._resources.get((ref.kind, ref.name))

    def names(self) -> Set[str]:
        return {name for _, name in self._resources}

    def stall(self, kind: str) -> None:
        """Make every resource of ``kind`` report not-ready forever."""
        self._stalled.add(kind)

    # -- ResourceSet ----------------------------------------------------

    async def create(
        self,
        channel: ChannelDescriptor,
        channel_name: str,
        subscriber_name: str,
        subscription_name: str,
        subscription_version: SubscriptionVersion,
        channel_ref_api_version: str,
    ) -> ResourceRefs:
        """Create channel, subscriber and subscription, in that order.

        Creation is all-or-nothing: if any step fails, whatever was already
        created is removed again before the error propagates.
        """
        created = []
        try:
            channel_ref = await self.create_channel(channel, channel_name)
            created.append(channel_ref)
            subscriber_ref = await self.create_subscriber(subscriber_name)
            created.append(subscriber_ref)
            subscription_ref = await self.create_subscription(
                subscription_name,
                subscription_version,
                subscription_version.render_spec(
                    ResourceRef(channel.kind, channel_name, channel_ref_api_version),
                    subscriber_name,
                ),
            )
        except BaseException:
            await self._delete_all(reversed(created))
            raise
        return ResourceRefs(channel=channel_ref, subscriber=subscriber_ref, subscription=subscription_ref)

    async def create_channel(self, descriptor: ChannelDescriptor, name: str) -> ResourceRef:
        channel_type = self.channel_types.get(descriptor.kind)
        if channel_type is None:
            raise ProvisioningError(descriptor.kind, name, "no such channel kind is installed")
        if not channel_type.serves(descriptor.api_version):
            raise ProvisioningError(
                descriptor.kind, name, f"API version {descriptor.api_version} is not served"
            )
        ref = ResourceRef(descriptor.kind, name, descriptor.api_version)
        self._ensure_absent(ref)

        if issubclass(channel_type, CborLogChannel):
            channel = channel_type(name, log_dir=self.log_dir)
        else:
            channel = channel_type(name)
        await channel.start()
        self._store(ref, obj=channel)
        logger.debug("Created %s in namespace %s", ref, self.namespace)
        return ref

    async def create_subscriber(self, name: str) -> ResourceRef:
        ref = ResourceRef(SUBSCRIBER_KIND, name, SUBSCRIBER_API_VERSION)
        self._ensure_absent(ref)
        self._store(ref, obj=EventLogger(name))
        logger.debug("Created %s in namespace %s", ref, self.namespace)
        return ref

    async def create_subscription(
        self,
        name: str,
        version: SubscriptionVersion,
        spec: Dict[str, Any],
    ) -> ResourceRef:
        """Create a subscription; its channel and subscriber must already exist."""
        ref = ResourceRef(SUBSCRIPTION_KIND, name, version.api_version)
        self._ensure_absent(ref)

        channel_spec = spec.get("channel") or {}
        channel_res = self._resources.get((channel_spec.get("kind"), channel_spec.get("name")))
        if channel_res is None:
            raise ProvisioningError(
                SUBSCRIPTION_KIND,
                name,
                f"channel {channel_spec.get('kind')}/{channel_spec.get('name')} does not exist",
            )
        try:
            subscriber_name = version.subscriber_of(spec)
        except ValueError as e:
            raise ProvisioningError(SUBSCRIPTION_KIND, name, str(e))
        subscriber_res = self._resources.get((SUBSCRIBER_KIND, subscriber_name))
        if subscriber_res is None:
            raise ProvisioningError(
                SUBSCRIPTION_KIND, name, f"subscriber {subscriber_name} does not exist"
            )

        # A subscription to an unserved channel version is stored but never
        # binds, so it stays not-ready
        channel: Channel = channel_res.obj
        if channel.serves(channel_spec.get("apiVersion", "")):
            channel.subscribe(name, subscriber_res.obj.receive)

        self._store(ref, spec=spec)
        logger.debug("Created %s (%s) in namespace %s", ref, version.value, self.namespace)
        return ref

    async def teardown(self, refs: ResourceRefs) -> None:
        """Delete the scenario's resources. Missing resources are ignored."""
        self.teardowns += 1
        await self._delete_all(reversed(refs.all()))

    async def _delete_all(self, refs: Iterable[ResourceRef]) -> None:
        for ref in refs:
            await self._delete(ref)

    async def _delete(self, ref: ResourceRef) -> None:
        resource = self._resources.pop((ref.kind, ref.name), None)
        if resource is None:
            return
        if ref.kind == SUBSCRIPTION_KIND:
            channel_spec = resource.spec.get("channel") or {}
            channel_res = self._resources.get((channel_spec.get("kind"), channel_spec.get("name")))
            if channel_res is not None:
                channel_res.obj.unsubscribe(ref.name)
        elif isinstance(resource.obj, Channel):
            await resource.obj.close()
        elif isinstance(resource.obj, EventLogger):
            resource.obj.stop()
        logger.debug("Deleted %s", ref)

    def _ensure_absent(self, ref: ResourceRef) -> None:
        if (ref.kind, ref.name) in self._resources:
            raise ProvisioningError(ref.kind, ref.name, "already exists")

    def _store(self, ref: ResourceRef, spec=None, obj=None) -> None:
        loop = asyncio.get_running_loop()
        resource = Resource(ref=ref, created_at=loop.time(), spec=spec or {}, obj=obj)
        self._resources[(ref.kind, ref.name)] = resource
        self.history.append(resource)

    # -- StatusSource ---------------------------------------------------

    async def status(self, ref: ResourceRef) -> ResourceStatus:
        resource = self.get(ref)
        if resource is None:
            return ResourceStatus(False, "NotFound")
        if ref.kind in self._stalled:
            return ResourceStatus(False, "Stalled")
        if asyncio.get_running_loop().time() - resource.created_at < self.provisioning_delay:
            return ResourceStatus(False, "Provisioning")

        if isinstance(resource.obj, Channel):
            if not resource.obj.is_ready:
                return ResourceStatus(False, "DispatcherNotRunning")
        elif ref.kind == SUBSCRIPTION_KIND:
            return self._subscription_status(resource)
        return ResourceStatus(True)

    def _subscription_status(self, resource: Resource) -> ResourceStatus:
        channel_spec = resource.spec.get("channel") or {}
        channel_res = self._resources.get((channel_spec.get("kind"), channel_spec.get("name")))
        if channel_res is None:
            return ResourceStatus(False, "ChannelNotFound")
        api_version = channel_spec.get("apiVersion", "")
        if not channel_res.obj.serves(api_version):
            return ResourceStatus(False, f"ChannelVersionNotServed: {api_version}")
        return ResourceStatus(True)

    # -- EventPublisher -------------------------------------------------

    async def publish(self, channel: ResourceRef, envelope: EventEnvelope) -> None:
        resource = self.get(channel)
        if resource is None or not isinstance(resource.obj, Channel):
            raise PublishError(channel.name, "channel does not exist")
        try:
            await resource.obj.accept(encode(envelope))
        except ChannelClosed as e:
            raise PublishError(channel.name, str(e))
        except OSError as e:
            raise PublishError(channel.name, f"{type(e).__name__}: {e}")
        logger.debug("Published %s (%s) to %s", envelope.id, envelope.encoding.value, channel)

    # -- LogSource ------------------------------------------------------

    async def read(self, subscriber: ResourceRef) -> str:
        resource = self.get(subscriber)
        if resource is None or not isinstance(resource.obj, EventLogger):
            raise SubscriberUnreachable(subscriber.name, "no such subscriber")
        return resource.obj.output()

    # -- lifecycle ------------------------------------------------------

    async def close(self) -> None:
        """Delete everything still in the namespace."""
        await self._delete_all([r.ref for r in list(self._resources.values())])

    async def __aenter__(self) -> "LocalCluster":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
