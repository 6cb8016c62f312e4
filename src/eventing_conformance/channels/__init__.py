"""Reference channel implementations for the local cluster."""

from typing import Dict, List, Type

from ..framework.resources import ChannelDescriptor
from .base import Channel, ChannelClosed
from .cbor_log import CborLogChannel
from .in_memory import InMemoryChannel
from .subscriber import EventLogger

CHANNEL_TYPES: Dict[str, Type[Channel]] = {
    InMemoryChannel.kind: InMemoryChannel,
    CborLogChannel.kind: CborLogChannel,
}


def native_descriptors() -> List[ChannelDescriptor]:
    """Descriptors for every registered channel kind at its native version."""
    return [channel_type.descriptor() for channel_type in CHANNEL_TYPES.values()]


def descriptor_for(value: str) -> ChannelDescriptor:
    """Resolve ``Kind`` or ``Kind@group/version`` against the registry."""
    parsed = ChannelDescriptor.parse(value)
    channel_type = CHANNEL_TYPES.get(parsed.kind)
    if channel_type is None:
        known = ", ".join(sorted(CHANNEL_TYPES))
        raise ValueError(f"Unknown channel kind {parsed.kind!r} (known: {known})")
    if "@" not in value:
        return channel_type.descriptor()
    return ChannelDescriptor(
        kind=parsed.kind,
        api_version=parsed.api_version,
        features=channel_type.features,
    )


__all__ = [
    "CHANNEL_TYPES",
    "Channel",
    "ChannelClosed",
    "CborLogChannel",
    "EventLogger",
    "InMemoryChannel",
    "descriptor_for",
    "native_descriptors",
]
