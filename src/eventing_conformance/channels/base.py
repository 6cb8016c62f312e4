"""Base class for reference channel implementations."""

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, FrozenSet, Optional, Tuple

from .. import MESSAGING_GROUP
from ..framework.resources import ChannelDescriptor, Feature
from .message import Message

logger = logging.getLogger(__name__)

Deliver = Callable[[Message], Awaitable[None]]


class ChannelClosed(RuntimeError):
    """Channel no longer accepts messages."""
    pass


class Channel(ABC):
    """A channel accepts messages and forwards each to every subscription.

    Delivery is at-least-once: a subscriber that raises is retried up to
    ``delivery_retries`` times, so it may see the same message twice.
    """

    kind: str = ""
    served_versions: Tuple[str, ...] = ("v1beta1",)
    native_version: str = "v1beta1"
    features: FrozenSet[Feature] = frozenset({Feature.BASIC})
    delivery_retries: int = 3

    def __init__(self, name: str):
        self.name = name
        self._subscriptions: Dict[str, Deliver] = {}
        self._closed = False
        self.accepted = 0
        self.delivered = 0

    @classmethod
    def descriptor(cls, version: Optional[str] = None) -> ChannelDescriptor:
        return ChannelDescriptor(
            kind=cls.kind,
            api_version=f"{MESSAGING_GROUP}/{version or cls.native_version}",
            features=cls.features,
        )

    @classmethod
    def serves(cls, api_version: str) -> bool:
        group, _, version = api_version.rpartition("/")
        return group == MESSAGING_GROUP and version in cls.served_versions

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_ready(self) -> bool:
        return not self._closed

    def subscribe(self, name: str, deliver: Deliver) -> None:
        self._subscriptions[name] = deliver

    def unsubscribe(self, name: str) -> None:
        self._subscriptions.pop(name, None)

    async def accept(self, message: Message) -> None:
        if self._closed:
            raise ChannelClosed(f"{self.kind} {self.name!r} is closed")
        await self._enqueue(message)
        self.accepted += 1

    async def _fan_out(self, message: Message) -> None:
        """Forward one message to every current subscription."""
        for name, deliver in list(self._subscriptions.items()):
            for attempt in range(1, self.delivery_retries + 1):
                try:
                    await deliver(message)
                    self.delivered += 1
                    break
                except Exception:
                    logger.warning(
                        "%s %r: delivery to %s failed (attempt %d/%d)",
                        self.kind,
                        self.name,
                        name,
                        attempt,
                        self.delivery_retries,
                        exc_info=True,
                    )

    @abstractmethod
    async def start(self) -> None:
        """Begin dispatching accepted messages."""
        pass

    @abstractmethod
    async def _enqueue(self, message: Message) -> None:
        pass

    async def close(self) -> None:
        self._closed = True
        self._subscriptions.clear()
