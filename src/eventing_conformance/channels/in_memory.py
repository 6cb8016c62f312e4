"""In-memory channel: an asyncio queue drained by a dispatcher task."""

import asyncio
from typing import Optional

from ..framework.resources import Feature
from .base import Channel
from .message import Message


class InMemoryChannel(Channel):
    """Best-effort, non-persistent channel.

    Messages accepted before any subscription exists are dropped when they
    are dispatched.
    """

    kind = "InMemoryChannel"
    served_versions = ("v1alpha1", "v1beta1")
    native_version = "v1beta1"
    features = frozenset({Feature.BASIC})

    def __init__(self, name: str):
        super().__init__(name)
        self._queue: "asyncio.Queue[Message]" = asyncio.Queue()
        self._dispatcher: Optional[asyncio.Task] = None

    @property
    def is_ready(self) -> bool:
        return super().is_ready and self._dispatcher is not None and not self._dispatcher.done()

    async def start(self) -> None:
        if self._dispatcher is None:
            self._dispatcher = asyncio.create_task(self._dispatch())

    async def _enqueue(self, message: Message) -> None:
        await self._queue.put(message)

    async def _dispatch(self):
        while True:
            message = await self._queue.get()
            try:
                await self._fan_out(message)
            finally:
                self._queue.task_done()

    def _cancel_dispatcher(self):
        if self._dispatcher and not self._dispatcher.done():
            self._dispatcher.cancel()

    async def close(self) -> None:
        await super().close()
        self._cancel_dispatcher()
