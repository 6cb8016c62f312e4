"""Event logging subscriber.

Stands in for a logger service: every delivered event is decoded and
appended to an in-memory log, which is what delivery verification reads.
"""

import json
import logging

from .message import MalformedMessage, Message, decode

logger = logging.getLogger(__name__)


class EventLogger:
    """Subscriber that records one log line per received event."""

    def __init__(self, name: str):
        self.name = name
        self._buffer = []
        self.received = 0
        self.rejected = 0
        self.stopped = False

    async def receive(self, message: Message) -> None:
        if self.stopped:
            raise ConnectionRefusedError(f"Subscriber {self.name!r} is stopped")
        try:
            event = decode(message)
        except MalformedMessage as e:
            self.rejected += 1
            self._buffer.append(f"Rejected malformed event: {e}\n")
            return

        self.received += 1
        data = event.get("data")
        self._buffer.append(
            "Received event "
            f"id={event['id']} source={event['source']} type={event['type']} "
            f"data={json.dumps(data)}\n"
        )
        logger.debug("%s received event %s", self.name, event["id"])

    def output(self) -> str:
        """Return accumulated log output."""
        return "".join(self._buffer)

    def stop(self) -> None:
        self.stopped = True
