"""CloudEvents-style message encoding used by the reference channels.

binary:      attributes travel as ``ce-*`` headers, the event data is the body
structured:  the whole event is one JSON document in the body
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict

from ..framework.envelope import Encoding, EventEnvelope

SPEC_VERSION = "1.0"
STRUCTURED_CONTENT_TYPE = "application/cloudevents+json"
DATA_CONTENT_TYPE = "application/json"

_ATTRIBUTES = ("specversion", "id", "source", "type")


class MalformedMessage(ValueError):
    """Message could not be decoded as an event."""
    pass


@dataclass(frozen=True)
class Message:
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def to_wire(self) -> Dict[str, Any]:
        return {"headers": dict(self.headers), "body": self.body}

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Message":
        try:
            return cls(headers=dict(data["headers"]), body=bytes(data["body"]))
        except (KeyError, TypeError) as e:
            raise MalformedMessage(f"Invalid wire message: {e}")


def encode(envelope: EventEnvelope) -> Message:
    attributes = {
        "specversion": SPEC_VERSION,
        "id": envelope.id,
        "source": envelope.source,
        "type": envelope.type,
    }
    if envelope.encoding is Encoding.STRUCTURED:
        document = dict(attributes)
        document["datacontenttype"] = DATA_CONTENT_TYPE
        document["data"] = json.loads(envelope.data)
        return Message(
            headers={"content-type": STRUCTURED_CONTENT_TYPE},
            body=json.dumps(document).encode("utf-8"),
        )

    headers = {f"ce-{name}": value for name, value in attributes.items()}
    headers["content-type"] = DATA_CONTENT_TYPE
    return Message(headers=headers, body=envelope.data.encode("utf-8"))


def decode(message: Message) -> Dict[str, Any]:
    """Return the event as a flat attribute dict with a ``data`` entry."""
    content_type = message.headers.get("content-type", "")
    try:
        if content_type.startswith(STRUCTURED_CONTENT_TYPE):
            event = json.loads(message.body.decode("utf-8"))
            if not isinstance(event, dict):
                raise MalformedMessage("Structured event is not a JSON object")
        else:
            event = {
                name: message.headers[f"ce-{name}"]
                for name in _ATTRIBUTES
                if f"ce-{name}" in message.headers
            }
            event["datacontenttype"] = content_type
            event["data"] = json.loads(message.body.decode("utf-8")) if message.body else None
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedMessage(f"Undecodable event body: {e}")

    missing = [name for name in _ATTRIBUTES if name not in event]
    if missing:
        raise MalformedMessage(f"Event missing attributes: {', '.join(missing)}")
    return event
