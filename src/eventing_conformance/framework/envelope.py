"""Event envelopes published by scenarios."""

import json
import uuid
from dataclasses import dataclass, field
from enum import Enum


class Encoding(Enum):
    """How the event is laid out on the wire."""

    BINARY = "binary"
    STRUCTURED = "structured"

    @classmethod
    def parse(cls, value) -> "Encoding":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(e.value for e in cls)
            raise ValueError(f"Unknown encoding {value!r} (expected one of: {valid})")


EVENT_TYPE = "dev.conformance.test.single"


@dataclass(frozen=True)
class EventEnvelope:
    """One event to publish.

    ``payload`` is the string the subscriber must log; it is embedded in the
    event data as ``{"msg": payload}``.
    """

    payload: str
    source: str
    encoding: Encoding
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    type: str = EVENT_TYPE

    @classmethod
    def new(cls, source: str, encoding, prefix: str = "TestSingleEvent") -> "EventEnvelope":
        """Build an envelope with a fresh, run-unique payload."""
        return cls(
            payload=f"{prefix}-{uuid.uuid4()}",
            source=source,
            encoding=Encoding.parse(encoding),
        )

    @property
    def data(self) -> str:
        return json.dumps({"msg": self.payload})
