"""Event envelope and message encoding tests."""

import dataclasses
import json

import pytest

from eventing_conformance.channels.message import (
    STRUCTURED_CONTENT_TYPE,
    MalformedMessage,
    Message,
    decode,
    encode,
)
from eventing_conformance.framework.envelope import Encoding, EventEnvelope


def test_encoding_parse_accepts_any_case():
    assert Encoding.parse("Binary") is Encoding.BINARY
    assert Encoding.parse(" structured ") is Encoding.STRUCTURED
    assert Encoding.parse(Encoding.BINARY) is Encoding.BINARY


def test_encoding_parse_rejects_unknown():
    with pytest.raises(ValueError, match="Unknown encoding"):
        Encoding.parse("protobuf")


def test_new_envelope_payload_is_unique():
    a = EventEnvelope.new("sender", "binary")
    b = EventEnvelope.new("sender", "binary")

    assert a.payload.startswith("TestSingleEvent-")
    assert a.payload != b.payload
    assert a.id != b.id


def test_envelope_is_immutable():
    envelope = EventEnvelope.new("sender", Encoding.BINARY)
    with pytest.raises(dataclasses.FrozenInstanceError):
        envelope.payload = "other"


def test_envelope_data_wraps_payload():
    envelope = EventEnvelope.new("sender", Encoding.STRUCTURED)
    assert json.loads(envelope.data) == {"msg": envelope.payload}


def test_binary_encoding_uses_ce_headers():
    envelope = EventEnvelope.new("e2e-sender", Encoding.BINARY)
    message = encode(envelope)

    assert message.headers["ce-source"] == "e2e-sender"
    assert message.headers["ce-id"] == envelope.id
    assert message.headers["content-type"] == "application/json"
    assert json.loads(message.body) == {"msg": envelope.payload}


def test_structured_encoding_is_single_document():
    envelope = EventEnvelope.new("e2e-sender", Encoding.STRUCTURED)
    message = encode(envelope)

    assert message.headers == {"content-type": STRUCTURED_CONTENT_TYPE}
    document = json.loads(message.body)
    assert document["source"] == "e2e-sender"
    assert document["data"] == {"msg": envelope.payload}

    event = decode(message)
    assert event["id"] == envelope.id
    assert event["data"]["msg"] == envelope.payload


def test_decode_rejects_missing_attributes():
    message = Message(headers={"content-type": "application/json", "ce-id": "1"}, body=b"{}")
    with pytest.raises(MalformedMessage, match="source"):
        decode(message)


def test_decode_rejects_garbage_body():
    message = Message(headers={"content-type": STRUCTURED_CONTENT_TYPE}, body=b"\xff\x00")
    with pytest.raises(MalformedMessage):
        decode(message)
