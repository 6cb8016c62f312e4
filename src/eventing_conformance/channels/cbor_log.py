"""Persistent channel backed by an append-only log of CBOR frames.

Each accepted message is written as one frame:

    [4-byte big-endian length][CBOR map {"headers": {...}, "body": bytes}]

A dispatcher task tails the file and forwards every complete frame to the
current subscriptions. Because the log is the source of truth, a message is
durable as soon as accept() returns.
"""

import asyncio
import logging
import struct
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import cbor2

from ..framework.resources import Feature
from .base import Channel
from .message import MalformedMessage, Message

logger = logging.getLogger(__name__)

_LEN = struct.Struct(">I")


def encode_frame(message: Message) -> bytes:
    payload = cbor2.dumps(message.to_wire())
    return _LEN.pack(len(payload)) + payload


def split_frames(buffer: bytes) -> Tuple[List[bytes], int]:
    """Split ``buffer`` into complete frame payloads.

    Returns:
        (payloads, consumed) where consumed is the number of bytes used;
        a trailing partial frame is left for the next read
    """
    payloads = []
    offset = 0
    while len(buffer) - offset >= _LEN.size:
        (length,) = _LEN.unpack_from(buffer, offset)
        end = offset + _LEN.size + length
        if end > len(buffer):
            break
        payloads.append(buffer[offset + _LEN.size:end])
        offset = end
    return payloads, offset


def decode_frame(payload: bytes) -> Message:
    try:
        data = cbor2.loads(payload)
    except cbor2.CBORDecodeError as e:
        raise MalformedMessage(f"Corrupt frame: {e}")
    return Message.from_wire(data)


def decode_frames(buffer: bytes) -> Tuple[list, int]:
    """Decode all complete frames in ``buffer``, failing on the first corrupt one."""
    payloads, consumed = split_frames(buffer)
    return [decode_frame(p) for p in payloads], consumed


def iter_log(path: Path) -> Iterator[Message]:
    """Read every message persisted in a log file."""
    messages, _ = decode_frames(Path(path).read_bytes())
    yield from messages


class CborLogChannel(Channel):
    """Durable channel persisting messages to a CBOR frame log.

    Corrupt frames in the log are logged, counted in ``corrupt_frames``
    and skipped; the dispatcher keeps tailing.
    """

    kind = "CborLogChannel"
    served_versions = ("v1beta1",)
    native_version = "v1beta1"
    features = frozenset({Feature.BASIC, Feature.PERSISTENCE})

    tail_interval = 0.01

    def __init__(self, name: str, log_dir: Optional[Path] = None):
        super().__init__(name)
        self._own_dir = None
        if log_dir is None:
            self._own_dir = tempfile.TemporaryDirectory(prefix="cbor-channel-")
            log_dir = Path(self._own_dir.name)
        self.log_path = Path(log_dir) / f"{name}.log"
        self.corrupt_frames = 0
        self._offset = 0
        self._pending = b""
        self._write_lock = asyncio.Lock()
        self._dispatcher: Optional[asyncio.Task] = None

    @property
    def is_ready(self) -> bool:
        return super().is_ready and self._dispatcher is not None and not self._dispatcher.done()

    async def start(self) -> None:
        if self._dispatcher is not None:
            return
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_path.touch()
        self._offset = self.log_path.stat().st_size
        self._dispatcher = asyncio.create_task(self._tail())

    def _append(self, frame: bytes) -> None:
        with open(self.log_path, "ab") as f:
            f.write(frame)

    def _read_from(self, offset: int) -> bytes:
        with open(self.log_path, "rb") as f:
            f.seek(offset)
            return f.read()

    async def _enqueue(self, message: Message) -> None:
        frame = encode_frame(message)
        async with self._write_lock:
            await asyncio.to_thread(self._append, frame)

    async def _tail(self):
        while True:
            chunk = await asyncio.to_thread(self._read_from, self._offset)
            if not chunk:
                await asyncio.sleep(self.tail_interval)
                continue
            self._offset += len(chunk)
            self._pending += chunk
            payloads, consumed = split_frames(self._pending)
            self._pending = self._pending[consumed:]
            for payload in payloads:
                try:
                    message = decode_frame(payload)
                except MalformedMessage as e:
                    self.corrupt_frames += 1
                    logger.warning("%s %r skipped a frame: %s", self.kind, self.name, e)
                    continue
                await self._fan_out(message)

    async def close(self) -> None:
        await super().close()
        if self._dispatcher and not self._dispatcher.done():
            self._dispatcher.cancel()
        if self._own_dir is not None:
            self._own_dir.cleanup()
            self._own_dir = None
