from __future__ import annotations

import asyncio
import logging
import struct
from enum import Enum
from typing import Optional, Protocol, Union

from .constants import ENCODING, HEADER_FORMAT, HEADER_SIZE, MAX_BODY_SIZE, MAX_READ_SIZE
from .errors import ConnectionClosedError, FrameTooLargeError, IncompleteFrameError, ReadTimeoutError

logger = logging.getLogger(__name__)

BodyLike = Union[bytes, bytearray, memoryview, str]


class ByteStream(Protocol):
    """Minimal transport surface the framer needs."""

    async def read(self, max_bytes: int) -> bytes: ...

    async def write_all(self, data: bytes) -> None: ...


def encode_frame(body: BodyLike) -> bytes:
    """Encode a message body into a frame (4-byte big-endian length + body)."""
    if isinstance(body, str):
        body = body.encode(ENCODING)
    data = bytes(body)
    if len(data) > MAX_BODY_SIZE:
        raise FrameTooLargeError(f"Maximum allowed length is {MAX_BODY_SIZE}, got {len(data)}")
    return struct.pack(HEADER_FORMAT, len(data)) + data


class DecodePhase(Enum):
    AWAITING_HEADER = "awaiting-header"
    AWAITING_BODY = "awaiting-body"
    COMPLETE = "complete"


class FrameDecoder:
    """
    Reassembles one inbound frame from arbitrarily sized chunks.

    The decoder first collects the 4-byte header, resolves the declared body
    length and then collects body bytes until that length is reached. Bytes
    that arrive past the end of the frame are kept apart in ``leftover()``.
    """

    def __init__(self) -> None:
        self.phase = DecodePhase.AWAITING_HEADER
        self.length: Optional[int] = None
        self._header = bytearray()
        self._body = bytearray()

    @property
    def complete(self) -> bool:
        return self.phase is DecodePhase.COMPLETE

    @property
    def needed(self) -> int:
        """Bytes still missing before the current phase is satisfied."""
        if self.phase is DecodePhase.AWAITING_HEADER:
            return HEADER_SIZE - len(self._header)
        if self.phase is DecodePhase.AWAITING_BODY:
            assert self.length is not None
            return self.length - len(self._body)
        return 0

    def feed(self, chunk: bytes) -> int:
        """Consume a chunk; return how many of its bytes belong to this frame."""
        if self.complete:
            raise RuntimeError("Frame already complete; start a new decoder")

        if self.phase is DecodePhase.AWAITING_HEADER:
            self._header += chunk
            if len(self._header) < HEADER_SIZE:
                return len(chunk)
            (self.length,) = struct.unpack(HEADER_FORMAT, self._header[:HEADER_SIZE])
            self._body += self._header[HEADER_SIZE:]
            del self._header[HEADER_SIZE:]
            self.phase = DecodePhase.AWAITING_BODY
            logger.debug("Frame header resolved: %d body bytes", self.length)
        else:
            self._body += chunk

        assert self.length is not None
        overflow = len(self._body) - self.length
        if overflow >= 0:
            self.phase = DecodePhase.COMPLETE
            return len(chunk) - overflow
        return len(chunk)

    def body(self) -> bytes:
        if not self.complete:
            raise IncompleteFrameError(f"Frame incomplete, {self.needed} bytes missing in {self.phase.value}")
        return bytes(self._body[: self.length])

    def leftover(self) -> bytes:
        if self.length is None:
            return b""
        return bytes(self._body[self.length :])


def decode_frame(data: bytes) -> bytes:
    """Decode a complete in-memory frame; trailing bytes are ignored."""
    decoder = FrameDecoder()
    if data:
        decoder.feed(data)
    return decoder.body()


async def _fill(transport: ByteStream, decoder: FrameDecoder, chunk_size: int) -> FrameDecoder:
    while not decoder.complete:
        chunk = await transport.read(chunk_size)
        if not chunk:
            raise ConnectionClosedError(
                f"Stream returned 0 bytes with {decoder.needed} bytes outstanding ({decoder.phase.value})"
            )
        decoder.feed(chunk)
    return decoder


async def _fill_within(
    transport: ByteStream, decoder: FrameDecoder, chunk_size: int, timeout: Optional[float]
) -> FrameDecoder:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if timeout is None:
        return await _fill(transport, decoder, chunk_size)
    try:
        return await asyncio.wait_for(_fill(transport, decoder, chunk_size), timeout)
    except asyncio.TimeoutError as exc:
        raise ReadTimeoutError(f"No complete frame within {timeout}s ({decoder.phase.value})") from exc


async def read_frame(
    transport: ByteStream, *, chunk_size: int = MAX_READ_SIZE, timeout: Optional[float] = None
) -> bytes:
    """
    Read exactly one frame from the stream and return its body.

    Blocks until the whole frame is available unless ``timeout`` is given.
    Any bytes of a following frame delivered by the final read are dropped;
    use :class:`BufferedFrameReader` when the peer may pipeline frames.
    """
    decoder = await _fill_within(transport, FrameDecoder(), chunk_size, timeout)
    dropped = decoder.leftover()
    if dropped:
        logger.debug("Dropping %d bytes received past a %d-byte frame", len(dropped), decoder.length)
    return decoder.body()


class BufferedFrameReader:
    """Frame reader that keeps bytes past a frame boundary for the next read."""

    def __init__(
        self, transport: ByteStream, chunk_size: int = MAX_READ_SIZE, timeout: Optional[float] = None
    ) -> None:
        self.transport = transport
        self.chunk_size = chunk_size
        self.timeout = timeout
        self._pending = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._pending)

    async def read_frame(self) -> bytes:
        decoder = FrameDecoder()
        if self._pending:
            carried = bytes(self._pending)
            self._pending.clear()
            decoder.feed(carried)
        if not decoder.complete:
            await _fill_within(self.transport, decoder, self.chunk_size, self.timeout)
        self._pending += decoder.leftover()
        return decoder.body()


async def write_frame(transport: ByteStream, body: BodyLike) -> None:
    frame = encode_frame(body)
    await transport.write_all(frame)
    logger.debug("Sent frame with %d body bytes", len(frame) - HEADER_SIZE)


__all__ = [
    "ByteStream",
    "DecodePhase",
    "FrameDecoder",
    "BufferedFrameReader",
    "encode_frame",
    "decode_frame",
    "read_frame",
    "write_frame",
]
