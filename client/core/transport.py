from __future__ import annotations

import asyncio
import logging
from typing import Optional

from shared.protocol.errors import ConnectFailedError, ErrorCode, TransportError

logger = logging.getLogger(__name__)


class StreamTransport:
    """Byte stream over an asyncio reader/writer pair, owned by one session."""

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, peer: Optional[str] = None
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.peer = peer or str(writer.get_extra_info("peername"))
        self.closed = False

    async def read(self, max_bytes: int) -> bytes:
        """Return between 0 and ``max_bytes`` bytes; ``b""`` means the peer closed."""
        try:
            return await self.reader.read(max_bytes)
        except OSError as exc:
            raise TransportError(f"Failed reading from {self.peer}: {exc}", ErrorCode.READ_FAILED) from exc

    async def write(self, data: bytes) -> int:
        """Hand ``data`` to the writer and wait for it to drain."""
        if self.closed or self.writer.is_closing():
            raise TransportError(f"Connection to {self.peer} is closed", ErrorCode.WRITE_FAILED)
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (ConnectionResetError, BrokenPipeError, ConnectionAbortedError) as exc:
            raise TransportError(f"Connection lost: {exc}", ErrorCode.WRITE_FAILED) from exc
        except OSError as exc:
            raise TransportError(f"Failed sending to {self.peer}: {exc}", ErrorCode.WRITE_FAILED) from exc
        return len(data)

    async def write_all(self, data: bytes) -> None:
        """
        Send every byte of ``data``.

        ``StreamWriter.write`` plus ``drain`` accepts the whole buffer, so with
        this class one pass suffices; the loop honours ``write`` implementations
        that report partial progress.
        """
        view = memoryview(data)
        index = 0
        while index < len(view):
            count = await self.write(bytes(view[index:]))
            if count <= 0:
                raise TransportError(f"Write to {self.peer} made no progress", ErrorCode.WRITE_FAILED)
            index += count

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as exc:
            logger.debug("Ignoring error while closing %s: %s", self.peer, exc)
        logger.info("Connection to %s closed", self.peer)


async def open_transport(host: str, port: int, *, timeout: Optional[float] = None) -> StreamTransport:
    """Connect to the proxy; no retry."""
    try:
        if timeout is None:
            reader, writer = await asyncio.open_connection(host, port)
        else:
            reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except asyncio.TimeoutError as exc:
        raise ConnectFailedError(f"Timed out connecting to {host}:{port} after {timeout}s") from exc
    except OSError as exc:
        raise ConnectFailedError(f"Failed to connect to {host}:{port}: {exc}") from exc
    logger.info("Connected to %s:%s", host, port)
    return StreamTransport(reader, writer, peer=f"{host}:{port}")


__all__ = ["StreamTransport", "open_transport"]
