from __future__ import annotations

import contextlib
import logging
from enum import Enum
from typing import AsyncIterator, Callable, Iterator, Optional

from client.core.transport import open_transport
from client.storage.output import OutputSink
from shared.protocol import (
    ACCEPT_RESPONSE,
    BYE_MESSAGE,
    BYE_RESPONSE,
    CONNECT_MESSAGE,
    MAX_READ_SIZE,
    BufferedFrameReader,
    ByteStream,
    SessionStateError,
    build_request,
    describe_body,
    expect_token,
    read_frame,
    write_frame,
)

logger = logging.getLogger(__name__)

SinkFactory = Callable[[], OutputSink]


class SessionState(Enum):
    CONNECTING = "connecting"
    AWAITING_ACCEPT = "awaiting-accept"
    SENDING_REQUEST = "sending-request"
    AWAITING_RESPONSE = "awaiting-response"
    SENDING_BYE = "sending-bye"
    AWAITING_BYE_ACK = "awaiting-bye-ack"
    CLOSED = "closed"
    FAILED = "failed"


class ProxySession:
    """
    Drives one connection through Connect/Accept, GET/response and BYE/BYE.

    The phases run strictly in order and each is attempted once: any error
    moves the session to FAILED and propagates to the caller.
    """

    def __init__(
        self,
        transport: ByteStream,
        *,
        read_timeout: Optional[float] = None,
        chunk_size: int = MAX_READ_SIZE,
        buffered: bool = False,
    ) -> None:
        self.transport = transport
        self.read_timeout = read_timeout
        self.chunk_size = chunk_size
        self.state = SessionState.CONNECTING
        self._reader: Optional[BufferedFrameReader] = (
            BufferedFrameReader(transport, chunk_size=chunk_size, timeout=read_timeout) if buffered else None
        )

    @classmethod
    @contextlib.asynccontextmanager
    async def connect(
        cls,
        host: str,
        port: int,
        *,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        chunk_size: int = MAX_READ_SIZE,
        buffered: bool = False,
    ) -> AsyncIterator["ProxySession"]:
        transport = await open_transport(host, port, timeout=connect_timeout)
        session = cls(transport, read_timeout=read_timeout, chunk_size=chunk_size, buffered=buffered)
        try:
            yield session
        finally:
            await transport.close()

    @contextlib.contextmanager
    def _phase(self, expected: SessionState) -> Iterator[None]:
        if self.state is not expected:
            raise SessionStateError(f"Session is {self.state.value}, expected {expected.value}")
        try:
            yield
        except BaseException:
            self.state = SessionState.FAILED
            raise

    async def _receive(self) -> bytes:
        if self._reader is not None:
            body = await self._reader.read_frame()
        else:
            body = await read_frame(self.transport, chunk_size=self.chunk_size, timeout=self.read_timeout)
        logger.debug("Received %s", describe_body(body))
        return body

    async def handshake(self) -> None:
        with self._phase(SessionState.CONNECTING):
            logger.info("Sending connect")
            await write_frame(self.transport, CONNECT_MESSAGE)
            self.state = SessionState.AWAITING_ACCEPT
            logger.info("Waiting for acceptance")
            expect_token(await self._receive(), ACCEPT_RESPONSE)
            self.state = SessionState.SENDING_REQUEST

    async def request(self, url: str) -> bytes:
        """Send ``GET:<url>`` and return the response payload unmodified."""
        with self._phase(SessionState.SENDING_REQUEST):
            logger.info("Sending the URL")
            await write_frame(self.transport, build_request(url))
            self.state = SessionState.AWAITING_RESPONSE
            logger.info("Waiting for response")
            payload = await self._receive()
            self.state = SessionState.SENDING_BYE
        return payload

    async def goodbye(self) -> None:
        with self._phase(SessionState.SENDING_BYE):
            logger.info("Sending bye message")
            await write_frame(self.transport, BYE_MESSAGE)
            self.state = SessionState.AWAITING_BYE_ACK
            logger.info("Waiting for bye response")
            expect_token(await self._receive(), BYE_RESPONSE)
            self.state = SessionState.CLOSED

    async def fetch(self, url: str, sink_factory: Optional[SinkFactory] = None) -> bytes:
        """
        Run the whole exchange. When ``sink_factory`` is given, the sink is
        opened once the proxy has accepted and receives the payload before BYE.
        """
        await self.handshake()
        if sink_factory is None:
            payload = await self.request(url)
        else:
            try:
                with sink_factory() as sink:
                    payload = await self.request(url)
                    sink.write(payload)
            except BaseException:
                self.state = SessionState.FAILED
                raise
        await self.goodbye()
        return payload


__all__ = ["ProxySession", "SessionState", "SinkFactory"]
