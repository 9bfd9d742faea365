from __future__ import annotations

import asyncio
import socket

import pytest

from client.core import ProxySession, SessionState
from client.storage import FileSink
from shared.protocol import (
    ConnectFailedError,
    ConnectionClosedError,
    SessionStateError,
    TokenDecodeError,
    UnexpectedTokenError,
    encode_frame,
)

URL = "http://example.com/index.html"
PAYLOAD = bytes(range(256)) * 3


def _replies(payload=PAYLOAD):
    return [encode_frame(b"Accept"), encode_frame(payload), encode_frame(b"BYE")]


def test_full_exchange(scripted, tmp_path):
    transport = scripted(_replies())
    session = ProxySession(transport)
    target = tmp_path / "out.bin"

    result = asyncio.run(session.fetch(URL, lambda: FileSink(target)))

    assert result == PAYLOAD
    assert target.read_bytes() == PAYLOAD
    assert transport.written == [
        encode_frame(b"Connect"),
        encode_frame(b"GET:" + URL.encode()),
        encode_frame(b"BYE"),
    ]
    assert session.state is SessionState.CLOSED


def test_fragmented_replies(scripted):
    stream = b"".join(_replies())
    # one frame per read at most, each split into small pieces
    chunks = []
    for frame in _replies():
        chunks.extend(frame[i : i + 7] for i in range(0, len(frame), 7))
    assert b"".join(chunks) == stream
    session = ProxySession(scripted(chunks), chunk_size=16)
    assert asyncio.run(session.fetch(URL)) == PAYLOAD


def test_empty_payload_is_delivered(scripted):
    session = ProxySession(scripted(_replies(b"")))
    assert asyncio.run(session.fetch(URL)) == b""
    assert session.state is SessionState.CLOSED


def test_reject_aborts_before_request(scripted, tmp_path):
    transport = scripted([encode_frame(b"Reject")])
    session = ProxySession(transport)
    opened = []

    with pytest.raises(UnexpectedTokenError) as excinfo:
        asyncio.run(session.fetch(URL, lambda: opened.append(1) or FileSink(tmp_path / "x")))

    assert excinfo.value.received == "Reject"
    assert transport.written == [encode_frame(b"Connect")]
    assert opened == []
    assert session.state is SessionState.FAILED


def test_bad_bye_ack(scripted):
    transport = scripted([encode_frame(b"Accept"), encode_frame(b"data"), encode_frame(b"bye")])
    session = ProxySession(transport)
    with pytest.raises(UnexpectedTokenError):
        asyncio.run(session.fetch(URL))
    assert len(transport.written) == 3
    assert session.state is SessionState.FAILED


def test_undecodable_accept(scripted):
    session = ProxySession(scripted([encode_frame(b"\xfe\xff")]))
    with pytest.raises(TokenDecodeError):
        asyncio.run(session.handshake())


def test_peer_closes_during_response(scripted):
    transport = scripted([encode_frame(b"Accept"), encode_frame(PAYLOAD)[:100]])
    session = ProxySession(transport)
    with pytest.raises(ConnectionClosedError):
        asyncio.run(session.fetch(URL))
    assert session.state is SessionState.FAILED
    assert len(transport.written) == 2


def test_phases_must_run_in_order(scripted):
    session = ProxySession(scripted(_replies()))
    with pytest.raises(SessionStateError):
        asyncio.run(session.request(URL))
    with pytest.raises(SessionStateError):
        asyncio.run(session.goodbye())
    assert session.state is SessionState.CONNECTING


def test_step_by_step(scripted):
    session = ProxySession(scripted(_replies()))

    async def run():
        await session.handshake()
        assert session.state is SessionState.SENDING_REQUEST
        payload = await session.request(URL)
        assert session.state is SessionState.SENDING_BYE
        await session.goodbye()
        return payload

    assert asyncio.run(run()) == PAYLOAD
    assert session.state is SessionState.CLOSED


def test_buffered_session_tolerates_pipelined_replies(scripted):
    session = ProxySession(scripted([b"".join(_replies())]), buffered=True)
    assert asyncio.run(session.fetch(URL)) == PAYLOAD


def test_unbuffered_session_drops_pipelined_replies(scripted):
    session = ProxySession(scripted([b"".join(_replies())]), chunk_size=4096)
    with pytest.raises(ConnectionClosedError):
        asyncio.run(session.fetch(URL))


def test_over_tcp(proxy_peer):
    peer = proxy_peer(_replies())

    async def run():
        async with ProxySession.connect("127.0.0.1", peer.port, read_timeout=5) as session:
            payload = await session.fetch(URL)
        return session, payload

    session, payload = asyncio.run(run())
    peer.join(timeout=5)
    assert payload == PAYLOAD
    assert session.transport.closed
    assert peer.received == [b"Connect", b"GET:" + URL.encode(), b"BYE"]


def test_connect_refused():
    with socket.create_server(("127.0.0.1", 0)) as sock:
        port = sock.getsockname()[1]

    async def run():
        async with ProxySession.connect("127.0.0.1", port):
            pass

    with pytest.raises(ConnectFailedError):
        asyncio.run(run())
