from __future__ import annotations

import os
import socket
import struct
import threading
from typing import Iterable, List, Optional

import pytest

from client.config import CLIENT_CONFIG, DEFAULT_CONFIG


class ScriptedTransport:
    """In-memory byte stream: each read returns (part of) the next scripted chunk."""

    def __init__(self, chunks: Iterable[bytes] = ()) -> None:
        self.chunks: List[bytes] = [bytes(c) for c in chunks]
        self.written: List[bytes] = []
        self.read_sizes: List[int] = []
        self.closed = False

    async def read(self, max_bytes: int) -> bytes:
        self.read_sizes.append(max_bytes)
        if not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        if len(chunk) > max_bytes:
            self.chunks.insert(0, chunk[max_bytes:])
            chunk = chunk[:max_bytes]
        return chunk

    async def write_all(self, data: bytes) -> None:
        self.written.append(bytes(data))

    async def close(self) -> None:
        self.closed = True


def _recv_exact(conn: socket.socket, size: int) -> bytes:
    data = b""
    while len(data) < size:
        chunk = conn.recv(size - len(data))
        if not chunk:
            raise ConnectionError("client went away")
        data += chunk
    return data


def recv_frame(conn: socket.socket) -> bytes:
    (length,) = struct.unpack(">I", _recv_exact(conn, 4))
    return _recv_exact(conn, length)


class ProxyPeer(threading.Thread):
    """Blocking single-connection proxy stand-in answering each frame from a script."""

    def __init__(self, replies: Iterable[bytes]) -> None:
        super().__init__(daemon=True)
        self.replies = list(replies)
        self.received: List[bytes] = []
        self.error: Optional[Exception] = None
        self.sock = socket.create_server(("127.0.0.1", 0))
        self.port = self.sock.getsockname()[1]

    def run(self) -> None:
        try:
            conn, _ = self.sock.accept()
            with conn:
                for reply in self.replies:
                    self.received.append(recv_frame(conn))
                    conn.sendall(reply)
        except OSError as exc:
            self.error = exc
        finally:
            self.sock.close()


@pytest.fixture
def scripted():
    return ScriptedTransport


@pytest.fixture
def proxy_peer():
    peers: List[ProxyPeer] = []

    def start(replies: Iterable[bytes]) -> ProxyPeer:
        peer = ProxyPeer(replies)
        peer.start()
        peers.append(peer)
        return peer

    yield start
    for peer in peers:
        peer.join(timeout=5)


@pytest.fixture(autouse=True)
def isolated_config():
    saved_env = {key: value for key, value in os.environ.items() if key.startswith("CLIENT_")}
    for key in saved_env:
        del os.environ[key]
    saved_config = CLIENT_CONFIG.copy()
    CLIENT_CONFIG.clear()
    CLIENT_CONFIG.update(DEFAULT_CONFIG)
    yield
    for key in [key for key in os.environ if key.startswith("CLIENT_")]:
        del os.environ[key]
    os.environ.update(saved_env)
    CLIENT_CONFIG.clear()
    CLIENT_CONFIG.update(saved_config)
