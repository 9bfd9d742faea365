"""
Shared protocol package: wire constants, frame codec, handshake tokens and the
error taxonomy used by the proxy client.
"""

from .constants import (
    ACCEPT_RESPONSE,
    BYE_MESSAGE,
    BYE_RESPONSE,
    CONNECT_MESSAGE,
    ENCODING,
    HEADER_SIZE,
    MAX_BODY_SIZE,
    MAX_READ_SIZE,
    REQUEST_PREFIX,
)
from .errors import (
    ClientError,
    ConfigError,
    ConnectFailedError,
    ConnectionClosedError,
    ErrorCode,
    FrameTooLargeError,
    IncompleteFrameError,
    OutputError,
    ProtocolError,
    ReadTimeoutError,
    SessionStateError,
    TokenDecodeError,
    TransportError,
    UnexpectedTokenError,
)
from .framing import (
    BufferedFrameReader,
    ByteStream,
    DecodePhase,
    FrameDecoder,
    decode_frame,
    encode_frame,
    read_frame,
    write_frame,
)
from .tokens import build_request, describe_body, expect_token

__all__ = [
    "ACCEPT_RESPONSE",
    "BYE_MESSAGE",
    "BYE_RESPONSE",
    "CONNECT_MESSAGE",
    "ENCODING",
    "HEADER_SIZE",
    "MAX_BODY_SIZE",
    "MAX_READ_SIZE",
    "REQUEST_PREFIX",
    "ClientError",
    "ConfigError",
    "ConnectFailedError",
    "ConnectionClosedError",
    "ErrorCode",
    "FrameTooLargeError",
    "IncompleteFrameError",
    "OutputError",
    "ProtocolError",
    "ReadTimeoutError",
    "SessionStateError",
    "TokenDecodeError",
    "TransportError",
    "UnexpectedTokenError",
    "BufferedFrameReader",
    "ByteStream",
    "DecodePhase",
    "FrameDecoder",
    "decode_frame",
    "encode_frame",
    "read_frame",
    "write_frame",
    "build_request",
    "describe_body",
    "expect_token",
]
