from __future__ import annotations

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Failure categories surfaced by the client."""

    INVALID_CONFIG = 1001
    CONNECT_FAILED = 2001
    CONNECTION_CLOSED = 2002
    READ_FAILED = 2003
    WRITE_FAILED = 2004
    TIMEOUT = 2005
    FRAME_TOO_LARGE = 3001
    INCOMPLETE_FRAME = 3002
    UNEXPECTED_TOKEN = 3003
    INVALID_ENCODING = 3004
    INVALID_STATE = 3005
    OUTPUT_FAILED = 4001
    INTERNAL_ERROR = 5000


class ClientError(Exception):
    """Structured client exception carrying code + message."""

    default_code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str = "", code: Optional[ErrorCode] = None) -> None:
        self.code = code if code is not None else self.default_code
        self.message = message
        super().__init__(f"{self.code.name} ({int(self.code)}): {message}")

    def to_payload(self) -> dict:
        """Map error into a dict suitable for structured logging."""
        return {
            "error_code": int(self.code),
            "error_name": self.code.name,
            "error_message": self.message,
        }


class ConfigError(ClientError):
    """Raised when configuration values are missing or invalid."""

    default_code = ErrorCode.INVALID_CONFIG


class TransportError(ClientError):
    """The byte stream failed; the connection is unusable."""

    default_code = ErrorCode.READ_FAILED


class ConnectFailedError(TransportError):
    default_code = ErrorCode.CONNECT_FAILED


class ConnectionClosedError(TransportError):
    default_code = ErrorCode.CONNECTION_CLOSED


class ReadTimeoutError(TransportError):
    default_code = ErrorCode.TIMEOUT


class ProtocolError(ClientError):
    """The peer (or the caller) broke the framing or handshake rules."""

    default_code = ErrorCode.UNEXPECTED_TOKEN


class FrameTooLargeError(ProtocolError):
    default_code = ErrorCode.FRAME_TOO_LARGE


class IncompleteFrameError(ProtocolError):
    default_code = ErrorCode.INCOMPLETE_FRAME


class UnexpectedTokenError(ProtocolError):
    """A handshake token did not match the expected literal."""

    default_code = ErrorCode.UNEXPECTED_TOKEN

    def __init__(self, expected: bytes, received: str) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"expected {expected.decode('ascii')!r}, got {received!r}")


class TokenDecodeError(ProtocolError):
    """A handshake token was not valid UTF-8."""

    default_code = ErrorCode.INVALID_ENCODING

    def __init__(self, expected: bytes, received: bytes) -> None:
        self.expected = expected
        self.received = received
        super().__init__(f"expected {expected.decode('ascii')!r}, got undecodable bytes {received[:32]!r}")


class SessionStateError(ProtocolError):
    default_code = ErrorCode.INVALID_STATE


class OutputError(ClientError):
    default_code = ErrorCode.OUTPUT_FAILED


__all__ = [
    "ErrorCode",
    "ClientError",
    "ConfigError",
    "TransportError",
    "ConnectFailedError",
    "ConnectionClosedError",
    "ReadTimeoutError",
    "ProtocolError",
    "FrameTooLargeError",
    "IncompleteFrameError",
    "UnexpectedTokenError",
    "TokenDecodeError",
    "SessionStateError",
    "OutputError",
]
