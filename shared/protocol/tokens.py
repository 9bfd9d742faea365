from __future__ import annotations

from typing import Union

from .constants import ENCODING, REQUEST_PREFIX
from .errors import TokenDecodeError, UnexpectedTokenError


def build_request(url: Union[str, bytes]) -> bytes:
    """Request body: ``GET:`` immediately followed by the target URL."""
    if isinstance(url, str):
        url = url.encode(ENCODING)
    return REQUEST_PREFIX + url


def expect_token(body: bytes, expected: bytes) -> None:
    """
    Require ``body`` to equal the handshake literal ``expected`` byte for byte.

    Mismatches raise UnexpectedTokenError with the received text, or
    TokenDecodeError when the received bytes are not valid UTF-8.
    """
    if body == expected:
        return
    try:
        received = body.decode(ENCODING)
    except UnicodeDecodeError as exc:
        raise TokenDecodeError(expected, body) from exc
    raise UnexpectedTokenError(expected, received)


def describe_body(body: bytes, limit: int = 32) -> str:
    """Short printable preview of a message body for log lines."""
    preview = body[:limit].decode(ENCODING, errors="backslashreplace")
    suffix = "..." if len(body) > limit else ""
    return f"{len(body)} bytes {preview!r}{suffix}"


__all__ = ["build_request", "expect_token", "describe_body"]
