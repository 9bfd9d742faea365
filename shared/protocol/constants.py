"""Protocol-wide constants for the length-prefixed proxy protocol."""

ENCODING = "utf-8"
HEADER_SIZE = 4  # bytes, big-endian unsigned length
HEADER_FORMAT = ">I"
MAX_BODY_SIZE = 2**32 - 1
MAX_READ_SIZE = 500  # upper bound for a single transport read

CONNECT_MESSAGE = b"Connect"
ACCEPT_RESPONSE = b"Accept"
REQUEST_PREFIX = b"GET:"
BYE_MESSAGE = b"BYE"
BYE_RESPONSE = b"BYE"

__all__ = [
    "ENCODING",
    "HEADER_SIZE",
    "HEADER_FORMAT",
    "MAX_BODY_SIZE",
    "MAX_READ_SIZE",
    "CONNECT_MESSAGE",
    "ACCEPT_RESPONSE",
    "REQUEST_PREFIX",
    "BYE_MESSAGE",
    "BYE_RESPONSE",
]
