from .session import ProxySession, SessionState
from .transport import StreamTransport, open_transport

__all__ = ["ProxySession", "SessionState", "StreamTransport", "open_transport"]
