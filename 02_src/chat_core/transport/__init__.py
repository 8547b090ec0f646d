"""Transport module."""

from .http_transport import HttpTransport, ITransport, TransportError

__all__ = ["HttpTransport", "ITransport", "TransportError"]
