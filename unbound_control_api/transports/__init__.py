"""
Control channel transports.

This package contains the TLS and local-socket transports for the daemon's
control protocol, a mock transport, and the client built on top of them.
"""

from .base_transport import ControlTransport
from .control_client import ControlClient
from .mock_transport import MockTransport
from .socket_transport import UnixSocketTransport
from .tls_transport import TLSTransport

__all__ = ["ControlTransport", "ControlClient", "MockTransport", "UnixSocketTransport", "TLSTransport"]
