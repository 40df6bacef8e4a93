"""
Per-command local socket control transport.

Every command gets its own connection to the daemon's control socket, so
there is no connection state to repair and callers need no serialization.
"""

import logging
import socket
import time
from typing import Dict, Optional

from .base_transport import ControlTransport
from ..exceptions import TransportError

module_logger = logging.getLogger(__name__)

# protocol token the daemon expects before every command on its local socket
COMMAND_PREAMBLE = "UBCT1  "


class UnixSocketTransport(ControlTransport):
    """Control transport that dials the local control socket per command."""

    def __init__(self, config: Dict, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or module_logger
        self.socket_path = config.get("control_socket", "/run/unbound.ctl")
        self.connect_timeout = float(config.get("connect_timeout", 10))
        self.read_timeout = float(config.get("read_timeout", 5))
        self.write_timeout = float(config.get("write_timeout", 5))

        self.logger.info(f"Local socket control transport initialized for {self.socket_path}")

    def _connect(self) -> socket.socket:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            sock.settimeout(self.connect_timeout)
            sock.connect(self.socket_path)
        except OSError as e:
            sock.close()
            self.logger.error(f"Failed to connect to {self.socket_path}: {e}")
            raise TransportError(f"failed to connect to control socket {self.socket_path}: {e}")
        return sock

    def send(self, command: str) -> str:
        """Dial, write the preamble and command, read until the daemon closes."""
        sock = self._connect()
        try:
            payload = f"{COMMAND_PREAMBLE}{command}\n".encode("ascii")
            try:
                sock.settimeout(self.write_timeout)
                sock.sendall(payload)
            except socket.timeout:
                raise TransportError(f"timed out writing to {self.socket_path}")
            except OSError as e:
                raise TransportError(f"failed to send command to {self.socket_path}: {e}")

            return self._read_until_close(sock)
        finally:
            sock.close()

    def read_framed_response(self) -> str:
        # each response is read on the connection send() opened for it
        raise TransportError("no command in flight; responses are read by send()")

    def _read_until_close(self, sock: socket.socket) -> str:
        """Read the whole response; the daemon closes the socket when done."""
        chunks = []
        deadline = time.monotonic() + self.read_timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransportError(f"timed out reading response from {self.socket_path}")
            try:
                sock.settimeout(remaining)
                chunk = sock.recv(4096)
            except socket.timeout:
                raise TransportError(f"timed out reading response from {self.socket_path}")
            except OSError as e:
                raise TransportError(f"failed to read response from {self.socket_path}: {e}")
            if not chunk:
                break
            chunks.append(chunk)

        return b"".join(chunks).decode("utf-8", errors="replace").strip()

    def close(self) -> None:
        # connections never outlive a command
        pass
