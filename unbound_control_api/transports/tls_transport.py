"""
Persistent mutual-TLS control transport.

This module keeps one authenticated TCP connection to the daemon's control
port open across commands, probes it before every send and redials it when
the daemon has closed it.
"""

import logging
import socket
import ssl
import time
from typing import Dict, Optional

from .base_transport import ControlTransport
from ..exceptions import ConfigError, TransportError

module_logger = logging.getLogger(__name__)

DEFAULT_CONTROL_PORT = 8953


class TLSTransport(ControlTransport):
    """Control transport over a persistent mutual-TLS stream."""

    def __init__(self, config: Dict, logger: Optional[logging.Logger] = None):
        """Initialize the transport; the connection is dialed on first use."""
        self.config = config
        self.logger = logger or module_logger
        self.host = config.get("control_host", "127.0.0.1")
        self.port = int(config.get("control_port", DEFAULT_CONTROL_PORT))
        self.cert_file = config.get("control_cert", "")
        self.key_file = config.get("control_key", "")
        self.ca_file = config.get("control_ca", "")
        self.connect_timeout = float(config.get("connect_timeout", 10))
        self.read_timeout = float(config.get("read_timeout", 5))
        self.write_timeout = float(config.get("write_timeout", 5))
        self.probe_timeout = float(config.get("probe_timeout", 0.1))
        self.retry_read_timeout = float(config.get("retry_read_timeout", 1))
        self.address = f"{self.host}:{self.port}"

        self._ssl_context = self._create_ssl_context()
        self._sock = None
        self._buffer = bytearray()
        self.last_alive: Optional[float] = None

        self.logger.info(f"TLS control transport initialized for {self.address}")

    def _create_ssl_context(self) -> ssl.SSLContext:
        """Build the client TLS context from the configured certificate and key."""
        if not self.cert_file or not self.key_file:
            raise ConfigError("TLS transport requires control_cert and control_key")

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        # unbound-control-setup issues certificates for the name "unbound"
        context.check_hostname = False

        try:
            if self.ca_file:
                context.load_verify_locations(self.ca_file)
                context.verify_mode = ssl.CERT_REQUIRED
            else:
                context.verify_mode = ssl.CERT_NONE
                self.logger.warning(
                    "No control_ca configured, the daemon certificate will not be verified"
                )
            context.load_cert_chain(self.cert_file, self.key_file)
        except (OSError, ssl.SSLError) as e:
            self.logger.error(f"Failed to load certificates: {e}")
            raise ConfigError(f"failed to load client certificate and key: {e}")

        self.logger.debug(
            f"Loaded certificates from {self.cert_file} and {self.key_file}"
        )
        return context

    def connect(self) -> None:
        """Dial the control port and complete the TLS handshake."""
        self.logger.info(f"Connecting to {self.address}")
        try:
            raw_sock = socket.create_connection(
                (self.host, self.port), timeout=self.connect_timeout
            )
        except OSError as e:
            self.logger.error(f"TCP connection to {self.address} failed: {e}")
            raise TransportError(f"failed to establish TCP connection to {self.address}: {e}")

        try:
            raw_sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
            sock = self._ssl_context.wrap_socket(raw_sock, server_hostname=self.host)
        except OSError as e:
            raw_sock.close()
            self.logger.error(f"TLS handshake with {self.address} failed: {e}")
            raise TransportError(f"failed to establish TLS connection to {self.address}: {e}")

        self._sock = sock
        self._buffer.clear()
        self.last_alive = time.monotonic()
        self.logger.info(f"Connected to {self.address} using {sock.version()}")

    def reconnect(self) -> None:
        """Drop the current connection and dial a new one."""
        self.logger.info(f"Attempting to reconnect to {self.address}")
        self.close()
        self.connect()

    def is_alive(self) -> bool:
        """Probe the connection with a short one-byte read.

        A read timeout means the peer is idle and the connection is alive;
        end-of-stream or any other error means it is dead.
        """
        if self._sock is None:
            return False

        try:
            self._sock.settimeout(self.probe_timeout)
            data = self._sock.recv(1)
        except socket.timeout:
            self.last_alive = time.monotonic()
            return True
        except OSError as e:
            self.logger.debug(f"Liveness probe failed: {e}")
            return False

        if not data:
            return False

        # unsolicited bytes; kept so send() can discard them
        self._buffer.extend(data)
        self.last_alive = time.monotonic()
        return True

    def send(self, command: str) -> str:
        """Send one command and read its framed response.

        A write failure reconnects and re-sends exactly once. Failures while
        reading the response are not retried since the daemon may already
        have executed the command.
        """
        if not self.is_alive():
            if self._sock is not None:
                self.logger.warning("Connection appears to be dead, attempting to reconnect")
                self.reconnect()
            else:
                self.connect()

        if self._buffer:
            self.logger.warning(f"Discarding {len(self._buffer)} unsolicited bytes from {self.address}")
            self._buffer.clear()

        payload = f"{command}\n".encode("ascii")
        try:
            self._write(payload)
        except TransportError as e:
            self.logger.warning(f"Failed to send command, reconnecting and retrying once: {e}")
            self.reconnect()
            self._write(payload)

        self.logger.debug("Command sent successfully")
        return self.read_framed_response()

    def _write(self, payload: bytes) -> None:
        try:
            self._sock.settimeout(self.write_timeout)
            self._sock.sendall(payload)
        except socket.timeout:
            raise TransportError(f"timed out writing to {self.address}")
        except OSError as e:
            raise TransportError(f"failed to send command to {self.address}: {e}")

    def _read_line(self, deadline: float) -> Optional[bytes]:
        """Return the next line without its newline, or None at end-of-stream."""
        while True:
            index = self._buffer.find(b"\n")
            if index >= 0:
                line = bytes(self._buffer[:index])
                del self._buffer[:index + 1]
                return line

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise TransportError(f"timed out reading response from {self.address}")

            try:
                self._sock.settimeout(remaining)
                chunk = self._sock.recv(4096)
            except socket.timeout:
                raise TransportError(f"timed out reading response from {self.address}")
            except OSError as e:
                raise TransportError(f"failed to read response from {self.address}: {e}")

            if not chunk:
                if self._buffer:
                    line = bytes(self._buffer)
                    self._buffer.clear()
                    return line
                return None

            self._buffer.extend(chunk)

    def read_framed_response(self) -> str:
        """Read lines until two consecutive blank lines or end-of-stream.

        End-of-stream before any data gets one more read with a short
        deadline, for daemons that close early versus ones that send a
        trailing blank line.
        """
        if self._sock is None:
            raise TransportError(f"not connected to {self.address}")

        lines = []
        empty_lines = 0
        deadline = time.monotonic() + self.read_timeout

        try:
            while True:
                line = self._read_line(deadline)

                if line is None:
                    if lines:
                        break
                    self.logger.debug("Received EOF without any data, retrying read once")
                    line = self._read_line(time.monotonic() + self.retry_read_timeout)
                    if line is None or not line.strip():
                        raise TransportError(
                            f"received EOF without any data from {self.address}"
                        )

                text = line.decode("utf-8", errors="replace").strip()
                if not text:
                    empty_lines += 1
                    if empty_lines >= 2:
                        break
                    continue

                empty_lines = 0
                lines.append(text)
        except TransportError:
            # a half-read response would corrupt the next exchange
            self.close()
            raise

        self.last_alive = time.monotonic()
        return "\n".join(lines)

    def close(self) -> None:
        """Close the connection if one is open."""
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                self.logger.debug(f"Error closing existing connection: {e}")
            self._sock = None
        self._buffer.clear()
