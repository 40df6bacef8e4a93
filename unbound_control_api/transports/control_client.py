"""
Control Client - Typed operations over the daemon's control protocol

This module selects a transport from configuration, serializes commands on
it and turns raw responses into typed results or protocol errors.
"""

import json
import logging
import threading
from typing import Dict, List, Optional

from .base_transport import ControlTransport
from .mock_transport import MockTransport
from .socket_transport import UnixSocketTransport
from .tls_transport import TLSTransport
from ..exceptions import ConfigError, ProtocolError
from ..models import StatsInfo, StatusInfo, Zone
from ..parsers.response import parse_stats_response, parse_status_response
from ..utils.validators import validate_command, validate_zone, validate_zone_name

module_logger = logging.getLogger(__name__)


class ControlClient:
    """Client for one logical control channel.

    Commands are serialized with a lock: the protocol carries no request
    identifiers, so responses cannot be matched to interleaved commands.
    """

    def __init__(
        self,
        config: Dict,
        transport: Optional[ControlTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize control client with the ``unbound`` configuration section."""
        self.config = config
        self.logger = logger or module_logger
        self.transport = transport or self._get_transport()
        self._lock = threading.Lock()

    def _get_transport(self) -> ControlTransport:
        """Get control transport based on configuration."""
        transport_name = self.config.get("transport", "tls")

        if transport_name == "tls":
            return TLSTransport(self.config, logger=self.logger)
        elif transport_name == "unix":
            return UnixSocketTransport(self.config, logger=self.logger)
        elif transport_name == "mock":
            return MockTransport(self.config, logger=self.logger)
        raise ConfigError(f"Unknown control transport '{transport_name}'")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        self.transport.close()

    def send_command(self, command: str) -> str:
        """
        Send one command and return its response text.

        Raises:
            ValueError: if the command is not a single ASCII line
            TransportError: if the channel fails
            ProtocolError: if the response is empty or starts with ``error``
        """
        validate_command(command)
        verb = command.split(" ", 1)[0]
        self.logger.debug(f"Sending command: {command}")

        with self._lock:
            response = self.transport.send(command)

        if not response:
            self.logger.error(f"Received empty response to '{verb}'")
            raise ProtocolError(f"received empty response to '{verb}'")

        if response.startswith("error"):
            self.logger.error(f"Unbound control error: {response}")
            raise ProtocolError(response)

        self.logger.debug(f"Received response: {response}")
        return response

    def _decode_json(self, response: str, what: str):
        try:
            return json.loads(response)
        except ValueError as e:
            raise ProtocolError(f"failed to parse {what}: {e}")

    # Common commands
    def status(self) -> StatusInfo:
        return parse_status_response(self.send_command("status"))

    def reload(self) -> str:
        return self.send_command("reload")

    def flush(self, domain: Optional[str] = None) -> str:
        """Flush the cache for ``domain``, or send a bare ``flush``."""
        if domain is None:
            return self.send_command("flush")
        if not validate_zone_name(domain):
            raise ValueError(f"invalid domain '{domain}'")
        return self.send_command(f"flush {domain}")

    def stats(self) -> StatsInfo:
        return parse_stats_response(self.send_command("stats"))

    def info(self) -> str:
        return self.send_command("info")

    # Zone management commands
    def list_zones(self) -> List[Zone]:
        data = self._decode_json(self.send_command("list_zones"), "zones")
        if not isinstance(data, list):
            raise ProtocolError("failed to parse zones: expected a JSON list")
        try:
            return [Zone.from_dict(item) for item in data]
        except ValueError as e:
            raise ProtocolError(f"failed to parse zones: {e}")

    def add_zone(self, zone: Zone) -> None:
        validate_zone(zone)
        self.send_command(f"add_zone {json.dumps(zone.to_dict(), separators=(',', ':'))}")
        self.logger.info(f"Added zone {zone.name} ({zone.type})")

    def remove_zone(self, zone_name: str) -> None:
        if not validate_zone_name(zone_name):
            raise ValueError(f"invalid zone name '{zone_name}'")
        self.send_command(f"remove_zone {zone_name}")
        self.logger.info(f"Removed zone {zone_name}")

    def update_zone(self, zone: Zone) -> None:
        validate_zone(zone)
        self.send_command(f"update_zone {json.dumps(zone.to_dict(), separators=(',', ':'))}")
        self.logger.info(f"Updated zone {zone.name} ({zone.type})")

    def get_zone(self, zone_name: str) -> Zone:
        if not validate_zone_name(zone_name):
            raise ValueError(f"invalid zone name '{zone_name}'")
        data = self._decode_json(self.send_command(f"get_zone {zone_name}"), "zone")
        try:
            return Zone.from_dict(data)
        except ValueError as e:
            raise ProtocolError(f"failed to parse zone: {e}")

    def test_connection(self) -> StatusInfo:
        """Verify that the daemon answers ``status`` with a version line."""
        self.logger.info("Testing connection to Unbound control interface")
        response = self.send_command("status")
        status = parse_status_response(response)

        if not status.version:
            self.logger.error(f"Could not determine Unbound version from response: {response}")
            raise ProtocolError("could not determine Unbound version")

        self.logger.info(f"Connected to Unbound version: {status.version}")
        return status
