"""
Mock control transport for testing and demonstration.

This module answers control commands from memory with daemon-shaped text,
for safe testing and demonstration without a running resolver.
"""

import json
import logging
import time
from typing import Dict, List, Optional

from .base_transport import ControlTransport

module_logger = logging.getLogger(__name__)


class MockTransport(ControlTransport):
    """In-memory stand-in for the daemon's control channel."""

    def __init__(self, config: Dict = None, logger: Optional[logging.Logger] = None):
        """Initialize mock transport.

        Recognised config keys: ``zones`` (list of zone objects),
        ``fail_commands`` (verbs answered with an error) and ``version``.
        """
        config = config or {}
        self.logger = logger or module_logger
        self.version = config.get("version", "1.22.0")
        self.zones: Dict[str, Dict] = {
            zone["name"]: dict(zone) for zone in config.get("zones", [])
        }
        self.fail_commands = set(config.get("fail_commands", []))
        self.commands: List[str] = []
        self.reload_count = 0
        self.queries = 0
        self._started = time.monotonic()
        self._response = ""

        self._handlers = {
            "status": self._status,
            "stats": self._stats,
            "info": self._info,
            "reload": self._reload,
            "flush": self._flush,
            "list_zones": self._list_zones,
            "get_zone": self._get_zone,
            "add_zone": self._add_zone,
            "update_zone": self._update_zone,
            "remove_zone": self._remove_zone,
        }
        self.logger.info("Mock control transport initialized")

    def send(self, command: str) -> str:
        """Record the command and compute its response."""
        self.commands.append(command)
        verb, _, argument = command.partition(" ")

        if verb in self.fail_commands:
            self._response = f"error {verb} failed"
        elif verb in self._handlers:
            self._response = self._handlers[verb](argument.strip())
        else:
            self._response = f"error unknown command '{verb}'"

        self.logger.debug(f"Mock: {verb} -> {self._response.splitlines()[0] if self._response else ''}")
        return self.read_framed_response()

    def read_framed_response(self) -> str:
        return self._response.strip()

    def close(self) -> None:
        self.logger.debug("Mock: transport closed")

    def _status(self, _argument: str) -> str:
        uptime = int(time.monotonic() - self._started)
        return "\n".join(
            [
                f"version: {self.version}",
                "verbosity: 1",
                "threads: 1",
                "modules: 2 [ validator iterator ]",
                f"uptime: {uptime} seconds",
                "options: control(ssl)",
                "unbound (pid 4242) is running...",
            ]
        )

    def _stats(self, _argument: str) -> str:
        self.queries += 1
        return "\n".join(
            [
                f"total.num.queries={self.queries}",
                "total.num.queries_ip_ratelimited=0",
                f"total.num.cachehits={self.queries // 2}",
                f"total.num.cachemiss={self.queries - self.queries // 2}",
                "total.num.prefetch=0",
                "total.num.zero_ttl=0",
                f"total.num.recursivereplies={self.queries - self.queries // 2}",
                "total.requestlist.avg=0",
                "total.requestlist.max=0",
                "total.requestlist.overwritten=0",
                "total.requestlist.exceeded=0",
                "total.requestlist.current.all=0",
                "total.requestlist.current.user=0",
                "total.recursion.time.avg=0.012500",
                "total.recursion.time.median=0.008",
                "total.tcpusage=0",
            ]
        )

    def _info(self, _argument: str) -> str:
        return f"unbound {self.version} (mock)\nzones: {len(self.zones)}"

    def _reload(self, _argument: str) -> str:
        self.reload_count += 1
        return "ok"

    def _flush(self, _argument: str) -> str:
        return "ok"

    def _list_zones(self, _argument: str) -> str:
        return json.dumps(list(self.zones.values()))

    def _get_zone(self, name: str) -> str:
        if name not in self.zones:
            return f"error zone {name} not found"
        return json.dumps(self.zones[name])

    def _parse_zone(self, argument: str) -> Optional[Dict]:
        try:
            zone = json.loads(argument)
        except ValueError:
            return None
        if not isinstance(zone, dict) or not zone.get("name"):
            return None
        return zone

    def _add_zone(self, argument: str) -> str:
        zone = self._parse_zone(argument)
        if zone is None:
            return "error invalid zone payload"
        if zone["name"] in self.zones:
            return f"error zone {zone['name']} already exists"
        self.zones[zone["name"]] = zone
        return "ok"

    def _update_zone(self, argument: str) -> str:
        zone = self._parse_zone(argument)
        if zone is None:
            return "error invalid zone payload"
        if zone["name"] not in self.zones:
            return f"error zone {zone['name']} not found"
        self.zones[zone["name"]] = zone
        return "ok"

    def _remove_zone(self, name: str) -> str:
        if name not in self.zones:
            return f"error zone {name} not found"
        del self.zones[name]
        return "ok"
