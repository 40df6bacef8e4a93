#!/usr/bin/env python3
"""
Control Manager - Wires the control client and zone manager together

This module builds the client and zone manager from configuration and renders
daemon state for the command line.
"""

import logging
from typing import Dict, Optional

from rich.console import Console
from rich.table import Table

from ..exceptions import ControlAPIError
from ..transports.control_client import ControlClient
from .zone_manager import ZoneManager

# Initialize rich console and logger
console = Console()
logger = logging.getLogger(__name__)


class ControlManager:
    """Main class that owns one control client and its zone manager."""

    def __init__(self, config: Dict, control_client: Optional[ControlClient] = None):
        """Initialize the manager with loaded configuration."""
        self.config = config
        self.control_client = control_client or ControlClient(config.get("unbound", {}))
        self.zone_manager = ZoneManager(self.control_client, config.get("zones", {}))

    def close(self):
        self.control_client.close()

    def _report_failure(self, action: str, error: Exception) -> bool:
        logger.error(f"Failed to {action}: {error}")
        console.print(f"[red]Failed to {action}: {error}[/red]")
        return False

    def check(self) -> bool:
        """Check that the daemon answers on the control channel."""
        try:
            status = self.control_client.test_connection()
        except ControlAPIError as e:
            return self._report_failure("reach Unbound", e)

        console.print(f"[green]Connected to Unbound {status.version}[/green]")
        return True

    def show_status(self) -> bool:
        """Display daemon status."""
        try:
            status = self.control_client.status()
        except ControlAPIError as e:
            return self._report_failure("get status", e)

        table = Table(title="Unbound Status")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Version", status.version)
        table.add_row("Verbosity", str(status.verbosity))
        table.add_row("Threads", str(status.threads))
        table.add_row("Modules", " ".join(status.modules))
        table.add_row("Uptime", status.uptime.formatted)
        table.add_row("Control", status.options.control or "-")
        console.print(table)
        return True

    def show_stats(self) -> bool:
        """Display daemon statistics."""
        try:
            stats = self.control_client.stats()
        except ControlAPIError as e:
            return self._report_failure("get stats", e)

        table = Table(title="Unbound Statistics")
        table.add_column("Counter", style="cyan")
        table.add_column("Value", style="magenta", justify="right")
        table.add_row("Queries", str(stats.queries.total))
        table.add_row("Queries rate limited", str(stats.queries.ip_ratelimited))
        table.add_row("Cache hits", str(stats.cache.hits))
        table.add_row("Cache misses", str(stats.cache.misses))
        table.add_row("Prefetch", str(stats.cache.prefetch))
        table.add_row("Zero TTL", str(stats.cache.zero_ttl))
        table.add_row("Recursive replies", str(stats.recursion.replies))
        table.add_row("Recursion time avg", f"{stats.recursion.time.average:.6f}")
        table.add_row("Recursion time median", f"{stats.recursion.time.median:.6f}")
        table.add_row("Request list avg", f"{stats.request_list.average:.2f}")
        table.add_row("Request list max", str(stats.request_list.max))
        table.add_row("Request list exceeded", str(stats.request_list.exceeded))
        table.add_row("TCP usage", f"{stats.tcp_usage:.2f}")
        console.print(table)
        return True

    def show_zones(self) -> bool:
        """Display configured zones."""
        try:
            zones = self.control_client.list_zones()
        except ControlAPIError as e:
            return self._report_failure("list zones", e)

        table = Table(title="Zones")
        table.add_column("Name", style="cyan")
        table.add_column("Type", style="magenta")
        table.add_column("File", style="white")
        table.add_column("Masters/Forwarders", style="white")
        for zone in zones:
            table.add_row(
                zone.name,
                zone.type,
                zone.file or "-",
                ", ".join(zone.masters + zone.forwards) or "-",
            )
        console.print(table)
        console.print(f"\n[bold]Total zones: {len(zones)}[/bold]")
        return True

    def show_records(self, zone_name: str) -> bool:
        """Display the records of a file-backed zone."""
        try:
            zone_file = self.zone_manager.get_zone_file(zone_name)
        except (ControlAPIError, ValueError) as e:
            return self._report_failure(f"read zone {zone_name}", e)

        table = Table(title=f"Records in {zone_name} ({zone_file.name})")
        table.add_column("Name", style="cyan")
        table.add_column("TTL", style="magenta", justify="right")
        table.add_column("Class", style="white")
        table.add_column("Type", style="green")
        table.add_column("Data", style="white")
        for record in zone_file.ordered_records():
            table.add_row(
                record.name,
                str(record.ttl) if record.ttl else "-",
                record.rclass or "-",
                record.type,
                record.rdata,
            )
        console.print(table)
        return True

    def reload(self) -> bool:
        try:
            self.control_client.reload()
        except ControlAPIError as e:
            return self._report_failure("reload Unbound", e)

        console.print("[green]Configuration reloaded successfully[/green]")
        return True

    def flush(self, domain: Optional[str] = None) -> bool:
        try:
            self.control_client.flush(domain)
        except (ControlAPIError, ValueError) as e:
            return self._report_failure("flush cache", e)

        console.print("[green]Cache flushed successfully[/green]")
        return True
