#!/usr/bin/env python3
"""
Unbound Control API - Demo Script

This script demonstrates the control client and zone file management using
the mock transport for safe testing and demonstration.
"""

import os
import shutil
import tempfile

from rich.console import Console
from rich.panel import Panel

from unbound_control_api.core.control_manager import ControlManager
from unbound_control_api.exceptions import ControlAPIError, PartialFailureError
from unbound_control_api.models import Record
from unbound_control_api.utils.config import get_default_config

# Initialize rich console
console = Console()

DEMO_ZONE = "ib.bigbank.com"

DEMO_ZONE_TEXT = """$ORIGIN ib.bigbank.com.
$TTL 3600
@ IN SOA ns1.ib.bigbank.com. hostmaster.ib.bigbank.com. (
        2024010101 ; serial
        7200 3600 1209600 3600 )
@ IN NS ns1.ib.bigbank.com.
; name server
ns1 IN A 10.33.0.53
"""


def create_demo_zone(work_dir):
    """Write a demo zone file and return its path."""
    zone_path = os.path.join(work_dir, f"{DEMO_ZONE}.zone")
    with open(zone_path, "w") as f:
        f.write(DEMO_ZONE_TEXT)
    return zone_path


def create_demo_config(zone_path):
    """Build a configuration that talks to the mock transport."""
    config = get_default_config()
    config["unbound"] = {
        "transport": "mock",
        "version": "1.22.0",
        "zones": [
            {"name": DEMO_ZONE, "type": "primary", "file": zone_path},
            {"name": "corp.local", "type": "forward", "forwards": ["10.33.0.53"]},
        ],
    }
    return config


def display_demo_header():
    """Display the demo header."""
    console.print(
        Panel.fit(
            "[bold blue]Unbound Control API - Demo[/bold blue]\n"
            f"[cyan]Daemon control and zone file management for {DEMO_ZONE}[/cyan]",
            border_style="blue",
        )
    )
    console.print()


def run_record_lifecycle(manager):
    """Add, update and remove records, showing the zone after each step."""
    zones = manager.zone_manager

    console.print("[bold]Adding web servers...[/bold]")
    zones.add_zone_record(DEMO_ZONE, Record(name="web1", type="A", rdata="10.33.1.10", ttl=300, rclass="IN"))
    zones.add_zone_record(DEMO_ZONE, Record(name="web2", type="A", rdata="10.33.1.11", ttl=300, rclass="IN"))
    manager.show_records(DEMO_ZONE)

    console.print("[bold]Moving web2 to a new address...[/bold]")
    zones.update_zone_record(DEMO_ZONE, Record(name="web2", type="A", rdata="10.33.1.12", ttl=300, rclass="IN"))
    manager.show_records(DEMO_ZONE)

    console.print("[bold]Removing web1...[/bold]")
    removed = zones.remove_zone_record(DEMO_ZONE, "web1", "A")
    console.print(f"[green]✓ Removed {removed} record(s)[/green]")
    manager.show_records(DEMO_ZONE)


def run_partial_failure_demo(manager):
    """Show that a failed reload after a write is reported, not hidden."""
    console.print("[bold]Simulating a reload failure...[/bold]")
    manager.control_client.transport.fail_commands.add("reload")
    try:
        manager.zone_manager.add_zone_record(
            DEMO_ZONE, Record(name="db1", type="A", rdata="10.33.2.10", rclass="IN")
        )
    except PartialFailureError as e:
        console.print(f"[yellow]Partial failure: {e}[/yellow]")
        console.print(f"[yellow]The new content is already in {e.path}; retry the reload[/yellow]")
    finally:
        manager.control_client.transport.fail_commands.discard("reload")

    manager.reload()
    console.print()


def main():
    """Main demo function."""
    display_demo_header()
    work_dir = tempfile.mkdtemp(prefix="unbound-demo-")

    try:
        console.print("[blue]Initializing Control Manager...[/blue]")
        manager = ControlManager(create_demo_config(create_demo_zone(work_dir)))
        console.print("[green]✓ Control Manager initialized successfully[/green]")
        console.print()

        manager.check()
        manager.show_status()
        manager.show_stats()
        manager.show_zones()
        manager.show_records(DEMO_ZONE)

        run_record_lifecycle(manager)
        run_partial_failure_demo(manager)
        manager.flush(DEMO_ZONE)
        manager.close()

        console.print(
            Panel.fit(
                "[bold green]Demo Summary[/bold green]\n"
                "✓ Control Manager initialized\n"
                "✓ Status and statistics decoded\n"
                "✓ Zone records added, updated and removed\n"
                "✓ Mock transport used (no real daemon touched)",
                border_style="green",
            )
        )

    except ControlAPIError as e:
        console.print(f"[red]Demo failed with error: {e}[/red]")
        console.print("[yellow]Check the logs for more details[/yellow]")

    finally:
        shutil.rmtree(work_dir, ignore_errors=True)
        console.print()
        console.print("[bold blue]Demo completed![/bold blue]")


if __name__ == "__main__":
    main()
