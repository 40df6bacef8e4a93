#!/usr/bin/env python3
"""
Unbound Control API - Command Line Interface

Main entry point: serves the HTTP API or runs one control command.
"""

import argparse
import logging
import sys

from ..core.control_manager import ControlManager
from ..exceptions import ControlAPIError
from ..utils.config import config_logger, load_config

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unbound-control-api",
        description="Unbound Control API - HTTP and command line control of Unbound",
    )

    parser.add_argument(
        "--config",
        "-c",
        default="configs/config.yaml",
        help="Configuration file path (default: configs/config.yaml)",
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("serve", help="Run the HTTP API server")
    subparsers.add_parser("status", help="Show daemon status")
    subparsers.add_parser("stats", help="Show daemon statistics")
    subparsers.add_parser("reload", help="Reload the daemon configuration")
    flush_parser = subparsers.add_parser("flush", help="Flush the cache")
    flush_parser.add_argument("--domain", "-d", help="Only flush this domain")
    subparsers.add_parser("zones", help="List configured zones")
    records_parser = subparsers.add_parser("records", help="List the records of a zone")
    records_parser.add_argument("zone", help="Zone name")
    subparsers.add_parser("check", help="Check the control connection")

    return parser


def serve(config) -> None:
    """Run the Flask server in the foreground."""
    from ..api.app import create_app

    server_config = config.get("server", {})
    app = create_app(config)

    ssl_context = None
    if server_config.get("use_tls"):
        ssl_context = (server_config["cert_file"], server_config["key_file"])

    host = server_config.get("host", "127.0.0.1")
    port = server_config.get("port", 8080)
    logger.info(f"Starting Unbound Control API on {host}:{port}")
    try:
        app.run(host=host, port=port, ssl_context=ssl_context, threaded=True)
    finally:
        app.control_client.close()


def run_command(manager: ControlManager, args) -> bool:
    if args.command == "status":
        return manager.show_status()
    if args.command == "stats":
        return manager.show_stats()
    if args.command == "reload":
        return manager.reload()
    if args.command == "flush":
        return manager.flush(args.domain)
    if args.command == "zones":
        return manager.show_zones()
    if args.command == "records":
        return manager.show_records(args.zone)
    if args.command == "check":
        return manager.check()
    raise ValueError(f"unknown command '{args.command}'")


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ControlAPIError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.verbose:
        config["logging"]["level"] = "DEBUG"
    config_logger(config)

    try:
        if args.command == "serve":
            serve(config)
            sys.exit(0)

        manager = ControlManager(config)
        try:
            success = run_command(manager, args)
        finally:
            manager.close()

        sys.exit(0 if success else 1)

    except (ControlAPIError, ValueError, OSError) as e:
        print(f"Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
