#!/usr/bin/env python3
"""
Unbound Control API - Main Entry Point

This is the main entry point for the Unbound Control API.
It can be run directly or imported as a module.
"""

from unbound_control_api.cli.main import main

if __name__ == "__main__":
    main()
