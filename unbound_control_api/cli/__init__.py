"""
Command-line interface components.

This package contains the CLI entry point for the control API.
"""

from .main import main

__all__ = ["main"]
