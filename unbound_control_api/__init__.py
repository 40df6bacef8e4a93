"""
Unbound Control API - HTTP and command line control of the Unbound resolver

Talks to Unbound over its control protocol and edits the zone files it serves.
"""

__version__ = "1.0.0"
__author__ = "Unbound Control API Team"
__description__ = "HTTP control surface for the Unbound DNS resolver"

from .core.control_manager import ControlManager
from .core.zone_manager import ZoneManager
from .transports.control_client import ControlClient

__all__ = [
    "ControlManager",
    "ZoneManager",
    "ControlClient",
]
