"""
Core control and zone management functionality.
"""

from .control_manager import ControlManager
from .zone_manager import ZoneManager

__all__ = ["ControlManager", "ZoneManager"]
