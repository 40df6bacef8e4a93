"""
Utility functions and helpers.

This package contains validation and configuration helpers.
"""

from .config import get_default_config, load_config
from .validators import validate_record, validate_zone_name

__all__ = ["get_default_config", "load_config", "validate_record", "validate_zone_name"]
