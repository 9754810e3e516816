"""
Utility functions and helpers.

This package contains utility functions for validation,
configuration, and other common operations.
"""

from .config import ReconcilerSettings, config_logger, load_config
from .validators import validate_hostname, validate_ipv4, validate_zone_name

__all__ = [
    "ReconcilerSettings",
    "config_logger",
    "load_config",
    "validate_hostname",
    "validate_ipv4",
    "validate_zone_name",
]
