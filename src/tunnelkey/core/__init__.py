"""
TunnelKey Core Module

Core configuration, settings, and utilities.
"""

from .config import (
    Settings,
    FetchSettings,
    LogSettings,
    get_settings,
)
from .logging import setup_logging, get_logger

__all__ = [
    # Settings
    "Settings",
    "FetchSettings",
    "LogSettings",
    "get_settings",
    # Logging
    "setup_logging",
    "get_logger",
]
