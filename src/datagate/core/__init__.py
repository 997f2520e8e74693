"""Core datagate utilities.

This module exports core utilities for use throughout the application.
"""

from datagate.core.clock import Clock, ensure_utc, utc_now
from datagate.core.config import Settings, get_settings
from datagate.core.logging import (
    LoggingContext,
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Clock",
    "Settings",
    "ensure_utc",
    "get_settings",
    "configure_logging",
    "get_logger",
    "LoggingContext",
    "bind_correlation_id",
    "clear_context",
    "utc_now",
]
