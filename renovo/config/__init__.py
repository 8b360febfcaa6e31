"""Configuration module."""

from renovo.config.logging import configure_logging, get_logger, request_context
from renovo.config.settings import Settings, get_settings, reset_settings

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
    "request_context",
]
