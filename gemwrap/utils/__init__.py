"""Utility helpers for gemwrap."""

from .logger import (
    DEFAULT_LOG_FORMAT,
    PACKAGE_LOGGER,
    USAGE_LOGGER,
    configure_logging,
    get_logger,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "DEFAULT_LOG_FORMAT",
    "PACKAGE_LOGGER",
    "USAGE_LOGGER",
]
