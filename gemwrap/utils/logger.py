"""Logging setup for gemwrap.

Library code only ever calls ``logging.getLogger(__name__)``; handlers are
installed by applications (the CLI does it once per invocation).
"""

from __future__ import annotations

import logging
from typing import List, Optional

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
PACKAGE_LOGGER = "gemwrap"
USAGE_LOGGER = "gemwrap.usage"

# The Google client stack logs transport chatter at INFO.
NOISY_LOGGERS = ("google", "grpc", "absl", "urllib3", "httpx")

_configured = False


def configure_logging(
    *,
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    debug: bool = False,
    force: bool = False,
) -> None:
    """Install stderr (and optionally file) handlers on the root logger.

    Args:
        level: Root level name such as ``"INFO"``; unknown names raise ``ValueError``.
        log_file: Also append records to this file.
        log_format: Format string shared by every handler.
        debug: Emit ``gemwrap`` DEBUG records regardless of ``level``.
        force: Replace handlers installed by an earlier call.
    """

    global _configured
    if _configured and not force:
        return

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=numeric_level, format=log_format, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))
    logging.getLogger(PACKAGE_LOGGER).setLevel(logging.DEBUG if debug else logging.NOTSET)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, configuring defaults on first use."""

    if not _configured:
        configure_logging()
    return logging.getLogger(name)


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "PACKAGE_LOGGER",
    "USAGE_LOGGER",
    "configure_logging",
    "get_logger",
]
