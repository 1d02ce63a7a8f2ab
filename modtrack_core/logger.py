"""
Logging setup for modtrack.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

_LOG_INITIALISED = False


def configure(log_path: Optional[Path] = None, *, level: str = "INFO") -> None:
    """
    Configure loguru sinks for the command line.

    Only the first call has an effect. Library code never calls this, so
    embedding applications keep whatever sinks they already installed.
    """
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return

    # Keep console output and add a persistent file sink when requested.
    _logger.remove()
    if sys.stderr is not None:
        _logger.add(sys.stderr, level=level, enqueue=True)
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _logger.add(
            log_path,
            level="DEBUG",
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
    _LOG_INITIALISED = True


def get_logger():
    """Return the shared logger instance."""
    return _logger
