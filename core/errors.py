"""
Error types raised while recording or loading installed module files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class InstalledModuleError(Exception):
    """Base class for installed module tracking failures."""


class PathError(InstalledModuleError, ValueError):
    """A file path violates the relative-path contract."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class AccessError(InstalledModuleError):
    """An installed file could not be opened or read."""

    def __init__(self, path: str, absolute_path: Path, cause: Optional[OSError] = None) -> None:
        self.path = path
        self.absolute_path = absolute_path
        self.cause = cause
        detail = cause.strerror if cause is not None and cause.strerror else str(cause or "unreadable")
        super().__init__(f"Unable to read {path} ({absolute_path}): {detail}")


class RegistryFormatError(InstalledModuleError, ValueError):
    """Persisted registry data is malformed or unsupported."""
