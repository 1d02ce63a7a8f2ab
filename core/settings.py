"""
Environment-backed configuration for modtrack.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from modtrack_core import logger as app_logger

_LOGGER = app_logger.get_logger()

_ENV_PREFIX = "MODTRACK_"
_MIN_FINGERPRINT_WORKERS = 1
_MAX_FINGERPRINT_WORKERS = 32
_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}

DEFAULT_REGISTRY_PATH = Path.home() / ".modtrack" / "registry.json"


@dataclass(eq=True)
class CoreSettings:
    registry_path: Path = field(default_factory=lambda: DEFAULT_REGISTRY_PATH)
    fingerprint_workers: int = 1
    log_path: Optional[Path] = None
    log_level: str = "INFO"


class CoreSettingsManager:
    """Loads settings from the environment and clamps invalid data."""

    def __init__(self, *, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

    def read_settings(self) -> CoreSettings:
        defaults = CoreSettings()
        return CoreSettings(
            registry_path=self._read_path("REGISTRY") or defaults.registry_path,
            fingerprint_workers=self._read_fingerprint_workers(defaults.fingerprint_workers),
            log_path=self._read_path("LOG_FILE"),
            log_level=self._read_log_level(defaults.log_level),
        )

    def _read(self, name: str) -> Optional[str]:
        raw = self._environ.get(_ENV_PREFIX + name)
        if raw is None or raw.strip() == "":
            return None
        return raw.strip()

    def _read_path(self, name: str) -> Optional[Path]:
        raw = self._read(name)
        if raw is None:
            return None
        return Path(raw).expanduser()

    def _read_fingerprint_workers(self, default: int) -> int:
        raw = self._read("FINGERPRINT_WORKERS")
        if raw is None:
            return default
        try:
            value = int(raw)
        except ValueError:
            _LOGGER.warning("Invalid {}FINGERPRINT_WORKERS value {!r}; using {}.", _ENV_PREFIX, raw, default)
            return default
        if value < _MIN_FINGERPRINT_WORKERS or value > _MAX_FINGERPRINT_WORKERS:
            _LOGGER.warning(
                "Fingerprint worker count {} out of range. Clamping to safe bounds.",
                value,
            )
        return max(_MIN_FINGERPRINT_WORKERS, min(_MAX_FINGERPRINT_WORKERS, value))

    def _read_log_level(self, default: str) -> str:
        raw = self._read("LOG_LEVEL")
        if raw is None:
            return default
        level = raw.upper()
        if level not in _LOG_LEVELS:
            _LOGGER.warning("Unknown log level {!r}; using {}.", raw, default)
            return default
        return level
