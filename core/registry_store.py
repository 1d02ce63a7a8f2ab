"""
Persistence layer for installed module records using a JSON registry document.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from modtrack_core import logger as app_logger

from .errors import RegistryFormatError
from .installed_module import InstalledPackageRecord

REGISTRY_VERSION = 1


class RegistryStore:
    """Thin wrapper over the registry file enabling consistent storage of records."""

    def __init__(self, path: Path, *, logger=None) -> None:
        self.path = Path(path)
        self._logger = logger or app_logger.get_logger()

    def installed_modules(self) -> Dict[str, InstalledPackageRecord]:
        with self._open_document(writable=False) as document:
            entries = document["installed_modules"]
            records = {}
            for identifier, entry in entries.items():
                try:
                    records[identifier] = InstalledPackageRecord.from_document(entry)
                except RegistryFormatError as exc:
                    raise RegistryFormatError(f"{self.path}: module {identifier}: {exc}") from exc
            return records

    def identifiers(self) -> List[str]:
        with self._open_document(writable=False) as document:
            return sorted(document["installed_modules"])

    def get(self, identifier: str) -> Optional[InstalledPackageRecord]:
        with self._open_document(writable=False) as document:
            entry = document["installed_modules"].get(identifier)
        if entry is None:
            return None
        try:
            return InstalledPackageRecord.from_document(entry)
        except RegistryFormatError as exc:
            raise RegistryFormatError(f"{self.path}: module {identifier}: {exc}") from exc

    def register(self, record: InstalledPackageRecord) -> None:
        identifier = record.module_identifier()
        with self._open_document(writable=True) as document:
            entries = document["installed_modules"]
            if identifier in entries:
                self._logger.info("Replacing existing registry entry for {}", identifier)
            entries[identifier] = record.to_document()
        self._logger.debug("Registered {} in {}", identifier, self.path)

    def deregister(self, identifier: str) -> bool:
        with self._open_document(writable=True) as document:
            removed = document["installed_modules"].pop(identifier, None) is not None
        if removed:
            self._logger.debug("Deregistered {} from {}", identifier, self.path)
        return removed

    def owner_of(self, relative_path: str) -> Optional[str]:
        """Return the identifier of the module that recorded ``relative_path``."""
        with self._open_document(writable=False) as document:
            for identifier, entry in sorted(document["installed_modules"].items()):
                files = entry.get("installed_files") if isinstance(entry, dict) else None
                if isinstance(files, dict) and relative_path in files:
                    return identifier
        return None

    @contextmanager
    def _open_document(self, *, writable: bool) -> Iterator[Dict[str, Any]]:
        document = self._read_document()
        yield document
        if writable:
            self._write_document(document)

    def _read_document(self) -> Dict[str, Any]:
        try:
            contents = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return _empty_document()
        except OSError as exc:
            raise RegistryFormatError(f"Unable to read registry: {self.path}") from exc

        try:
            document = json.loads(contents)
        except json.JSONDecodeError as exc:
            raise RegistryFormatError(f"Registry is not valid JSON: {exc}") from exc

        if not isinstance(document, dict):
            raise RegistryFormatError("Registry root must be a JSON object.")

        version = document.get("registry_version", REGISTRY_VERSION)
        if version != REGISTRY_VERSION:
            raise RegistryFormatError(f"Unsupported registry_version {version!r} in {self.path}.")

        entries = document.setdefault("installed_modules", {})
        if not isinstance(entries, dict):
            raise RegistryFormatError("installed_modules must be an object.")
        document["registry_version"] = REGISTRY_VERSION
        return document

    def _write_document(self, document: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        staging = self.path.with_name(self.path.name + ".tmp")
        staging.write_text(json.dumps(document, indent=2), encoding="utf-8")
        staging.replace(self.path)


def _empty_document() -> Dict[str, Any]:
    return {"registry_version": REGISTRY_VERSION, "installed_modules": {}}
