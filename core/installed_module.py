"""
Record of the files a single module placed on disk.

Primarily used by the registry store: includes the time of installation,
the module descriptor and a fingerprint for every installed path.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, KeysView, List, Mapping, Optional

from shared.manifest_schema import ManifestValidationError, format_utc_iso, parse_iso8601_utc
from shared.module_definition import ModuleDefinition
from modtrack_core import logger as app_logger

from .errors import AccessError, PathError, RegistryFormatError
from .file_fingerprint import FileFingerprint
from .install_root import RootResolver, escapes_root, is_rooted


@dataclass(frozen=True)
class InstalledPackageRecord:
    """
    Immutable record of an installed module.

    Constructing the dataclass directly trusts its arguments. Fresh installs
    go through ``create``; registry loads go through ``from_document``.
    """

    module: ModuleDefinition
    installed_at: datetime
    files: Mapping[str, FileFingerprint] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.module is None:
            raise TypeError("An installed module record requires a module descriptor.")
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    def __hash__(self) -> int:
        return hash((self.module, self.installed_at, frozenset(self.files.items())))

    @classmethod
    def create(
        cls,
        root: RootResolver,
        module: ModuleDefinition,
        relative_files: Iterable[str],
        *,
        max_workers: int = 1,
        logger=None,
    ) -> "InstalledPackageRecord":
        """
        Fingerprint every file of a freshly installed module.

        All paths are checked before any file is touched; the first rooted
        path, or one whose ``..`` parts climb out of the root, raises
        PathError. An unreadable file raises AccessError and no record is
        produced. Repeated paths collapse into one entry.
        """
        log = logger or app_logger.get_logger()
        if module is None:
            raise TypeError("An installed module record requires a module descriptor.")

        installed_at = datetime.now(timezone.utc).replace(microsecond=0)
        paths = list(relative_files)

        for path in paths:
            if is_rooted(path):
                log.error("Refusing to record rooted path {} for {}", path, module.identifier)
                raise PathError(path, "installed module files must be relative")
            if escapes_root(path):
                log.error("Refusing to record {} for {}: escapes the installation root", path, module.identifier)
                raise PathError(path, "installed module files must stay inside the installation root")

        unique_paths = list(dict.fromkeys(paths))
        try:
            fingerprints = _fingerprint_all(unique_paths, root, max_workers)
        except AccessError as exc:
            log.error("Unable to fingerprint {} for {}: {}", exc.path, module.identifier, exc)
            raise

        log.info(
            "Recorded {} file(s) for module {} at {}",
            len(fingerprints),
            module.identifier,
            format_utc_iso(installed_at),
        )
        return cls(
            module=module,
            installed_at=installed_at,
            files={entry.path: entry for entry in fingerprints},
        )

    @classmethod
    def from_document(cls, document: Any) -> "InstalledPackageRecord":
        """Rebuild a record from its registry document without touching the disk."""
        if not isinstance(document, dict):
            raise RegistryFormatError("Installed module entry must be an object.")

        try:
            installed_at = parse_iso8601_utc(document.get("install_time"), field="install_time")
            module = ModuleDefinition.from_document(document.get("source_module"))
        except ManifestValidationError as exc:
            raise RegistryFormatError(str(exc)) from exc

        raw_files = document.get("installed_files")
        if raw_files is None:
            raw_files = {}
        if not isinstance(raw_files, dict):
            raise RegistryFormatError("installed_files must be an object.")

        files = {path: FileFingerprint.from_document(path, entry) for path, entry in raw_files.items()}
        return cls(module=module, installed_at=installed_at, files=files)

    def to_document(self) -> Dict[str, Any]:
        return {
            "install_time": format_utc_iso(self.installed_at),
            "source_module": self.module.to_document(),
            "installed_files": {path: entry.to_document() for path, entry in self.files.items()},
        }

    def file_paths(self) -> KeysView[str]:
        return self.files.keys()

    def module_identifier(self) -> str:
        return self.module.identifier

    def descriptor(self) -> ModuleDefinition:
        return self.module

    def fingerprint(self, path: str) -> Optional[FileFingerprint]:
        return self.files.get(path)


def _fingerprint_all(paths: List[str], root: RootResolver, max_workers: int) -> List[FileFingerprint]:
    if max_workers <= 1 or len(paths) < 2:
        return [FileFingerprint.create(path, root) for path in paths]

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fingerprint") as pool:
        futures = [pool.submit(FileFingerprint.create, path, root) for path in paths]
        try:
            # Input order decides which failure is reported.
            return [future.result() for future in futures]
        except AccessError:
            for future in futures:
                future.cancel()
            raise
