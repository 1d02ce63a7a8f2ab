"""
Verification and removal of the files recorded for an installed module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, List, Tuple

from modtrack_core import logger as app_logger

from .errors import AccessError, PathError
from .file_fingerprint import FileFingerprint
from .install_root import RootResolver
from .installed_module import InstalledPackageRecord


class FileStatus(Enum):
    UNCHANGED = "Unchanged"
    MODIFIED = "Modified"
    MISSING = "Missing"
    UNREADABLE = "Unreadable"


@dataclass
class VerificationResult:
    identifier: str
    statuses: Dict[str, FileStatus] = field(default_factory=dict)
    errors: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return all(status is FileStatus.UNCHANGED for status in self.statuses.values())

    def paths_with(self, status: FileStatus) -> List[str]:
        return sorted(path for path, value in self.statuses.items() if value is status)


def verify_installed_module(
    record: InstalledPackageRecord,
    root: RootResolver,
    *,
    logger=None,
) -> VerificationResult:
    """
    Re-hash every recorded file and compare it with the stored digest.

    Per-file failures are reported in the result rather than raised.
    """
    log = logger or app_logger.get_logger()
    result = VerificationResult(identifier=record.module_identifier())

    for path, expected in record.files.items():
        try:
            absolute_path = root.to_absolute(path)
        except PathError as exc:
            result.statuses[path] = FileStatus.UNREADABLE
            result.errors.append((path, exc))
            continue
        if not absolute_path.exists():
            result.statuses[path] = FileStatus.MISSING
            continue

        try:
            current = FileFingerprint.create(path, root)
        except AccessError as exc:
            result.statuses[path] = FileStatus.UNREADABLE
            result.errors.append((path, exc))
            continue

        if current.sha1 == expected.sha1:
            result.statuses[path] = FileStatus.UNCHANGED
        else:
            result.statuses[path] = FileStatus.MODIFIED

    if result.is_clean:
        log.debug("All {} file(s) of {} verified", len(result.statuses), result.identifier)
    else:
        log.warning(
            "{}: {} modified, {} missing, {} unreadable",
            result.identifier,
            len(result.paths_with(FileStatus.MODIFIED)),
            len(result.paths_with(FileStatus.MISSING)),
            len(result.paths_with(FileStatus.UNREADABLE)),
        )
    return result


@dataclass
class RemovalResult:
    identifier: str
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    errors: List[Tuple[str, Exception]] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.errors


def remove_installed_files(
    record: InstalledPackageRecord,
    root: RootResolver,
    *,
    logger=None,
) -> RemovalResult:
    """
    Delete the files of an installed module, then its now-empty directories.

    Entries already gone are skipped; directories still holding other
    content are kept. A path that cannot be resolved or deleted is reported
    in ``errors`` and the remaining entries are still processed.
    """
    log = logger or app_logger.get_logger()
    result = RemovalResult(identifier=record.module_identifier())
    directories: List[str] = []

    for path, entry in record.files.items():
        if entry.is_directory:
            directories.append(path)
            continue
        try:
            absolute_path = root.to_absolute(path)
            if absolute_path.is_dir():
                log.warning("Recorded file {} is now a directory; leaving it in place", path)
                result.kept.append(path)
                continue
            absolute_path.unlink()
        except FileNotFoundError:
            continue
        except (PathError, OSError) as exc:
            log.warning("Unable to remove {}: {}", path, exc)
            result.errors.append((path, exc))
            continue
        result.removed.append(path)

    # Deepest directories first so parents can become empty.
    for path in sorted(directories, key=lambda value: len(PurePosixPath(value).parts), reverse=True):
        try:
            absolute_path = root.to_absolute(path)
            if not absolute_path.is_dir():
                continue
            if any(absolute_path.iterdir()):
                log.info("Keeping non-empty directory {}", path)
                result.kept.append(path)
                continue
            absolute_path.rmdir()
        except FileNotFoundError:
            continue
        except (PathError, OSError) as exc:
            log.warning("Unable to remove {}: {}", path, exc)
            result.errors.append((path, exc))
            continue
        result.removed.append(path)

    log.info(
        "Removed {} path(s) of {} ({} failed)",
        len(result.removed),
        result.identifier,
        len(result.errors),
    )
    return result
