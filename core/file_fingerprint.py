"""
Content fingerprints for individual installed files.

Digests are SHA-1, rendered as uppercase hyphen-separated hex pairs so
existing registry documents keep validating.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import AccessError, RegistryFormatError
from .install_root import RootResolver

HASH_CHUNK_SIZE = 1024 * 1024


def format_sha1(raw_digest: bytes) -> str:
    """Render a raw digest as ``3A-F2-...``."""
    return "-".join(f"{byte:02X}" for byte in raw_digest)


def sha1_sum(path: Path) -> Optional[str]:
    """
    Return the formatted SHA-1 of the file at ``path``.

    Returns None for directories. Raises OSError when the file cannot be
    opened or read; the handle is closed on every path out of the block.
    """
    if path.is_dir():
        return None

    hasher = hashlib.sha1()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(HASH_CHUNK_SIZE), b""):
            hasher.update(chunk)
    return format_sha1(hasher.digest())


@dataclass(frozen=True)
class FileFingerprint:
    """A single installed path together with its content digest."""

    path: str
    sha1: Optional[str] = None

    @classmethod
    def create(cls, relative_path: str, root: RootResolver) -> "FileFingerprint":
        absolute_path = root.to_absolute(relative_path)
        try:
            sha1 = sha1_sum(absolute_path)
        except OSError as exc:
            raise AccessError(relative_path, absolute_path, exc) from exc
        return cls(path=relative_path, sha1=sha1)

    @classmethod
    def from_document(cls, path: str, document: Any) -> "FileFingerprint":
        """Rebuild an entry from the registry; the stored digest is trusted as-is."""
        if not isinstance(document, dict):
            raise RegistryFormatError(f"installed_files entry for {path} must be an object.")
        sha1 = document.get("sha1_sum")
        if sha1 is not None and not isinstance(sha1, str):
            raise RegistryFormatError(f"sha1_sum for {path} must be a string or null.")
        return cls(path=path, sha1=sha1)

    @property
    def is_directory(self) -> bool:
        return self.sha1 is None

    def digest(self) -> Optional[str]:
        return self.sha1

    def to_document(self) -> Dict[str, Optional[str]]:
        return {"sha1_sum": self.sha1}
