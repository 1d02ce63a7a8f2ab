"""
Resolution of module file paths against an installation root.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Protocol, Union

from .errors import PathError


class RootResolver(Protocol):
    """Anything able to turn an installation-relative path into an absolute one."""

    def to_absolute(self, relative_path: str) -> Path:
        ...


def is_rooted(path: str) -> bool:
    """
    Return whether ``path`` is anchored on either platform.

    Covers POSIX absolute paths, drive letters (with or without a separator),
    UNC shares and paths starting with a backslash.
    """
    return PurePosixPath(path).is_absolute() or bool(PureWindowsPath(path).anchor)


def escapes_root(path: str) -> bool:
    """Return whether the ``..`` parts of a relative path climb above its root."""
    depth = 0
    for part in PurePosixPath(path.replace("\\", "/")).parts:
        depth = depth - 1 if part == ".." else depth + 1
        if depth < 0:
            return True
    return False


@dataclass(frozen=True)
class InstallRoot:
    """Filesystem-backed resolver rooted at a single directory."""

    root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root).absolute())

    def to_absolute(self, relative_path: str) -> Path:
        if is_rooted(relative_path):
            raise PathError(relative_path, "path must be relative to the installation root")
        if escapes_root(relative_path):
            raise PathError(relative_path, "path escapes the installation root")
        # Symlinks are left for the platform to follow when the file is opened.
        return self.root.joinpath(*PurePosixPath(relative_path.replace("\\", "/")).parts)

    def to_relative(self, absolute_path: Union[str, Path]) -> str:
        candidate = Path(absolute_path).absolute()
        try:
            return candidate.relative_to(self.root).as_posix()
        except ValueError as exc:
            raise PathError(str(absolute_path), f"path is outside the installation root {self.root}") from exc
