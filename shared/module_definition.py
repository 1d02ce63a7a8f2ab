"""
Shared representation of a module descriptor supplied by the installer.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .manifest_schema import load_and_validate_module, validate_module_document


@dataclass(frozen=True)
class ModuleDefinition:
    """
    Wraps a module descriptor document.

    The file tracking core only relies on ``identifier``; the rest of the
    document is carried along so it can be embedded in the registry as-is.
    """

    document: Dict[str, Any] = field(compare=True, repr=False)

    @classmethod
    def from_document(cls, document: Any) -> "ModuleDefinition":
        """Check an existing descriptor and keep it exactly as given."""
        validate_module_document(document)
        return cls(document=copy.deepcopy(document))

    @classmethod
    def load(cls, path: Path) -> "ModuleDefinition":
        return cls(document=load_and_validate_module(path))

    @property
    def identifier(self) -> str:
        return self.document["identifier"].strip()

    @property
    def name(self) -> str:
        return self.document.get("name") or self.identifier

    @property
    def version(self) -> Optional[str]:
        version = self.document.get("version")
        return None if version is None else str(version).strip()

    def to_document(self) -> Dict[str, Any]:
        """Return a detached copy of the descriptor document."""
        return copy.deepcopy(self.document)

    def __hash__(self) -> int:
        return hash((self.identifier, self.version))

    def __repr__(self) -> str:
        return f"ModuleDefinition(identifier={self.identifier!r}, version={self.version!r})"
