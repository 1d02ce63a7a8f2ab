"""
Module descriptor validation utilities shared by the core and the command line.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


class ManifestValidationError(ValueError):
    """Raised when a module descriptor is missing required data or is malformed."""


@dataclass(frozen=True)
class ManifestConstraints:
    """Schema constraints as simple dataclass constants."""

    max_identifier_length: int = 120
    max_name_length: int = 240
    identifier_pattern: str = r"^[A-Za-z0-9][A-Za-z0-9._-]*$"


def load_and_validate_module(path: Path) -> Dict[str, Any]:
    """
    Load a module descriptor JSON file and validate it.

    Returns the normalized descriptor document.
    """
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestValidationError(f"Module descriptor not found: {path}") from exc
    except OSError as exc:
        raise ManifestValidationError(f"Unable to read module descriptor: {path}") from exc

    try:
        raw_document = json.loads(contents)
    except json.JSONDecodeError as exc:
        raise ManifestValidationError(f"Module descriptor is not valid JSON: {exc}") from exc

    return validate_module_document(raw_document)


def validate_module_document(raw_document: Any) -> Dict[str, Any]:
    """
    Validate an already decoded module descriptor.

    Only ``identifier`` is required. ``name`` and ``version`` are checked when
    present; every other key is kept untouched since the descriptor is opaque
    to the file tracking core.
    """
    if not isinstance(raw_document, dict):
        raise ManifestValidationError("Module descriptor root must be a JSON object.")

    constraints = ManifestConstraints()

    identifier = _require_string(
        raw_document.get("identifier"),
        field="identifier",
        max_length=constraints.max_identifier_length,
        required=True,
    )
    if not re.match(constraints.identifier_pattern, identifier):
        raise ManifestValidationError(
            "identifier may only contain letters, digits, '.', '_' and '-', "
            "and must start with a letter or digit."
        )

    name = _require_string(
        raw_document.get("name"),
        field="name",
        max_length=constraints.max_name_length,
        required=False,
    )

    version = raw_document.get("version")
    if version is not None and not isinstance(version, (str, int)):
        raise ManifestValidationError("version must be a string.")

    normalized = dict(raw_document)
    normalized["identifier"] = identifier
    if name:
        normalized["name"] = name
    else:
        normalized.pop("name", None)
    if version is not None:
        normalized["version"] = str(version).strip()

    return normalized


def parse_iso8601_utc(value: str, *, field: str = "timestamp") -> datetime:
    """
    Parse a subset of ISO-8601 formatted timestamps that must be UTC.

    Accepts values ending with 'Z' or explicit '+00:00' offsets. Raises
    ManifestValidationError when parsing fails or when timezone is not UTC.
    """
    if not isinstance(value, str):
        raise ManifestValidationError(f"{field} must be a string.")

    cleaned = value.strip()
    try:
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        dt = datetime.fromisoformat(cleaned)
    except ValueError as exc:
        raise ManifestValidationError(
            f"{field} must be in ISO-8601 format (e.g. 2026-01-01T00:00:00Z)."
        ) from exc

    if dt.tzinfo is None:
        raise ManifestValidationError(f"{field} must include a timezone in UTC.")

    if dt.utcoffset() != timezone.utc.utcoffset(None):
        raise ManifestValidationError(f"{field} must be specified in UTC.")

    return dt.astimezone(timezone.utc)


def format_utc_iso(dt: datetime) -> str:
    """Return a canonical UTC ISO-8601 string with trailing 'Z'."""
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _require_string(
    value: Any,
    *,
    field: str,
    max_length: Optional[int] = None,
    required: bool,
) -> str:
    """Validate that a value is a string in accordance with constraints."""
    if value is None:
        if required:
            raise ManifestValidationError(f"{field} is required.")
        return ""

    if not isinstance(value, str):
        raise ManifestValidationError(f"{field} must be a string.")

    stripped = value.strip()
    if required and stripped == "":
        raise ManifestValidationError(f"{field} must be a non-empty string.")

    if max_length is not None and len(stripped) > max_length:
        raise ManifestValidationError(
            f"{field} must be at most {max_length} characters."
        )

    return stripped
