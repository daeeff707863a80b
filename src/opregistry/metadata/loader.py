"""Reading supplementary metadata documents from disk."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from opregistry.core.result import MetadataError
from opregistry.metadata.models import MetadataDocument

METADATA_FOLDER = "contract-metadata"
METADATA_FILE = "metadata.json"


def default_metadata_path(base: Path) -> Path:
    """Conventional location of a supplementary document below ``base``."""
    return base / METADATA_FOLDER / METADATA_FILE


def _format_validation_error(exc: ValidationError) -> str:
    lines = []
    for index, error in enumerate(exc.errors(), 1):
        location = ".".join(str(part) for part in error["loc"]) or "(root)"
        lines.append(f"{index}. {location}: {error['msg']}")
    return "\n".join(lines)


def parse_metadata(data: dict[str, Any] | str | bytes) -> MetadataDocument:
    """Validate a supplementary document's shape.

    Raises:
        MetadataError: listing every problem found.
    """
    try:
        if isinstance(data, (str, bytes)):
            return MetadataDocument.model_validate_json(data)
        return MetadataDocument.model_validate(data)
    except ValidationError as exc:
        raise MetadataError(
            f"Cannot use metadata. Metadata did not match schema:\n{_format_validation_error(exc)}"
        ) from exc


def load_metadata_file(path: Path) -> MetadataDocument:
    """Read and validate the JSON document at ``path``.

    Raises:
        MetadataError: when the file is missing, unreadable or malformed.
    """
    path = Path(path).expanduser()
    if not path.exists():
        raise MetadataError(
            "Failed to read metadata from file. Metadata file does not exist",
            context={"path": str(path)},
        )

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MetadataError(
            f"Failed to read metadata from file. Could not read file {path}. {exc}"
        ) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MetadataError(
            f"Failed to read metadata from file. Could not parse {path}. {exc}"
        ) from exc

    if not isinstance(data, dict):
        raise MetadataError(f"Failed to read metadata from file. Root of {path} must be an object.")

    return parse_metadata(data)


__all__ = ["METADATA_FILE", "METADATA_FOLDER", "default_metadata_path", "load_metadata_file", "parse_metadata"]
