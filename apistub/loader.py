"""Load and validate an OpenAPI document.

Reads a YAML or JSON file into a plain mapping and checks the top-level
fields the engine depends on before any resolution starts.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from .errors import InvalidDocumentError

_YAML_SUFFIXES = {".yaml", ".yml"}


def load_spec(path: Path | str) -> dict[str, Any]:
    """Load an OpenAPI document from disk and validate its top level."""
    spec_file = Path(path)
    try:
        text = spec_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidDocumentError(f"Cannot read {spec_file}: {exc}") from exc

    try:
        if spec_file.suffix.lower() in _YAML_SUFFIXES:
            spec = yaml.safe_load(text)
        else:
            spec = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise InvalidDocumentError(f"Failed to parse {spec_file}: {exc}") from exc

    validate_document(spec)
    return spec


def validate_document(spec: Any) -> None:
    """Raise InvalidDocumentError unless the required top-level fields exist."""
    if not isinstance(spec, dict):
        raise InvalidDocumentError("Document root must be a mapping.")
    if not spec.get("openapi"):
        raise InvalidDocumentError("Missing required field: openapi")
    info = spec.get("info")
    if not isinstance(info, dict):
        raise InvalidDocumentError("Missing required field: info")
    for key in ("title", "version"):
        if info.get(key) in (None, ""):
            raise InvalidDocumentError(f"Missing required field: info.{key}")
    if not isinstance(spec.get("paths", {}), dict):
        raise InvalidDocumentError("Field 'paths' must be a mapping.")


def get_paths(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract paths from the spec."""
    return spec.get("paths") or {}


def get_schemas(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract component schemas from the spec."""
    return (spec.get("components") or {}).get("schemas") or {}


def get_security_schemes(spec: dict[str, Any]) -> dict[str, Any]:
    """Extract component security schemes from the spec."""
    return (spec.get("components") or {}).get("securitySchemes") or {}
