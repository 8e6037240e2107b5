"""
Schema Validation Utilities

Validates the JSON documents that cross a process boundary:

- the persisted mapping document written after generation and read back
  on import (QuestionMapping list + ignored template GUIDs)
- the deployment configuration file read by the CLI

Structural checks come from JSON Schema (`*.schema.json` beside this
module); cross-record invariants that JSON Schema cannot express (unique
GUIDs, contiguous order) are checked by hand afterwards.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

# Schema version constants
MAPPINGS_SCHEMA_VERSION = 1
CONFIG_SCHEMA_VERSION = 1


# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


class ValidationError(Exception):
    """Raised when data fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def _check_schema(data: Any, schema_name: str) -> None:
    schema = _load_schema(schema_name)
    validator = jsonschema.Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.absolute_path))
    if errors:
        first = errors[0]
        raise ValidationError(
            f"Schema validation failed: {first.message}",
            path=".".join(str(p) for p in first.absolute_path),
            errors=[e.message for e in errors],
        )


def validate_mappings(data: dict[str, Any]) -> None:
    """
    Validate a persisted mapping document.

    Args:
        data: Dict with `schema_version`, `question_mappings` and
            `ignored_slide_guids`

    Raises:
        ValidationError: If the document is malformed, a GUID repeats,
            or order values are not contiguous from 1
    """
    _check_schema(data, "mappings")

    version = data.get("schema_version")
    if version != MAPPINGS_SCHEMA_VERSION:
        raise ValidationError(
            f"Unsupported mappings schema version: {version} (expected {MAPPINGS_SCHEMA_VERSION})",
            path="schema_version",
        )

    mappings = data["question_mappings"]
    guids = [m["slide_guid"] for m in mappings if m.get("slide_guid")]
    duplicates = sorted({g for g in guids if guids.count(g) > 1})
    if duplicates:
        raise ValidationError(
            f"Duplicate slide GUIDs: {duplicates}",
            path="question_mappings",
            errors=[f"Duplicate GUID: {g}" for g in duplicates],
        )

    orders = sorted(m["order"] for m in mappings)
    if orders != list(range(1, len(mappings) + 1)):
        raise ValidationError(
            f"Mapping order must be contiguous from 1, got {orders}",
            path="question_mappings",
        )


def validate_config(data: dict[str, Any]) -> None:
    """
    Validate a deployment configuration document.

    Raises:
        ValidationError: If the document has unknown keys or bad values
    """
    _check_schema(data, "deployment_config")
