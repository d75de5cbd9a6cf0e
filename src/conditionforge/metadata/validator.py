"""
JSON Schema validation for variable catalog YAML files.

Usage:
    from conditionforge.metadata.validator import validate_catalog_file

    issues = validate_catalog_file(Path("catalog.yaml"))
    for issue in issues:
        print(issue)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"
CATALOG_SCHEMA = "catalog.schema.json"


@dataclass
class ValidationIssue:
    """A single validation finding for a catalog document."""

    file: Path | None
    message: str
    path: str = ""          # location within the document, e.g. "variables[0]/type"
    severity: str = "error"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        source = self.file if self.file is not None else "<catalog>"
        return f"[{self.severity.upper()}] {source}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


@lru_cache(maxsize=None)
def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_catalog_document(doc: Any, *, file: Path | None = None) -> list[ValidationIssue]:
    """
    Validate an already-parsed catalog document.

    Args:
        doc:  Parsed YAML/JSON content.
        file: Source file, used only in reported issues.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    validator = Draft202012Validator(_load_schema(CATALOG_SCHEMA))
    return [
        ValidationIssue(file=file, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path)))
    ]


def validate_catalog_file(yaml_path: Path) -> list[ValidationIssue]:
    """
    Validate a catalog YAML file.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [ValidationIssue(file=yaml_path, message=f"YAML parse error: {exc}")]
    except OSError as exc:
        return [ValidationIssue(file=yaml_path, message=f"Cannot read file: {exc}")]

    if raw is None:
        return [
            ValidationIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    issues = validate_catalog_document(raw, file=yaml_path)
    if issues:
        logger.debug("%d schema issue(s) in %s", len(issues), yaml_path)
    return issues
