"""Load condition variable catalogs from YAML files.

A catalog file lists variables explicitly and/or derives them from facet
schemas:

    variables:
      - path: metadata.status
        type: string
        label: Status
      - path: metadata.score
        type: number
        allowedOperators: [">=", "<="]
    facets:
      risk:
        title: Risk
        schema:
          type: object
          properties:
            level: {type: string, enum: [low, high]}
"""

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from conditionforge.dsl.catalog import (
    FACET_BASE_PATH,
    ConditionVariableCatalog,
    ConditionVariableDefinition,
    build_facet_definitions,
)
from conditionforge.metadata.validator import (
    ValidationIssue,
    validate_catalog_document,
    validate_catalog_file,
)

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when a catalog file cannot be loaded.

    Attributes:
        issues: Every problem found in the file
    """

    def __init__(self, message: str, issues: list[ValidationIssue] | None = None):
        self.issues = list(issues or [])
        if self.issues:
            message = message + "\n" + "\n".join(f"  {issue}" for issue in self.issues)
        super().__init__(message)


def load_catalog(path: Path | str) -> ConditionVariableCatalog:
    """Read, validate and build a catalog from a YAML file.

    Raises:
        CatalogError: If the file is missing, unparsable or violates the catalog schema
    """
    path = Path(path)
    if not path.is_file():
        raise CatalogError(f"Catalog file not found: {path}")

    issues = validate_catalog_file(path)
    if issues:
        raise CatalogError(f"Invalid catalog file {path}:", issues)

    with path.open() as fh:
        raw = yaml.safe_load(fh)

    catalog = catalog_from_document(raw)
    logger.debug("Loaded %d catalog variable(s) from %s", len(catalog), path)
    return catalog


def catalog_from_document(doc: Mapping[str, Any]) -> ConditionVariableCatalog:
    """Build a catalog from an already-parsed catalog document.

    Explicit variables come first, facet-derived ones after, so an explicit
    entry wins over a facet entry with the same path.

    Raises:
        CatalogError: If the document violates the catalog schema
    """
    issues = validate_catalog_document(doc)
    if issues:
        raise CatalogError("Invalid catalog document:", issues)

    definitions = [
        ConditionVariableDefinition.from_dict(entry) for entry in doc.get("variables") or []
    ]
    facets = doc.get("facets")
    if facets:
        definitions.extend(
            build_facet_definitions(facets, doc.get("facetBasePath") or FACET_BASE_PATH)
        )
    return ConditionVariableCatalog(definitions)
