"""Variable catalog for the condition DSL.

The catalog is the registry of variable paths a condition may reference,
with the declared type and the comparison operators each one permits. The
engine only reads it; callers own its lifecycle.

Catalogs can be built three ways:
- directly from ConditionVariableDefinition objects
- from plain mappings (ConditionVariableCatalog.from_dicts)
- from JSON-Schema-shaped facet definitions (build_facet_definitions)
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

COMPARISON_OPERATORS = ("==", "!=", "<", "<=", ">", ">=")
EQUALITY_OPERATORS = ("==", "!=")

FACET_BASE_PATH = "metadata.runContextSnapshot.facets"


class VariableType(str, Enum):
    """Declared type of a catalog variable."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


def default_allowed_operators_for_type(variable_type: VariableType | str) -> tuple[str, ...]:
    """Conventional operator set: numbers can be ordered, everything else only compared for equality."""
    if VariableType(variable_type) == VariableType.NUMBER:
        return COMPARISON_OPERATORS
    return EQUALITY_OPERATORS


@dataclass(frozen=True)
class ConditionVariableDefinition:
    """A single catalog entry.

    Attributes:
        id: Stable identifier used in UI selections
        path: Dot-delimited path; the key the DSL and JSON-Logic refer to
        label: Human-readable label
        type: Declared data type used for operator and type validation
        allowed_operators: Comparison operators permitted for this variable
        dsl_path: Path shown to authors (defaults to path)
        group: Optional grouping hint for UI organisation
        description: Optional documentation text
        example: Optional example value
    """

    id: str
    path: str
    label: str
    type: VariableType
    allowed_operators: tuple[str, ...] = ()
    dsl_path: str | None = None
    group: str | None = None
    description: str | None = None
    example: Any = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "type", VariableType(self.type))
        if not self.allowed_operators:
            object.__setattr__(
                self, "allowed_operators", default_allowed_operators_for_type(self.type)
            )
        else:
            unknown = [op for op in self.allowed_operators if op not in COMPARISON_OPERATORS]
            if unknown:
                raise ValueError(
                    f"Variable '{self.path}' declares unsupported operators: {', '.join(unknown)}"
                )
            object.__setattr__(self, "allowed_operators", tuple(self.allowed_operators))
        if self.dsl_path is None:
            object.__setattr__(self, "dsl_path", self.path)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConditionVariableDefinition":
        """Build a definition from a mapping; camelCase keys are accepted."""
        path = data["path"]
        return cls(
            id=data.get("id") or path,
            path=path,
            label=data.get("label") or path,
            type=VariableType(data["type"]),
            allowed_operators=tuple(
                data.get("allowed_operators") or data.get("allowedOperators") or ()
            ),
            dsl_path=data.get("dsl_path") or data.get("dslPath"),
            group=data.get("group"),
            description=data.get("description"),
            example=data.get("example"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "dslPath": self.dsl_path,
            "label": self.label,
            "group": self.group,
            "type": self.type.value,
            "description": self.description,
            "example": self.example,
            "allowedOperators": list(self.allowed_operators),
        }


@dataclass
class ConditionVariableCatalog:
    """Read-only registry of condition variables keyed by path.

    Duplicate paths keep the first definition.
    """

    variables: list[ConditionVariableDefinition] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_path: dict[str, ConditionVariableDefinition] = {}
        unique: list[ConditionVariableDefinition] = []
        for variable in self.variables:
            if variable.path in self._by_path:
                logger.warning("Duplicate catalog path '%s' ignored", variable.path)
                continue
            self._by_path[variable.path] = variable
            unique.append(variable)
        self.variables = unique

    @classmethod
    def from_dicts(cls, entries: Iterable[Mapping[str, Any]]) -> "ConditionVariableCatalog":
        return cls([ConditionVariableDefinition.from_dict(entry) for entry in entries])

    def lookup(self, path: str) -> ConditionVariableDefinition | None:
        return self._by_path.get(path)

    def paths(self) -> list[str]:
        return [variable.path for variable in self.variables]

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def __iter__(self) -> Iterator[ConditionVariableDefinition]:
        return iter(self.variables)

    def __len__(self) -> int:
        return len(self.variables)


# -----------------------------------------------------------------------------
# Facet schema collection
# -----------------------------------------------------------------------------


@dataclass
class _CollectorContext:
    facet_title: str
    base_path: str
    description: str | None = None
    path_segments: list[str] = field(default_factory=list)
    label_segments: list[str] = field(default_factory=list)


def build_facet_definitions(
    facets: Mapping[str, Mapping[str, Any]],
    base_path: str = FACET_BASE_PATH,
) -> list[ConditionVariableDefinition]:
    """Derive catalog entries from JSON-Schema-shaped facet definitions.

    Args:
        facets: Facet name -> {"title"?, "description"?, "schema"}
        base_path: Prefix for every generated path; each facet's schema is
            rooted at "<base_path>.<facet>.value"

    Returns:
        One definition per scalar leaf and per array, sorted by path
    """
    definitions: dict[str, ConditionVariableDefinition] = {}

    for name, facet in facets.items():
        title = (facet.get("title") or "").strip() or format_segment(name)
        description = facet.get("description")
        if not isinstance(description, str) or not description.strip():
            description = None
        context = _CollectorContext(
            facet_title=title,
            base_path=f"{base_path}.{name}.value",
            description=description.strip() if description else None,
        )
        _collect_schema_definitions(facet.get("schema"), context, definitions)

    return sorted(definitions.values(), key=lambda definition: definition.path)


def _collect_schema_definitions(
    schema: Mapping[str, Any] | None,
    context: _CollectorContext,
    definitions: dict[str, ConditionVariableDefinition],
) -> None:
    if not isinstance(schema, Mapping):
        return

    for keyword in ("allOf", "anyOf", "oneOf"):
        for candidate in schema.get(keyword) or []:
            _collect_schema_definitions(candidate, context, definitions)

    kind = _resolve_schema_type(schema)

    if kind == "object":
        for key, property_schema in (schema.get("properties") or {}).items():
            if not isinstance(property_schema, Mapping):
                continue
            property_title = (property_schema.get("title") or "").strip()
            property_description = property_schema.get("description")
            next_context = _CollectorContext(
                facet_title=context.facet_title,
                base_path=context.base_path,
                description=(
                    property_description.strip()
                    if isinstance(property_description, str) and property_description.strip()
                    else context.description
                ),
                path_segments=[*context.path_segments, key],
                label_segments=[*context.label_segments, property_title or format_segment(key)],
            )
            _collect_schema_definitions(property_schema, next_context, definitions)
        return

    if kind == "array":
        _register_definition(schema, context, VariableType.ARRAY, definitions)
        items = schema.get("items")
        if isinstance(items, Mapping):
            _collect_schema_definitions(items, context, definitions)
        return

    if kind in ("string", "number", "boolean"):
        _register_definition(schema, context, VariableType(kind), definitions)


def _register_definition(
    schema: Mapping[str, Any],
    context: _CollectorContext,
    variable_type: VariableType,
    definitions: dict[str, ConditionVariableDefinition],
) -> None:
    path = ".".join([context.base_path, *context.path_segments])
    if path in definitions:
        return

    label = context.facet_title
    if context.label_segments:
        label = " · ".join([context.facet_title, *context.label_segments])

    description = schema.get("description")
    if not isinstance(description, str) or not description.strip():
        description = context.description
    else:
        description = description.strip()

    definitions[path] = ConditionVariableDefinition(
        id=path,
        path=path,
        label=label,
        type=variable_type,
        group=context.facet_title,
        description=description,
        example=_extract_example(schema),
    )


def _extract_example(schema: Mapping[str, Any]) -> Any:
    examples = schema.get("examples")
    if isinstance(examples, list) and examples:
        return examples[0]
    if "example" in schema:
        return schema["example"]
    enum = schema.get("enum")
    if isinstance(enum, list) and enum:
        return enum[0]
    return None


def _resolve_schema_type(schema: Mapping[str, Any]) -> str:
    """Classify a schema as object, array, string, number, boolean or unknown."""
    raw = schema.get("type")
    if isinstance(raw, str):
        types = [] if raw == "null" else [raw]
    elif isinstance(raw, list):
        types = [entry for entry in raw if entry != "null"]
    else:
        types = []

    if "object" in types:
        return "object"
    if "array" in types:
        return "array"
    if "number" in types or "integer" in types:
        return "number"
    if "boolean" in types:
        return "boolean"
    if "string" in types:
        return "string"

    if schema.get("properties"):
        return "object"
    if schema.get("items"):
        return "array"
    enum = schema.get("enum")
    if isinstance(enum, list) and enum:
        return _infer_type_from_value(enum[0])
    return "unknown"


def _infer_type_from_value(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "unknown"


def format_segment(segment: str) -> str:
    """Humanise a schema key: "planKnobs" -> "Plan Knobs", "variant_count" -> "Variant Count"."""
    expanded = re.sub(r"[_-]+", " ", segment)
    expanded = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", expanded)
    return " ".join(part[:1].upper() + part[1:] for part in expanded.split())
