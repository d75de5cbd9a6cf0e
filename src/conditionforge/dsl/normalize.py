"""Normalisation of condition input supplied as DSL text or raw JSON-Logic.

This is the boundary used by API handlers and other consumers: it either
returns the canonical condition artifact or raises ConditionDslValidationError,
which carries every diagnostic for the caller to surface (typically as a 400).
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from conditionforge.dsl.catalog import ConditionVariableCatalog
from conditionforge.dsl.diagnostics import (
    ConditionDslError,
    ConditionDslWarning,
    DiagnosticRange,
    ErrorCode,
    Position,
)
from conditionforge.dsl.engine import parse_dsl
from conditionforge.dsl.jsonlogic import JsonLogicExpression

INVALID_CONDITION_DSL_ERROR = "invalid_condition_dsl"


class ConditionInput(BaseModel):
    """A condition as submitted by a client: DSL text, JSON-Logic, or both."""

    model_config = ConfigDict(populate_by_name=True)

    dsl: str | None = None
    json_logic: Any = Field(default=None, alias="jsonLogic")


@dataclass
class ConditionValidationResult:
    """The canonical condition artifact.

    `canonical_dsl` is None when the caller supplied JSON-Logic directly.
    """

    json_logic: JsonLogicExpression
    canonical_dsl: str | None
    warnings: list[ConditionDslWarning] = field(default_factory=list)
    variables: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jsonLogic": self.json_logic,
            "canonicalDsl": self.canonical_dsl,
            "warnings": [warning.to_dict() for warning in self.warnings],
            "variables": list(self.variables),
        }


class ConditionDslValidationError(Exception):
    """Raised when a condition cannot be normalised.

    Attributes:
        errors: Every diagnostic explaining why
        code: Stable error code for API responses
    """

    code = INVALID_CONDITION_DSL_ERROR

    def __init__(self, errors: list[ConditionDslError]):
        self.errors = list(errors)
        super().__init__("Invalid condition expression.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "errors": [error.to_dict() for error in self.errors],
        }


def normalize_condition_input(
    condition: ConditionInput | Mapping[str, Any],
    *,
    catalog: ConditionVariableCatalog | None = None,
    max_depth: int | None = None,
) -> ConditionValidationResult:
    """Turn submitted condition input into the canonical artifact.

    Non-empty DSL text wins over JSON-Logic. JSON-Logic alone passes through
    unchanged, without validation.

    Args:
        condition: ConditionInput or a mapping with `dsl` and/or `jsonLogic`
        catalog: Catalog for DSL validation; defaults to the configured catalog
        max_depth: Parser nesting limit; defaults to the configured limit

    Raises:
        ConditionDslValidationError: If the DSL is invalid, or nothing was supplied
    """
    if not isinstance(condition, ConditionInput):
        condition = ConditionInput.model_validate(condition)

    dsl = (condition.dsl or "").strip()

    if dsl:
        if catalog is None or max_depth is None:
            from conditionforge.config import ConditionForgeConfig

            config = ConditionForgeConfig.from_env()
            if catalog is None:
                catalog = config.load_catalog()
            if max_depth is None:
                max_depth = config.max_depth

        result = parse_dsl(dsl, catalog, max_depth=max_depth)
        if not result.ok:
            raise ConditionDslValidationError(result.errors)
        return ConditionValidationResult(
            json_logic=result.json_logic,
            canonical_dsl=result.canonical,
            warnings=list(result.warnings),
            variables=[variable.path for variable in result.variables],
        )

    if condition.json_logic is not None:
        return ConditionValidationResult(json_logic=condition.json_logic, canonical_dsl=None)

    origin = Position(0, 1, 1)
    raise ConditionDslValidationError(
        [
            ConditionDslError(
                ErrorCode.EMPTY_EXPRESSION,
                "Either `dsl` or `jsonLogic` must be provided.",
                DiagnosticRange(origin, origin),
            )
        ]
    )
