"""Entry points of the condition DSL: parse text, render JSON-Logic.

    parse_dsl(text, catalog)  -> AST, JSON-Logic, canonical text, variables
    to_dsl(json_logic, catalog) -> canonical text

Both return result objects with an `ok` flag instead of raising.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from conditionforge.dsl.catalog import ConditionVariableCatalog, ConditionVariableDefinition
from conditionforge.dsl.diagnostics import (
    ConditionDslError,
    ConditionDslWarning,
    ErrorCode,
    LineIndex,
    WarningCode,
    create_diagnostic,
)
from conditionforge.dsl.jsonlogic import (
    JsonLogicError,
    JsonLogicExpression,
    expression_to_json_logic,
    json_logic_to_expression,
)
from conditionforge.dsl.lexer import LexerError
from conditionforge.dsl.parser import DEFAULT_MAX_DEPTH, ASTNode, ParseError, Parser, Variable, walk
from conditionforge.dsl.renderer import render_expression
from conditionforge.dsl.validator import validate_ast

logger = logging.getLogger(__name__)


@dataclass
class ConditionDslParseSuccess:
    """A parsed and validated expression.

    Attributes:
        ast: Parsed syntax tree
        json_logic: Canonical JSON-Logic for persistence
        canonical: Canonical DSL text with normalised whitespace/parentheses
        variables: Catalog entries referenced, first-seen order
        warnings: Non-fatal diagnostics
    """

    ast: ASTNode
    json_logic: JsonLogicExpression
    canonical: str
    variables: list[ConditionVariableDefinition] = field(default_factory=list)
    warnings: list[ConditionDslWarning] = field(default_factory=list)
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "jsonLogic": self.json_logic,
            "canonical": self.canonical,
            "variables": [variable.path for variable in self.variables],
            "warnings": [warning.to_dict() for warning in self.warnings],
        }


@dataclass
class ConditionDslParseFailure:
    errors: list[ConditionDslError]
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "errors": [error.to_dict() for error in self.errors]}


@dataclass
class ConditionDslRenderSuccess:
    expression: str
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "expression": self.expression}


@dataclass
class ConditionDslRenderFailure:
    errors: list[ConditionDslError]
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "errors": [error.to_dict() for error in self.errors]}


ConditionDslParseResult = ConditionDslParseSuccess | ConditionDslParseFailure
ConditionDslRenderResult = ConditionDslRenderSuccess | ConditionDslRenderFailure


def parse_dsl(
    expression: str,
    catalog: ConditionVariableCatalog,
    *,
    max_depth: int | None = None,
) -> ConditionDslParseResult:
    """Parse, validate and compile a DSL expression.

    Args:
        expression: DSL source text
        catalog: Variable catalog to validate against
        max_depth: Nesting limit for groups, quantifiers and negations

    Returns:
        ConditionDslParseSuccess, or ConditionDslParseFailure holding either a
        single empty_expression/syntax_error diagnostic or all validation errors

    Example:
        result = parse_dsl("score >= 0.7 && flag == true", catalog)
        if result.ok:
            store(result.json_logic)
    """
    index = LineIndex(expression)

    if not expression.strip():
        return ConditionDslParseFailure(
            [create_diagnostic(ErrorCode.EMPTY_EXPRESSION, "Expression is empty.", index, 0, 0)]
        )

    try:
        ast = Parser(expression, DEFAULT_MAX_DEPTH if max_depth is None else max_depth).parse()
    except (LexerError, ParseError) as exc:
        logger.debug("Syntax error at offset %d: %s", exc.position, exc)
        return ConditionDslParseFailure(
            [create_diagnostic(ErrorCode.SYNTAX_ERROR, str(exc), index, exc.position, exc.position + 1)]
        )

    errors = validate_ast(ast, catalog, index)
    if errors:
        return ConditionDslParseFailure(errors)

    canonical = render_expression(ast)
    warnings = []
    if canonical == "true":
        warnings.append(
            ConditionDslWarning(WarningCode.NOOP_TRUE, "Expression always resolves to true.")
        )

    return ConditionDslParseSuccess(
        ast=ast,
        json_logic=expression_to_json_logic(ast),
        canonical=canonical,
        variables=collect_variable_definitions(ast, catalog),
        warnings=warnings,
    )


def to_dsl(json_logic: JsonLogicExpression, catalog: ConditionVariableCatalog) -> ConditionDslRenderResult:
    """Render a JSON-Logic payload back into canonical DSL text.

    The payload is re-validated against the catalog first; validation errors
    are returned unchanged, malformed payloads as one invalid_json_logic error.
    """
    index = LineIndex("")
    try:
        ast = json_logic_to_expression(json_logic, catalog)
        errors = validate_ast(ast, catalog, index)
        if errors:
            return ConditionDslRenderFailure(errors)
        expression = render_expression(ast)
    except (JsonLogicError, ValueError) as exc:
        return ConditionDslRenderFailure(
            [create_diagnostic(ErrorCode.INVALID_JSON_LOGIC, str(exc), index, 0, 0)]
        )
    except RecursionError:
        logger.debug("JSON-Logic payload exceeded the recursion limit")
        return ConditionDslRenderFailure(
            [
                create_diagnostic(
                    ErrorCode.INVALID_JSON_LOGIC,
                    "JSON-Logic expression is nested too deeply.",
                    index,
                    0,
                    0,
                )
            ]
        )
    return ConditionDslRenderSuccess(expression)


def collect_variable_definitions(
    ast: ASTNode,
    catalog: ConditionVariableCatalog,
) -> list[ConditionVariableDefinition]:
    """Catalog entries referenced by the AST, deduplicated in first-seen order."""
    seen: dict[str, ConditionVariableDefinition] = {}
    for node in walk(ast):
        if isinstance(node, Variable) and node.path not in seen:
            definition = catalog.lookup(node.path)
            if definition is not None:
                seen[node.path] = definition
    return list(seen.values())
