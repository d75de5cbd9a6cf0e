"""Conversion between condition ASTs and JSON-Logic.

JSON-Logic is the persisted, range-free form of a condition:

    facets.score >= 0.7 && some(items as x, x.flag == true)

becomes

    {"and": [
        {">=": [{"var": "facets.score"}, 0.7]},
        {"some": [{"var": "items"}, {"==": [{"var": "x.flag"}, true]}, "x"]}
    ]}

Nested `and`/`or` are flattened into one operand list. Quantifiers carry a
third alias element only when the alias was written explicitly or differs
from "item".
"""

from typing import Any, Sequence, Union

from conditionforge.dsl.catalog import ConditionVariableCatalog
from conditionforge.dsl.parser import (
    DEFAULT_ALIAS,
    QUANTIFIER_OPERATORS,
    ASTNode,
    BinaryOp,
    Literal,
    Quantifier,
    UnaryOp,
    Variable,
)

JsonLogicExpression = Union[None, bool, int, float, str, list, dict[str, Any]]

COMPARISON_OPERATORS = ("==", "!=", ">", ">=", "<", "<=")

_LOGICAL_TO_JSON = {"&&": "and", "||": "or"}
_JSON_TO_LOGICAL = {"and": "&&", "or": "||"}


class JsonLogicError(Exception):
    """Raised when a JSON-Logic payload cannot be represented in the DSL."""
    pass


# -----------------------------------------------------------------------------
# AST -> JSON-Logic
# -----------------------------------------------------------------------------


def expression_to_json_logic(node: ASTNode) -> JsonLogicExpression:
    """Convert an AST to its canonical JSON-Logic form."""
    if isinstance(node, Literal):
        return node.value

    if isinstance(node, Variable):
        return {"var": node.path}

    if isinstance(node, UnaryOp):
        return {"!": expression_to_json_logic(node.argument)}

    if isinstance(node, BinaryOp):
        left = expression_to_json_logic(node.left)
        right = expression_to_json_logic(node.right)
        kind = _LOGICAL_TO_JSON.get(node.operator)
        if kind is not None:
            return {kind: _flatten_logical(kind, [left, right])}
        return {node.operator: [left, right]}

    if isinstance(node, Quantifier):
        operands = [
            expression_to_json_logic(node.collection),
            expression_to_json_logic(node.predicate),
        ]
        if node.alias_provided or node.alias != DEFAULT_ALIAS:
            operands.append(node.alias)
        return {node.operator: operands}

    raise JsonLogicError(f"Unknown node type: {type(node).__name__}")


def _flatten_logical(kind: str, operands: list[JsonLogicExpression]) -> list[JsonLogicExpression]:
    """Merge operands that are themselves `kind` expressions into one list."""
    flattened: list[JsonLogicExpression] = []
    for operand in operands:
        if isinstance(operand, dict) and len(operand) == 1 and isinstance(operand.get(kind), list):
            flattened.extend(operand[kind])
        else:
            flattened.append(operand)
    return flattened


# -----------------------------------------------------------------------------
# JSON-Logic -> AST
# -----------------------------------------------------------------------------


def json_logic_to_expression(
    value: JsonLogicExpression,
    catalog: ConditionVariableCatalog,
    alias_stack: Sequence[str] = (),
) -> ASTNode:
    """Rebuild an AST from JSON-Logic. All ranges are None.

    Args:
        value: JSON-Logic expression
        catalog: Catalog used to tell catalog paths from alias-relative paths
        alias_stack: Aliases of the enclosing quantifiers, outermost first

    Raises:
        JsonLogicError: If the payload is malformed or uses unsupported operators
    """
    if isinstance(value, list):
        raise JsonLogicError("Unexpected array at root level in JSON-Logic expression.")

    if not isinstance(value, dict):
        if value is not None and not isinstance(value, (bool, int, float, str)):
            raise JsonLogicError(f"Unsupported JSON-Logic literal of type {type(value).__name__}.")
        return Literal(value)

    if len(value) != 1:
        raise JsonLogicError("JSON-Logic object must have exactly one operator.")

    operator, operand = next(iter(value.items()))

    if operator in _JSON_TO_LOGICAL:
        if not isinstance(operand, list) or not operand:
            raise JsonLogicError(f"Operator `{operator}` expects a non-empty array.")
        return _fold_logical(_JSON_TO_LOGICAL[operator], operand, catalog, alias_stack)

    if operator == "!":
        return UnaryOp("!", json_logic_to_expression(operand, catalog, alias_stack))

    if operator == "var":
        if isinstance(operand, str):
            return Variable(_normalise_var_path(operand, catalog, alias_stack))
        if isinstance(operand, list) and operand and isinstance(operand[0], str):
            return Variable(_normalise_var_path(operand[0], catalog, alias_stack))
        raise JsonLogicError("`var` operator expects a string path.")

    if operator in COMPARISON_OPERATORS:
        if not isinstance(operand, list) or len(operand) != 2:
            raise JsonLogicError(f"Operator `{operator}` expects exactly two operands.")
        return BinaryOp(
            operator,
            json_logic_to_expression(operand[0], catalog, alias_stack),
            json_logic_to_expression(operand[1], catalog, alias_stack),
        )

    if operator in QUANTIFIER_OPERATORS:
        if not isinstance(operand, list) or not 2 <= len(operand) <= 3:
            raise JsonLogicError(
                f"Operator `{operator}` expects [collection, predicate, alias?] operands."
            )
        alias_operand = operand[2] if len(operand) == 3 else None
        has_alias = isinstance(alias_operand, str) and alias_operand.strip() != ""
        alias = alias_operand if has_alias else DEFAULT_ALIAS
        return Quantifier(
            operator,
            json_logic_to_expression(operand[0], catalog, alias_stack),
            json_logic_to_expression(operand[1], catalog, [*alias_stack, alias]),
            alias=alias,
            alias_provided=has_alias and alias != DEFAULT_ALIAS,
        )

    raise JsonLogicError(f"Operator `{operator}` is not supported by the DSL renderer.")


def _fold_logical(
    operator: str,
    operands: list[JsonLogicExpression],
    catalog: ConditionVariableCatalog,
    alias_stack: Sequence[str],
) -> ASTNode:
    """Fold an n-ary and/or list into a left-associative binary chain."""
    result = json_logic_to_expression(operands[0], catalog, alias_stack)
    for operand in operands[1:]:
        result = BinaryOp(operator, result, json_logic_to_expression(operand, catalog, alias_stack))
    return result


def _normalise_var_path(
    path: str,
    catalog: ConditionVariableCatalog,
    alias_stack: Sequence[str],
) -> str:
    """Resolve a `var` path read from JSON-Logic.

    Catalog paths and alias-relative paths are kept as they are. Inside a
    quantifier, any other path is rewritten to `<alias>.<path>`: some
    producers emit predicates relative to the current element without the
    alias prefix the DSL requires. This keeps those payloads importable, at
    the cost of turning a genuinely unknown variable inside a predicate into
    an alias reference.
    """
    if path in catalog:
        return path
    for alias in reversed(alias_stack):
        if path == alias or path.startswith(f"{alias}."):
            return path
    if alias_stack:
        active = alias_stack[-1]
        if path == "":
            return active
        return f"{active}.{path}"
    return path
