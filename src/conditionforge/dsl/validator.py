"""Static validation of condition ASTs against a variable catalog.

Checks performed:
- variables must exist in the catalog unless they reference an enclosing
  quantifier alias (`item`, `item.score`, ...)
- comparison operators must be allowed for every catalog variable involved
- literal/variable and variable/variable operand types must be compatible
- quantifier collections must be bare array-typed variables, and predicates
  must reference their alias

All applicable errors are collected; validation never stops at the first.
"""

import logging
from dataclasses import dataclass
from itertools import product

from conditionforge.dsl.catalog import ConditionVariableCatalog, ConditionVariableDefinition, VariableType
from conditionforge.dsl.diagnostics import (
    ConditionDslError,
    ErrorCode,
    LineIndex,
    create_diagnostic,
)
from conditionforge.dsl.parser import (
    ASTNode,
    BinaryOp,
    Literal,
    Quantifier,
    SourceRange,
    UnaryOp,
    Variable,
    walk,
)

logger = logging.getLogger(__name__)

LOGICAL_OPERATORS = ("&&", "||")


@dataclass
class _QuantifierScope:
    """One frame per enclosing quantifier; `used` flips when the alias is referenced."""

    alias: str
    alias_range: SourceRange | None
    predicate_range: SourceRange | None
    used: bool = False


class _Validator:
    def __init__(self, catalog: ConditionVariableCatalog, index: LineIndex):
        self.catalog = catalog
        self.index = index
        self.errors: list[ConditionDslError] = []

    def validate(self, node: ASTNode, scopes: tuple[_QuantifierScope, ...]) -> None:
        method = getattr(self, f"_validate_{node.type}")
        method(node, scopes)

    # -------------------------------------------------------------------------
    # Node validators
    # -------------------------------------------------------------------------

    def _validate_literal(self, node: Literal, scopes: tuple[_QuantifierScope, ...]) -> None:
        return

    def _validate_variable(self, node: Variable, scopes: tuple[_QuantifierScope, ...]) -> None:
        if _mark_alias_usage(node.path, scopes):
            return
        if self.catalog.lookup(node.path) is None:
            self._report(
                ErrorCode.UNKNOWN_VARIABLE,
                f"Variable `{node.path}` is not registered.",
                node,
                node.range,
            )

    def _validate_unary(self, node: UnaryOp, scopes: tuple[_QuantifierScope, ...]) -> None:
        self.validate(node.argument, scopes)

    def _validate_binary(self, node: BinaryOp, scopes: tuple[_QuantifierScope, ...]) -> None:
        self.validate(node.left, scopes)
        self.validate(node.right, scopes)
        if node.operator in LOGICAL_OPERATORS:
            return

        for variable in (n for n in walk(node) if isinstance(n, Variable)):
            if _mark_alias_usage(variable.path, scopes):
                continue
            definition = self.catalog.lookup(variable.path)
            if definition is None:
                continue
            if node.operator not in definition.allowed_operators:
                self._report(
                    ErrorCode.OPERATOR_NOT_ALLOWED,
                    f"Operator `{node.operator}` is not allowed for variable `{definition.path}`.",
                    node,
                    node.operator_range,
                    variable.range,
                )

        self._validate_operand_types(node)

    def _validate_quantifier(self, node: Quantifier, scopes: tuple[_QuantifierScope, ...]) -> None:
        self.validate(node.collection, scopes)

        if not isinstance(node.collection, Variable):
            self._report(
                ErrorCode.INVALID_QUANTIFIER,
                "Quantifier collection must reference a variable.",
                node,
                node.collection.range,
                node.range,
            )
        else:
            definition = self.catalog.lookup(node.collection.path)
            if definition is not None and definition.type != VariableType.ARRAY:
                self._report(
                    ErrorCode.INVALID_QUANTIFIER,
                    f"Quantifier `{node.operator}` expects collection `{definition.path}` to be an array.",
                    node,
                    node.collection.range,
                    node.range,
                )

        scope = _QuantifierScope(
            alias=node.alias,
            alias_range=node.alias_range,
            predicate_range=node.predicate_range or node.range,
        )
        self.validate(node.predicate, scopes + (scope,))
        if not scope.used:
            self._report(
                ErrorCode.INVALID_QUANTIFIER,
                f"Quantifier predicate must reference alias `{node.alias}`.",
                node,
                scope.predicate_range,
                node.range,
            )

    # -------------------------------------------------------------------------
    # Type checking
    # -------------------------------------------------------------------------

    def _validate_operand_types(self, node: BinaryOp) -> None:
        left_definitions = self._definitions_for(node.left)
        right_definitions = self._definitions_for(node.right)

        for literal, definitions in ((node.right, left_definitions), (node.left, right_definitions)):
            if not isinstance(literal, Literal):
                continue
            kind = literal_kind(literal.value)
            for definition in definitions:
                if not is_literal_type_compatible(definition.type, kind):
                    self._report(
                        ErrorCode.TYPE_MISMATCH,
                        f"Type mismatch: variable `{definition.path}` ({definition.type.value}) "
                        f"cannot be compared to {kind} literal.",
                        node,
                        literal.range,
                        node.range,
                    )

        seen_pairs: set[str] = set()
        for left, right in product(left_definitions, right_definitions):
            if left.type == right.type:
                continue
            key = f"{left.path}|{right.path}|{node.operator}"
            if key in seen_pairs:
                continue
            seen_pairs.add(key)
            self._report(
                ErrorCode.TYPE_MISMATCH,
                f"Type mismatch: variables `{left.path}` ({left.type.value}) and "
                f"`{right.path}` ({right.type.value}) are incompatible with `{node.operator}`.",
                node,
                node.operator_range,
                node.range,
            )

    def _definitions_for(self, node: ASTNode) -> list[ConditionVariableDefinition]:
        """Catalog definitions referenced anywhere under node, deduplicated by path."""
        definitions: dict[str, ConditionVariableDefinition] = {}
        for current in walk(node):
            if isinstance(current, Variable):
                definition = self.catalog.lookup(current.path)
                if definition is not None and definition.path not in definitions:
                    definitions[definition.path] = definition
        return list(definitions.values())

    def _report(
        self,
        code: ErrorCode,
        message: str,
        node: ASTNode,
        *ranges: SourceRange | None,
    ) -> None:
        """Record an error at the first available range, or without one for synthesized nodes."""
        source_range = next((r for r in ranges if r is not None), None)
        if source_range is None:
            self.errors.append(ConditionDslError(code, message, None, node_type=node.type))
            return
        self.errors.append(
            create_diagnostic(code, message, self.index, source_range.start, source_range.end)
        )


def _mark_alias_usage(path: str, scopes: tuple[_QuantifierScope, ...]) -> bool:
    """Mark the innermost scope whose alias path refers to; True if one did."""
    for scope in reversed(scopes):
        if path == scope.alias or path.startswith(f"{scope.alias}."):
            scope.used = True
            return True
    return False


def literal_kind(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


def is_literal_type_compatible(variable_type: VariableType, kind: str) -> bool:
    """null is compatible with every type; arrays are compatible with no literal."""
    if kind == "null":
        return True
    if variable_type == VariableType.ARRAY:
        return False
    return variable_type.value == kind


def validate_ast(
    ast: ASTNode,
    catalog: ConditionVariableCatalog,
    index: LineIndex | None = None,
) -> list[ConditionDslError]:
    """Validate an AST against the catalog.

    Args:
        ast: Parsed (or JSON-Logic imported) expression
        catalog: Variable catalog to resolve paths against
        index: Line index of the source text, for diagnostic positions

    Returns:
        All validation errors; an empty list means the expression is valid
    """
    validator = _Validator(catalog, index or LineIndex(""))
    validator.validate(ast, ())
    if validator.errors:
        logger.debug("Validation produced %d error(s)", len(validator.errors))
    return validator.errors
