"""Canonical rendering of condition ASTs back to DSL text.

Parentheses are emitted only where precedence or associativity requires
them, so parsing the rendered text yields the same JSON-Logic.

Precedence: ! (4) > comparisons (3) > && (2) > || (1). Literals, variables
and quantifier calls never need parentheses.
"""

import math
from decimal import Decimal

from conditionforge.dsl.parser import ASTNode, BinaryOp, Literal, Quantifier, UnaryOp, Variable

PRECEDENCE = {
    "!": 4,
    "==": 3,
    "!=": 3,
    ">": 3,
    ">=": 3,
    "<": 3,
    "<=": 3,
    "&&": 2,
    "||": 1,
}

ASSOCIATIVE_OPERATORS = ("&&", "||")

_STRING_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def render_expression(node: ASTNode) -> str:
    """Render an AST as canonical DSL text."""
    if isinstance(node, Literal):
        return format_literal(node.value)

    if isinstance(node, Variable):
        return node.path

    if isinstance(node, UnaryOp):
        argument = render_expression(node.argument)
        if node_precedence(node.argument) < PRECEDENCE["!"]:
            argument = f"({argument})"
        return f"!{argument}"

    if isinstance(node, BinaryOp):
        precedence = PRECEDENCE[node.operator]
        left = render_expression(node.left)
        right = render_expression(node.right)
        if _needs_parens(node.left, precedence, node.operator):
            left = f"({left})"
        if _needs_parens(node.right, precedence, node.operator):
            right = f"({right})"
        return f"{left} {node.operator} {right}"

    if isinstance(node, Quantifier):
        collection = render_expression(node.collection)
        predicate = render_expression(node.predicate)
        alias = f" as {node.alias}" if node.alias_provided else ""
        return f"{node.operator}({collection}{alias}, {predicate})"

    raise TypeError(f"Unknown node type: {type(node).__name__}")


def node_precedence(node: ASTNode) -> float:
    if isinstance(node, (BinaryOp, UnaryOp)):
        return PRECEDENCE[node.operator]
    return math.inf


def _needs_parens(child: ASTNode, parent_precedence: int, parent_operator: str) -> bool:
    """A child needs parentheses when it binds looser than its parent, or
    equally tightly without being a same-operator &&/|| chain."""
    child_precedence = node_precedence(child)
    if child_precedence < parent_precedence:
        return True
    if child_precedence > parent_precedence:
        return False
    if isinstance(child, BinaryOp):
        return not (parent_operator in ASSOCIATIVE_OPERATORS and child.operator == parent_operator)
    return False


def format_literal(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return '"' + "".join(_STRING_ESCAPES.get(char, char) for char in value) + '"'
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def format_number(value: float) -> str:
    """Format a float the way the tokenizer reads it back: no exponent, no trailing `.0`."""
    if not math.isfinite(value):
        raise ValueError(f"Cannot render non-finite number {value!r}.")
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text
