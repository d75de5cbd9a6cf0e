"""Parser for the condition DSL.

Converts a stream of tokens into an Abstract Syntax Tree (AST).
Uses recursive descent parsing with operator precedence.

Operator Precedence (lowest to highest):
1. ||
2. &&
3. == !=
4. >= <= > <
5. ! (not)
6. literals, variables, some(...)/all(...) quantifiers, ( ... )

Every node carries the source range it was parsed from. Nodes synthesized
from JSON-Logic have `range` set to None.
"""

import math
from dataclasses import dataclass, replace
from typing import Any, ClassVar, Union

from conditionforge.dsl.lexer import Lexer, Token, TokenType

DEFAULT_MAX_DEPTH = 64

QUANTIFIER_OPERATORS = ("some", "all")
DEFAULT_ALIAS = "item"


@dataclass(frozen=True)
class SourceRange:
    """Half-open [start, end) character offsets into the source text."""

    start: int
    end: int

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}


def combine_ranges(left: SourceRange | None, right: SourceRange | None) -> SourceRange | None:
    """Smallest range covering both inputs; None only if both are None."""
    if left is None:
        return right
    if right is None:
        return left
    return SourceRange(min(left.start, right.start), max(left.end, right.end))


def _range_dict(source_range: SourceRange | None) -> dict[str, int] | None:
    return source_range.to_dict() if source_range else None


# -----------------------------------------------------------------------------
# AST Node Types
# -----------------------------------------------------------------------------


@dataclass
class Literal:
    """A literal value (number, string, boolean, null)."""

    type: ClassVar[str] = "literal"

    value: int | float | str | bool | None
    range: SourceRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "value": self.value, "range": _range_dict(self.range)}


@dataclass
class Variable:
    """A dotted variable path (catalog key or quantifier alias reference)."""

    type: ClassVar[str] = "variable"

    path: str
    range: SourceRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "path": self.path, "range": _range_dict(self.range)}


@dataclass
class UnaryOp:
    """Logical negation (!x)."""

    type: ClassVar[str] = "unary"

    operator: str
    argument: "ASTNode"
    range: SourceRange | None = None
    operator_range: SourceRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "operator": self.operator,
            "argument": self.argument.to_dict(),
            "range": _range_dict(self.range),
            "operatorRange": _range_dict(self.operator_range),
        }


@dataclass
class BinaryOp:
    """Logical or comparison operation (e.g., a && b, x >= 1)."""

    type: ClassVar[str] = "binary"

    operator: str
    left: "ASTNode"
    right: "ASTNode"
    range: SourceRange | None = None
    operator_range: SourceRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "operator": self.operator,
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
            "range": _range_dict(self.range),
            "operatorRange": _range_dict(self.operator_range),
        }


@dataclass
class Quantifier:
    """A `some(...)` or `all(...)` quantifier over an array variable.

    `alias` names each element inside `predicate`. When the source omits
    `as <alias>`, alias is "item" and alias_provided is False.
    """

    type: ClassVar[str] = "quantifier"

    operator: str
    collection: "ASTNode"
    predicate: "ASTNode"
    alias: str = DEFAULT_ALIAS
    alias_provided: bool = False
    range: SourceRange | None = None
    operator_range: SourceRange | None = None
    collection_range: SourceRange | None = None
    alias_range: SourceRange | None = None
    predicate_range: SourceRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "operator": self.operator,
            "collection": self.collection.to_dict(),
            "predicate": self.predicate.to_dict(),
            "alias": self.alias,
            "aliasProvided": self.alias_provided,
            "range": _range_dict(self.range),
        }


ASTNode = Union[Literal, Variable, UnaryOp, BinaryOp, Quantifier]


def walk(node: ASTNode):
    """Yield node and all of its descendants, depth first, left to right."""
    yield node
    if isinstance(node, BinaryOp):
        yield from walk(node.left)
        yield from walk(node.right)
    elif isinstance(node, UnaryOp):
        yield from walk(node.argument)
    elif isinstance(node, Quantifier):
        yield from walk(node.collection)
        yield from walk(node.predicate)


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------


class ParseError(Exception):
    """Error during parsing."""

    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(message)


class Parser:
    """Recursive descent parser for the condition DSL.

    Usage:
        parser = Parser('facets.score >= 0.7 && some(items as x, x.flag == true)')
        ast = parser.parse()
    """

    EQUALITY_OPERATORS = ("==", "!=")
    COMPARISON_OPERATORS = (">=", "<=", ">", "<")

    def __init__(self, source: str, max_depth: int = DEFAULT_MAX_DEPTH):
        self.source = source
        self.tokens = Lexer(source).tokenize()
        self.position = 0
        self.max_depth = max_depth
        self._depth = 0

    def parse(self) -> ASTNode:
        """Parse the full expression and return the AST root."""
        ast = self._parse_or()
        self._ensure_end()
        return ast

    # -------------------------------------------------------------------------
    # Helper methods
    # -------------------------------------------------------------------------

    def _current(self) -> Token | None:
        if self.position >= len(self.tokens):
            return None
        return self.tokens[self.position]

    def _advance(self) -> Token | None:
        token = self._current()
        if token is not None:
            self.position += 1
        return token

    def _match_operator(self, *operators: str) -> Token | None:
        """Consume the current token if it is one of the given operators."""
        token = self._current()
        if token is not None and token.type == TokenType.OPERATOR and token.value in operators:
            return self._advance()
        return None

    def _match_type(self, token_type: TokenType, value: str | None = None) -> Token | None:
        token = self._current()
        if token is not None and token.type == token_type and (value is None or token.value == value):
            return self._advance()
        return None

    def _error(self, message: str, position: int | None = None) -> ParseError:
        """Build a ParseError; position defaults to the end of the last consumed token."""
        if position is None:
            position = self.tokens[max(self.position - 1, 0)].end if self.tokens else 0
        return ParseError(message, position)

    def _ensure_end(self) -> None:
        token = self._current()
        if token is not None:
            raise self._error(f"Unexpected token `{token.value}`.", token.start)

    def _binary(self, operator_token: Token, left: ASTNode, right: ASTNode) -> BinaryOp:
        return BinaryOp(
            operator_token.value,
            left,
            right,
            range=combine_ranges(left.range, right.range),
            operator_range=SourceRange(operator_token.start, operator_token.end),
        )

    # -------------------------------------------------------------------------
    # Parsing methods (in order of precedence, lowest to highest)
    # -------------------------------------------------------------------------

    def _parse_or(self) -> ASTNode:
        """Parse OR expression (lowest precedence); also the nesting depth guard."""
        self._depth += 1
        if self._depth > self.max_depth:
            raise self._error(f"Expression nesting exceeds maximum depth of {self.max_depth}.")
        try:
            return self._parse_chain(("||",), self._parse_and)
        finally:
            self._depth -= 1

    def _parse_and(self) -> ASTNode:
        return self._parse_chain(("&&",), self._parse_equality)

    def _parse_equality(self) -> ASTNode:
        return self._parse_chain(self.EQUALITY_OPERATORS, self._parse_comparison)

    def _parse_comparison(self) -> ASTNode:
        return self._parse_chain(self.COMPARISON_OPERATORS, self._parse_unary)

    def _parse_chain(self, operators: tuple[str, ...], parse_operand) -> ASTNode:
        """Parse a left-associative chain of binary operators at one precedence level."""
        left = parse_operand()
        while True:
            token = self._match_operator(*operators)
            if token is None:
                return left
            left = self._binary(token, left, parse_operand())

    def _parse_unary(self) -> ASTNode:
        token = self._match_type(TokenType.NOT)
        if token is None:
            return self._parse_primary()

        self._depth += 1
        if self._depth > self.max_depth:
            raise self._error(f"Expression nesting exceeds maximum depth of {self.max_depth}.")
        try:
            argument = self._parse_unary()
        finally:
            self._depth -= 1
        operator_range = SourceRange(token.start, token.end)
        return UnaryOp(
            "!",
            argument,
            range=combine_ranges(operator_range, argument.range),
            operator_range=operator_range,
        )

    def _parse_primary(self) -> ASTNode:
        """Parse primary expression (literals, variables, quantifiers, groups)."""
        token = self._current()
        if token is None:
            raise self._error("Unexpected end of expression.")

        token_range = SourceRange(token.start, token.end)

        if token.type == TokenType.NUMBER:
            self._advance()
            try:
                value = _parse_number(token.value)
            except ValueError:
                raise self._error("Number literal is out of range.", token.start) from None
            return Literal(value, token_range)

        if token.type == TokenType.STRING:
            self._advance()
            return Literal(token.value, token_range)

        if token.type == TokenType.BOOLEAN:
            self._advance()
            return Literal(token.value == "true", token_range)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            following = self._current()
            if (
                token.value in QUANTIFIER_OPERATORS
                and following is not None
                and following.type == TokenType.PAREN
                and following.value == "("
            ):
                return self._parse_quantifier(token)
            if token.value == "null":
                return Literal(None, token_range)
            return Variable(token.value, token_range)

        if token.type == TokenType.PAREN and token.value == "(":
            self._advance()
            expr = self._parse_or()
            closing = self._advance()
            if closing is None or closing.type != TokenType.PAREN or closing.value != ")":
                raise self._error("Unclosed parenthesis.", token.start)
            return replace(expr, range=SourceRange(token.start, closing.end))

        raise self._error(f"Unexpected token `{token.value}`.", token.start)

    def _parse_quantifier(self, operator_token: Token) -> Quantifier:
        """Parse `some(<collection> [as <alias>], <predicate>)`."""
        opening = self._match_type(TokenType.PAREN, "(")
        if opening is None:
            raise self._error(f"Expected `(` after `{operator_token.value}`.", operator_token.end)

        collection = self._parse_or()

        alias = DEFAULT_ALIAS
        alias_provided = False
        alias_range = None

        if self._match_type(TokenType.IDENTIFIER, "as") is not None:
            alias_token = self._match_type(TokenType.IDENTIFIER)
            if alias_token is None:
                raise self._error("Expected alias identifier after `as`.")
            if "." in alias_token.value:
                raise self._error("Alias may not contain `.` segments.", alias_token.start)
            alias = alias_token.value
            alias_provided = True
            alias_range = SourceRange(alias_token.start, alias_token.end)

        if self._match_type(TokenType.COMMA) is None:
            raise self._error("Expected `,` after quantifier collection.")

        predicate = self._parse_or()
        closing = self._advance()
        if closing is None or closing.type != TokenType.PAREN or closing.value != ")":
            raise self._error("Unclosed quantifier predicate.", operator_token.start)

        return Quantifier(
            operator_token.value,
            collection,
            predicate,
            alias=alias,
            alias_provided=alias_provided,
            range=SourceRange(operator_token.start, closing.end),
            operator_range=SourceRange(operator_token.start, operator_token.end),
            collection_range=collection.range,
            alias_range=alias_range,
            predicate_range=predicate.range,
        )


def _parse_number(raw: str) -> int | float:
    """Convert a NUMBER token; ValueError when it does not fit a finite double."""
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"Number literal {raw[:20]!r}... overflows.")
    if "." in raw:
        return value
    return int(raw)


def parse(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> ASTNode:
    """Convenience function to parse an expression string.

    Args:
        source: The expression string
        max_depth: Maximum nesting of groups, quantifiers and negations

    Returns:
        The AST root node

    Raises:
        LexerError: On unterminated strings or unrecognized characters
        ParseError: On grammar violations or trailing tokens
    """
    return Parser(source, max_depth).parse()
