"""Diagnostic types for the condition DSL.

Errors and warnings are plain frozen dataclasses. They are produced by the
parser and validator, returned inside result objects, and never mutated.
"""

from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable diagnostic codes."""

    EMPTY_EXPRESSION = "empty_expression"
    SYNTAX_ERROR = "syntax_error"
    UNKNOWN_VARIABLE = "unknown_variable"
    OPERATOR_NOT_ALLOWED = "operator_not_allowed"
    TYPE_MISMATCH = "type_mismatch"
    INVALID_QUANTIFIER = "invalid_quantifier"
    INVALID_JSON_LOGIC = "invalid_json_logic"


class WarningCode(str, Enum):
    NOOP_TRUE = "noop_true"


@dataclass(frozen=True)
class Position:
    """A point in the DSL source.

    Attributes:
        offset: Zero-based character offset
        line: One-based line number
        column: One-based column number
    """

    offset: int
    line: int
    column: int

    def to_dict(self) -> dict[str, int]:
        return {"offset": self.offset, "line": self.line, "column": self.column}


@dataclass(frozen=True)
class DiagnosticRange:
    start: Position
    end: Position

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass(frozen=True)
class ConditionDslError:
    """A single parse or validation error.

    `range` is None only for diagnostics about nodes that have no source text
    (for example nodes imported from JSON-Logic); `node_type` then names the
    kind of node the diagnostic is about.
    """

    code: ErrorCode
    message: str
    range: DiagnosticRange | None = None
    node_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "range": self.range.to_dict() if self.range else None,
        }

    def __str__(self) -> str:
        if self.range is None:
            if self.node_type:
                return f"[{self.code.value}] {self.node_type}: {self.message}"
            return f"[{self.code.value}] {self.message}"
        start = self.range.start
        return f"[{self.code.value}] {start.line}:{start.column}: {self.message}"


@dataclass(frozen=True)
class ConditionDslWarning:
    code: WarningCode
    message: str
    range: DiagnosticRange | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "range": self.range.to_dict() if self.range else None,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"


class LineIndex:
    """Maps character offsets to one-based line/column pairs.

    Line starts are collected once; lookups binary-search them.
    """

    def __init__(self, text: str):
        self.length = len(text)
        self._starts = [0]
        for i, char in enumerate(text):
            if char == "\n":
                self._starts.append(i + 1)

    def get(self, offset: int) -> tuple[int, int]:
        """Return (line, column) for an offset, clamped to the text bounds."""
        clamped = max(0, min(offset, self.length))
        line = bisect_right(self._starts, clamped)
        return line, clamped - self._starts[line - 1] + 1

    def position(self, offset: int) -> Position:
        line, column = self.get(offset)
        return Position(offset, line, column)


def create_diagnostic(
    code: ErrorCode,
    message: str,
    index: LineIndex,
    start: int,
    end: int,
) -> ConditionDslError:
    """Build an error spanning [start, end) using the line index."""
    start_pos = index.position(start)
    end_line, end_column = index.get(max(start, end))
    return ConditionDslError(
        code=code,
        message=message,
        range=DiagnosticRange(start_pos, Position(end, end_line, end_column)),
    )
