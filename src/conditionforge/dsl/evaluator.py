"""Evaluator for JSON-Logic conditions.

Walks a JSON-Logic expression against a runtime payload. Truthiness,
equality and ordering follow JavaScript rules:

- falsy values are None, False, 0, NaN and ""; everything else (including
  empty lists and dicts) is truthy
- `==`/`!=` compare strictly, without type coercion
- `<`, `<=`, `>`, `>=` coerce both sides to numbers first

Quantifiers (`some`/`all`) evaluate their predicate once per element, in a
scope where the alias (default "item") names the element.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any

from conditionforge.dsl.jsonlogic import COMPARISON_OPERATORS, JsonLogicExpression
from conditionforge.dsl.parser import DEFAULT_ALIAS

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that does not exist (JavaScript `undefined`)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class EvaluationError(Exception):
    """Error during condition evaluation."""
    pass


@dataclass
class EvaluationScope:
    """One quantifier iteration: the current element, its alias and the enclosing scope."""

    value: Any
    alias: str | None = None
    parent: "EvaluationScope | None" = None


@dataclass
class EvaluateConditionSuccess:
    result: bool
    resolved_variables: dict[str, Any] = field(default_factory=dict)
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "result": self.result, "resolvedVariables": self.resolved_variables}


@dataclass
class EvaluateConditionFailure:
    error: str
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"ok": False, "error": self.error}


EvaluateConditionResult = EvaluateConditionSuccess | EvaluateConditionFailure


class Evaluator:
    """Evaluates JSON-Logic against a payload.

    Every variable read that is served from the payload (rather than from a
    quantifier scope) is recorded in `resolved`, keyed by its path.

    Usage:
        evaluator = Evaluator({"facets": {"score": 0.8}})
        evaluator.evaluate({">=": [{"var": "facets.score"}, 0.7]})  # True
    """

    def __init__(self, payload: Any):
        self.payload = payload
        self.resolved: dict[str, Any] = {}
        self._handlers = {
            "and": self._eval_and,
            "or": self._eval_or,
            "!": self._eval_not,
            "var": self._eval_var,
            "some": self._eval_quantifier,
            "all": self._eval_quantifier,
        }
        for operator in COMPARISON_OPERATORS:
            self._handlers[operator] = self._eval_comparison

    def evaluate(self, expr: JsonLogicExpression, scope: EvaluationScope | None = None) -> Any:
        """Evaluate an expression (or list of expressions) and return the raw value."""
        if isinstance(expr, list):
            return [self.evaluate(item, scope) for item in expr]

        if not isinstance(expr, dict):
            return expr

        if len(expr) != 1:
            raise EvaluationError("Invalid JSON-Logic expression.")

        operator, operand = next(iter(expr.items()))
        handler = self._handlers.get(operator)
        if handler is None:
            raise EvaluationError(f"Unsupported operator `{operator}` in evaluator.")
        return handler(operator, operand, scope)

    # -------------------------------------------------------------------------
    # Operator evaluators
    # -------------------------------------------------------------------------

    def _eval_and(self, operator: str, operand: Any, scope: EvaluationScope | None) -> bool:
        for item in operand if isinstance(operand, list) else [operand]:
            if not truthy(self.evaluate(item, scope)):
                return False
        return True

    def _eval_or(self, operator: str, operand: Any, scope: EvaluationScope | None) -> bool:
        for item in operand if isinstance(operand, list) else [operand]:
            if truthy(self.evaluate(item, scope)):
                return True
        return False

    def _eval_not(self, operator: str, operand: Any, scope: EvaluationScope | None) -> bool:
        return not truthy(self.evaluate(operand, scope))

    def _eval_var(self, operator: str, operand: Any, scope: EvaluationScope | None) -> Any:
        if isinstance(operand, str):
            path = operand
        elif isinstance(operand, list) and operand:
            path = operand[0]
            if not isinstance(path, str):
                raise EvaluationError("Invalid `var` operand; expected string path.")
        else:
            raise EvaluationError("Invalid `var` operand.")

        found, value = resolve_scoped_value(path, scope)
        if found:
            return value

        value = read_path(self.payload, path)
        self.resolved[path] = None if value is MISSING else value
        return value

    def _eval_comparison(self, operator: str, operand: Any, scope: EvaluationScope | None) -> bool:
        if not isinstance(operand, list) or len(operand) != 2:
            raise EvaluationError(f"Operator `{operator}` expects two operands.")
        left = self.evaluate(operand[0], scope)
        right = self.evaluate(operand[1], scope)

        if operator == "==":
            return strict_equals(left, right)
        if operator == "!=":
            return not strict_equals(left, right)

        left_number = to_number(left)
        right_number = to_number(right)
        if operator == ">":
            return left_number > right_number
        if operator == ">=":
            return left_number >= right_number
        if operator == "<":
            return left_number < right_number
        return left_number <= right_number

    def _eval_quantifier(self, operator: str, operand: Any, scope: EvaluationScope | None) -> bool:
        if not isinstance(operand, list) or not 2 <= len(operand) <= 3:
            raise EvaluationError(
                f"Operator `{operator}` expects [source, predicate, alias?] operands."
            )
        source_expr, predicate_expr = operand[0], operand[1]
        alias_operand = operand[2] if len(operand) == 3 else None
        alias = alias_operand if isinstance(alias_operand, str) and alias_operand.strip() else DEFAULT_ALIAS

        source_path = extract_var_path(source_expr)
        items = to_array_operand(self.evaluate(source_expr, scope), operator, source_path)

        if operator == "some":
            for item in items:
                if truthy(self.evaluate(predicate_expr, EvaluationScope(item, alias, scope))):
                    return True
            return False

        # Vacuous truth: `all` over an empty list holds
        for item in items:
            if not truthy(self.evaluate(predicate_expr, EvaluationScope(item, alias, scope))):
                return False
        return True


# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def truthy(value: Any) -> bool:
    """JavaScript Boolean(value)."""
    if value is None or value is MISSING or value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def strict_equals(left: Any, right: Any) -> bool:
    """JavaScript `===`: no coercion, booleans are not numbers, containers compare by identity."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    if isinstance(left, (list, dict)) or isinstance(right, (list, dict)):
        return left is right
    if type(left) is not type(right):
        return False
    return left == right


_NUMERIC_STRING = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def to_number(value: Any) -> float:
    """JavaScript Number(value); NaN when the value has no numeric reading."""
    if value is MISSING:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if _NUMERIC_STRING.fullmatch(text):
            return float(text)
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        if re.fullmatch(r"0[xX][0-9a-fA-F]+", text):
            return float(int(text, 16))
        return math.nan
    if isinstance(value, list):
        if not value:
            return 0.0
        if len(value) == 1 and not isinstance(value[0], (list, dict)):
            return to_number("" if value[0] is None else value[0])
        return math.nan
    return math.nan


def resolve_scoped_value(path: str, scope: EvaluationScope | None) -> tuple[bool, Any]:
    """Look path up along the scope chain, innermost first.

    Each scope tries, in order: an exact alias match, an `<alias>.`-prefixed
    path read from the element, then the path read from the element as-is.
    """
    current = scope
    while current is not None:
        if current.alias:
            if path == current.alias:
                return True, current.value
            prefix = f"{current.alias}."
            if path.startswith(prefix):
                found, value = read_path_with_existence(current.value, path[len(prefix):])
                if found:
                    return True, value
        found, value = read_path_with_existence(current.value, path)
        if found:
            return True, value
        current = current.parent
    return False, None


# Canonical array index, as JavaScript property access reads one
_INDEX_SEGMENT = re.compile(r"0|[1-9][0-9]*")


def read_path_with_existence(source: Any, path: str) -> tuple[bool, Any]:
    """Read a dotted path; the flag says whether every segment existed."""
    if path == "":
        return True, source
    current = source
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return False, None
            current = current[segment]
        elif isinstance(current, list) and _INDEX_SEGMENT.fullmatch(segment):
            if int(segment) >= len(current):
                return False, None
            current = current[int(segment)]
        else:
            return False, None
    return True, current


def read_path(payload: Any, path: str) -> Any:
    """Read a dotted path from the payload, MISSING when any segment is absent."""
    found, value = read_path_with_existence(payload, path)
    return value if found else MISSING


def extract_var_path(expr: Any) -> str | None:
    if not isinstance(expr, dict) or len(expr) != 1 or "var" not in expr:
        return None
    operand = expr["var"]
    if isinstance(operand, str):
        return operand
    if isinstance(operand, list) and operand and isinstance(operand[0], str):
        return operand[0]
    return None


def describe_value(value: Any) -> str:
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    if value is MISSING:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def to_array_operand(value: Any, operator: str, source_path: str | None) -> list[Any]:
    if value is None or value is MISSING:
        return []
    if not isinstance(value, list):
        reference = f'path "{source_path}"' if source_path else "first operand"
        raise EvaluationError(
            f"Operator `{operator}` expected {reference} to resolve to an array, "
            f"received {describe_value(value)}."
        )
    return value


def evaluate_condition(json_logic: JsonLogicExpression, payload: Any) -> EvaluateConditionResult:
    """Evaluate a JSON-Logic condition against a payload.

    This never raises: malformed expressions and evaluation errors come back
    as EvaluateConditionFailure.

    Example:
        result = evaluate_condition(
            {"all": [{"var": "items"}, {"==": [{"var": "item"}, 1]}]},
            {"items": []},
        )
        # result.ok is True, result.result is True
    """
    evaluator = Evaluator(payload)
    try:
        result = truthy(evaluator.evaluate(json_logic))
    except EvaluationError as exc:
        logger.debug("Condition evaluation failed: %s", exc)
        return EvaluateConditionFailure(str(exc))
    except RecursionError:
        return EvaluateConditionFailure("Condition is nested too deeply to evaluate.")
    except Exception as exc:
        logger.warning("Unexpected error evaluating condition: %s", exc, exc_info=True)
        return EvaluateConditionFailure(f"Condition evaluation failed: {exc}")
    return EvaluateConditionSuccess(result, evaluator.resolved)
