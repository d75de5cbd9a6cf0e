"""Condition DSL: author conditions as text, persist them as JSON-Logic.

This module provides:
- Lexer/Parser: DSL text -> AST with source ranges
- Validator: checks an AST against a variable catalog
- JSON-Logic transcoder and canonical renderer
- Evaluator: runs JSON-Logic against a payload
- parse_dsl/to_dsl/normalize_condition_input: the public entry points
"""

from conditionforge.dsl.catalog import (
    ConditionVariableCatalog,
    ConditionVariableDefinition,
    VariableType,
    build_facet_definitions,
    default_allowed_operators_for_type,
)
from conditionforge.dsl.diagnostics import (
    ConditionDslError,
    ConditionDslWarning,
    DiagnosticRange,
    ErrorCode,
    LineIndex,
    Position,
    WarningCode,
    create_diagnostic,
)
from conditionforge.dsl.engine import (
    ConditionDslParseFailure,
    ConditionDslParseSuccess,
    ConditionDslRenderFailure,
    ConditionDslRenderSuccess,
    parse_dsl,
    to_dsl,
)
from conditionforge.dsl.evaluator import (
    MISSING,
    EvaluateConditionFailure,
    EvaluateConditionSuccess,
    EvaluationError,
    EvaluationScope,
    Evaluator,
    evaluate_condition,
)
from conditionforge.dsl.jsonlogic import (
    JsonLogicError,
    expression_to_json_logic,
    json_logic_to_expression,
)
from conditionforge.dsl.lexer import Lexer, LexerError, Token, TokenType, tokenize
from conditionforge.dsl.normalize import (
    ConditionDslValidationError,
    ConditionInput,
    ConditionValidationResult,
    normalize_condition_input,
)
from conditionforge.dsl.parser import (
    ASTNode,
    BinaryOp,
    Literal,
    ParseError,
    Parser,
    Quantifier,
    SourceRange,
    UnaryOp,
    Variable,
    parse,
)
from conditionforge.dsl.renderer import render_expression
from conditionforge.dsl.validator import validate_ast

__all__ = [
    # Catalog
    "ConditionVariableCatalog",
    "ConditionVariableDefinition",
    "VariableType",
    "build_facet_definitions",
    "default_allowed_operators_for_type",
    # Diagnostics
    "ConditionDslError",
    "ConditionDslWarning",
    "DiagnosticRange",
    "ErrorCode",
    "LineIndex",
    "Position",
    "WarningCode",
    "create_diagnostic",
    # Entry points
    "ConditionDslParseFailure",
    "ConditionDslParseSuccess",
    "ConditionDslRenderFailure",
    "ConditionDslRenderSuccess",
    "parse_dsl",
    "to_dsl",
    # Evaluator
    "MISSING",
    "EvaluateConditionFailure",
    "EvaluateConditionSuccess",
    "EvaluationError",
    "EvaluationScope",
    "Evaluator",
    "evaluate_condition",
    # JSON-Logic
    "JsonLogicError",
    "expression_to_json_logic",
    "json_logic_to_expression",
    # Lexer
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    "tokenize",
    # Normalisation
    "ConditionDslValidationError",
    "ConditionInput",
    "ConditionValidationResult",
    "normalize_condition_input",
    # Parser
    "ASTNode",
    "BinaryOp",
    "Literal",
    "ParseError",
    "Parser",
    "Quantifier",
    "SourceRange",
    "UnaryOp",
    "Variable",
    "parse",
    # Renderer
    "render_expression",
    # Validator
    "validate_ast",
]
