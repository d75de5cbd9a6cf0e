"""Tests for validation of condition ASTs against the variable catalog."""

from conditionforge.dsl import (
    BinaryOp,
    ConditionVariableCatalog,
    ErrorCode,
    LineIndex,
    Literal,
    Quantifier,
    Variable,
    VariableType,
    parse,
    validate_ast,
)
from conditionforge.dsl.validator import is_literal_type_compatible, literal_kind


def _validate(source, catalog):
    return validate_ast(parse(source), catalog, LineIndex(source))


def _codes(errors):
    return [error.code for error in errors]


class TestVariables:
    def test_known_variable_is_valid(self, catalog):
        assert _validate("score > 1", catalog) == []

    def test_unknown_variable(self, catalog):
        errors = _validate("unknownVar > 1", catalog)

        assert _codes(errors) == [ErrorCode.UNKNOWN_VARIABLE]
        assert errors[0].range.start.offset == 0
        assert errors[0].range.end.offset == 10

    def test_all_unknown_variables_are_reported(self, catalog):
        errors = _validate("a == 1 && b == 2", catalog)
        assert _codes(errors) == [ErrorCode.UNKNOWN_VARIABLE, ErrorCode.UNKNOWN_VARIABLE]

    def test_alias_references_skip_the_catalog(self, catalog):
        assert _validate("some(items, item.anything == 1)", catalog) == []
        assert _validate("some(items as x, x == 1)", catalog) == []

    def test_outer_alias_visible_in_nested_predicate(self, catalog):
        source = "some(groups as g, all(items as i, i.id == 1) && g.open == true)"
        assert _validate(source, catalog) == []

    def test_error_positions_use_lines_and_columns(self, catalog):
        errors = _validate("score > 1 &&\n  missing == 2", catalog)

        assert _codes(errors) == [ErrorCode.UNKNOWN_VARIABLE]
        start = errors[0].range.start
        assert (start.line, start.column, start.offset) == (2, 3, 15)


class TestOperators:
    def test_operator_not_allowed(self, catalog):
        errors = _validate("flag > 1", catalog)

        assert ErrorCode.OPERATOR_NOT_ALLOWED in _codes(errors)
        not_allowed = next(e for e in errors if e.code == ErrorCode.OPERATOR_NOT_ALLOWED)
        # Reported on the operator, not the whole comparison
        assert (not_allowed.range.start.offset, not_allowed.range.end.offset) == (5, 6)

    def test_default_operators_for_strings(self, catalog):
        errors = _validate('status < "b"', catalog)
        assert _codes(errors) == [ErrorCode.OPERATOR_NOT_ALLOWED]

    def test_logical_operators_are_not_restricted(self, catalog):
        assert _validate("flag == true && flag != false", catalog) == []


class TestTypes:
    def test_string_literal_against_number(self, catalog):
        errors = _validate('score == "x"', catalog)

        assert _codes(errors) == [ErrorCode.TYPE_MISMATCH]
        assert errors[0].range.start.offset == 9

    def test_literal_on_left_side(self, catalog):
        errors = _validate('"x" == score', catalog)
        assert _codes(errors) == [ErrorCode.TYPE_MISMATCH]

    def test_null_is_compatible_with_everything(self, catalog):
        assert _validate("score == null && status != null && items == null", catalog) == []

    def test_array_is_compatible_with_no_literal(self, catalog):
        errors = _validate("items == 1", catalog)
        assert _codes(errors) == [ErrorCode.TYPE_MISMATCH]

    def test_variable_pair_types_must_match(self, catalog):
        assert _validate("score > threshold", catalog) == []

        errors = _validate("score == status", catalog)
        assert _codes(errors) == [ErrorCode.TYPE_MISMATCH]

    def test_unknown_and_mismatch_are_both_reported(self, catalog):
        errors = _validate('missing == 1 || score == "x"', catalog)
        assert _codes(errors) == [ErrorCode.UNKNOWN_VARIABLE, ErrorCode.TYPE_MISMATCH]

    def test_literal_kind(self):
        assert literal_kind(None) == "null"
        assert literal_kind(True) == "boolean"
        assert literal_kind(1.5) == "number"
        assert literal_kind("a") == "string"

    def test_is_literal_type_compatible(self):
        assert is_literal_type_compatible(VariableType.NUMBER, "number")
        assert is_literal_type_compatible(VariableType.STRING, "null")
        assert not is_literal_type_compatible(VariableType.BOOLEAN, "number")
        assert not is_literal_type_compatible(VariableType.ARRAY, "string")


class TestQuantifiers:
    def test_collection_must_be_array(self, catalog):
        errors = _validate("some(score, item == 1)", catalog)

        assert _codes(errors) == [ErrorCode.INVALID_QUANTIFIER]
        assert errors[0].range.start.offset == 5

    def test_collection_must_be_variable(self, catalog):
        errors = _validate("some(1, item == 1)", catalog)
        assert _codes(errors) == [ErrorCode.INVALID_QUANTIFIER]

    def test_predicate_must_reference_alias(self, catalog):
        errors = _validate("some(items as x, score > 1)", catalog)

        assert _codes(errors) == [ErrorCode.INVALID_QUANTIFIER]
        assert "`x`" in errors[0].message
        assert errors[0].range.start.offset == 17

    def test_unknown_collection(self, catalog):
        errors = _validate("some(missing, item == 1)", catalog)
        assert _codes(errors) == [ErrorCode.UNKNOWN_VARIABLE]


class TestSynthesizedNodes:
    def test_errors_without_ranges_name_the_node(self):
        ast = BinaryOp("==", Variable("missing"), Literal(1))
        errors = validate_ast(ast, ConditionVariableCatalog())

        assert _codes(errors) == [ErrorCode.UNKNOWN_VARIABLE]
        assert errors[0].range is None
        assert str(errors[0]).startswith("[unknown_variable] variable:")

    def test_quantifier_without_ranges(self, catalog):
        ast = Quantifier("some", Variable("items"), Literal(True))
        errors = validate_ast(ast, catalog)

        assert _codes(errors) == [ErrorCode.INVALID_QUANTIFIER]
        assert errors[0].node_type == "quantifier"
        assert errors[0].to_dict()["range"] is None
