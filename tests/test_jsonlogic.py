"""Tests for AST <-> JSON-Logic conversion."""

import pytest

from conditionforge.dsl import (
    BinaryOp,
    ConditionVariableCatalog,
    JsonLogicError,
    Literal,
    Quantifier,
    UnaryOp,
    Variable,
    expression_to_json_logic,
    json_logic_to_expression,
    parse,
)
from conditionforge.dsl.renderer import render_expression


def _to_json(source):
    return expression_to_json_logic(parse(source))


class TestExpressionToJsonLogic:
    def test_literal_and_variable(self):
        assert _to_json("1") == 1
        assert _to_json("null") is None
        assert _to_json("score") == {"var": "score"}

    def test_comparison(self):
        assert _to_json("score >= 0.7") == {">=": [{"var": "score"}, 0.7]}

    def test_not(self):
        assert _to_json("!flag") == {"!": {"var": "flag"}}

    def test_and_chain_is_flattened(self):
        assert _to_json("a && b && c") == {"and": [{"var": "a"}, {"var": "b"}, {"var": "c"}]}

    def test_grouped_same_operator_is_flattened(self):
        assert _to_json("a && (b && c)") == {"and": [{"var": "a"}, {"var": "b"}, {"var": "c"}]}

    def test_mixed_operators_stay_nested(self):
        assert _to_json("a || b && c") == {
            "or": [{"var": "a"}, {"and": [{"var": "b"}, {"var": "c"}]}]
        }

    def test_quantifier_default_alias_is_omitted(self):
        assert _to_json("some(items, item == 1)") == {
            "some": [{"var": "items"}, {"==": [{"var": "item"}, 1]}]
        }

    def test_quantifier_alias_is_appended(self):
        assert _to_json("all(items as x, x == 1)") == {
            "all": [{"var": "items"}, {"==": [{"var": "x"}, 1]}, "x"]
        }

    def test_explicit_default_alias_is_kept(self):
        assert _to_json("some(items as item, item == 1)") == {
            "some": [{"var": "items"}, {"==": [{"var": "item"}, 1]}, "item"]
        }


class TestJsonLogicToExpression:
    def test_primitives(self, catalog):
        assert json_logic_to_expression(3, catalog) == Literal(3)
        assert json_logic_to_expression("x", catalog) == Literal("x")
        assert json_logic_to_expression(None, catalog) == Literal(None)

    def test_var_forms(self, catalog):
        assert json_logic_to_expression({"var": "score"}, catalog) == Variable("score")
        assert json_logic_to_expression({"var": ["score"]}, catalog) == Variable("score")

    def test_ranges_are_none(self, catalog):
        ast = json_logic_to_expression({">": [{"var": "score"}, 1]}, catalog)

        assert ast.range is None
        assert ast.operator_range is None
        assert ast.left.range is None

    def test_n_ary_and_folds_left(self, catalog):
        ast = json_logic_to_expression({"and": [{"var": "a"}, {"var": "b"}, {"var": "c"}]}, catalog)

        assert ast == BinaryOp("&&", BinaryOp("&&", Variable("a"), Variable("b")), Variable("c"))

    def test_single_operand_and(self, catalog):
        assert json_logic_to_expression({"and": [{"var": "a"}]}, catalog) == Variable("a")

    def test_not(self, catalog):
        assert json_logic_to_expression({"!": {"var": "flag"}}, catalog) == UnaryOp("!", Variable("flag"))

    def test_quantifier_alias(self, catalog):
        ast = json_logic_to_expression(
            {"some": [{"var": "items"}, {"==": [{"var": "x.id"}, 1]}, "x"]}, catalog
        )

        assert isinstance(ast, Quantifier)
        assert ast.alias == "x"
        assert ast.alias_provided is True
        assert ast.predicate.left == Variable("x.id")

    def test_default_alias_is_not_marked_provided(self, catalog):
        ast = json_logic_to_expression(
            {"some": [{"var": "items"}, {"==": [{"var": "item"}, 1]}, "item"]}, catalog
        )

        assert ast.alias == "item"
        assert ast.alias_provided is False

    def test_unprefixed_paths_in_scope_are_rewritten_to_alias(self, catalog):
        ast = json_logic_to_expression(
            {"some": [{"var": "recommendations"}, {"==": [{"var": "severity"}, "critical"]}]},
            catalog,
        )
        assert ast.predicate.left == Variable("item.severity")

    def test_catalog_paths_in_scope_are_kept(self, catalog):
        ast = json_logic_to_expression(
            {"some": [{"var": "items"}, {">": [{"var": "score"}, {"var": "item"}]}]}, catalog
        )

        assert ast.predicate.left == Variable("score")
        assert ast.predicate.right == Variable("item")

    def test_empty_var_in_scope_is_the_alias(self, catalog):
        ast = json_logic_to_expression(
            {"all": [{"var": "items"}, {"==": [{"var": ""}, 1]}, "x"]}, catalog
        )
        assert ast.predicate.left == Variable("x")

    def test_outer_alias_paths_are_kept(self, catalog):
        ast = json_logic_to_expression(
            {
                "some": [
                    {"var": "groups"},
                    {"all": [{"var": "g.members"}, {"==": [{"var": "g.id"}, {"var": "m.id"}]}, "m"]},
                    "g",
                ]
            },
            catalog,
        )

        inner = ast.predicate
        assert inner.collection == Variable("g.members")
        assert inner.predicate.left == Variable("g.id")
        assert inner.predicate.right == Variable("m.id")

    def test_unknown_paths_outside_scope_are_kept(self):
        ast = json_logic_to_expression({"var": "unknown"}, ConditionVariableCatalog())
        assert ast == Variable("unknown")

    @pytest.mark.parametrize(
        "payload, message",
        [
            ([1, 2], "Unexpected array at root level"),
            ({"and": [], "or": []}, "exactly one operator"),
            ({"and": []}, "expects a non-empty array"),
            ({"or": {"var": "a"}}, "expects a non-empty array"),
            ({"var": 5}, "`var` operator expects a string path"),
            ({"==": [1]}, "expects exactly two operands"),
            ({"some": [{"var": "items"}]}, "expects [collection, predicate, alias?]"),
            ({"in": ["a", "abc"]}, "Operator `in` is not supported"),
        ],
    )
    def test_malformed_payloads(self, catalog, payload, message):
        with pytest.raises(JsonLogicError) as exc_info:
            json_logic_to_expression(payload, catalog)
        assert message in str(exc_info.value)


class TestRoundTrip:
    @pytest.mark.parametrize(
        "source",
        [
            "score >= 0.7",
            "a && b || !c",
            "(a || b) && c",
            "!(a == 1)",
            "some(items, item.x == 1) && flag == true",
            "all(items as row, some(row.tags as tag, tag == \"x\"))",
        ],
    )
    def test_json_logic_survives_import(self, catalog, source):
        json_logic = _to_json(source)
        imported = json_logic_to_expression(json_logic, catalog)

        assert expression_to_json_logic(imported) == json_logic

    def test_rendered_text_reparses_to_same_json_logic(self, catalog):
        json_logic = {"or": [{"and": [{"var": "a"}, {"var": "b"}]}, {"!": {"var": "c"}}]}
        ast = json_logic_to_expression(json_logic, catalog)

        assert expression_to_json_logic(parse(render_expression(ast))) == json_logic
