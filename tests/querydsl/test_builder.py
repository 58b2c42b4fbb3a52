"""Tests for programmatic expression construction."""

import pytest

from vectorfilter.exceptions import InvalidFilterError
from vectorfilter.querydsl.builder import and_, eq, gt, in_, lt, ne, nin, not_, or_
from vectorfilter.querydsl.expression import And, Comparison, Not, Operator, Or, to_text
from vectorfilter.querydsl.parser import parse_filter


class TestLeaves:
    def test_comparison_fields(self):
        node = gt("year", 2020)
        assert node == Comparison("year", Operator.GT, 2020)
        assert node.operator is Operator.GT

    def test_in_stores_tuple(self):
        assert in_("author", ["john", "jill"]).value == ("john", "jill")
        assert nin("author", ("john",)).value == ("john",)

    def test_operator_from_string(self):
        assert Comparison("a", "==", 1) == eq("a", 1)

    def test_empty_in_rejected(self):
        with pytest.raises(InvalidFilterError, match="at least one value"):
            in_("author", [])
        with pytest.raises(InvalidFilterError):
            nin("author", [])

    def test_string_as_list_rejected(self):
        with pytest.raises(InvalidFilterError, match="got a string"):
            in_("author", "john")

    def test_non_iterable_list_rejected(self):
        with pytest.raises(InvalidFilterError):
            in_("author", 5)

    def test_scalar_operator_rejects_list(self):
        with pytest.raises(InvalidFilterError):
            eq("author", ["john"])

    @pytest.mark.parametrize("value", [None, float("nan"), float("inf"), {"a": 1}])
    def test_invalid_values_rejected(self, value):
        with pytest.raises(InvalidFilterError):
            eq("field", value)

    @pytest.mark.parametrize(
        "field",
        ["", "first name", "$where", "a..b", ".a", "2024", "in", "TRUE", "x'; DROP TABLE t; --", None],
    )
    def test_unspellable_field_rejected(self, field):
        with pytest.raises(InvalidFilterError, match="dotted identifier"):
            eq(field, 1)

    @pytest.mark.parametrize("field", ["author", "_private", "info.lang", "in.x", "year2024"])
    def test_builder_fields_round_trip_through_text(self, field):
        node = ne(field, "x")
        assert parse_filter(to_text(node)) == node

    def test_nodes_are_immutable(self):
        node = eq("a", 1)
        with pytest.raises(AttributeError):
            node.value = 2


class TestConnectives:
    def test_and_of_two(self):
        assert and_(eq("a", 1), eq("b", 2)) == And((eq("a", 1), eq("b", 2)))

    def test_and_flattens(self):
        node = and_(and_(eq("a", 1), eq("b", 2)), eq("c", 3))
        assert node == And((eq("a", 1), eq("b", 2), eq("c", 3)))

    def test_or_flattens(self):
        node = or_(eq("a", 1), or_(eq("b", 2), eq("c", 3)))
        assert node == Or((eq("a", 1), eq("b", 2), eq("c", 3)))

    def test_and_does_not_flatten_or(self):
        inner = or_(eq("a", 1), eq("b", 2))
        assert and_(inner, eq("c", 3)).operands[0] == inner

    def test_single_operand_collapses(self):
        assert and_(eq("a", 1)) == eq("a", 1)
        assert or_(eq("a", 1)) == eq("a", 1)

    def test_none_is_match_all(self):
        assert and_(None, eq("a", 1)) == eq("a", 1)
        assert and_(None, None) is None
        assert and_() is None
        assert or_(None, eq("a", 1)) is None

    def test_or_without_operands_rejected(self):
        with pytest.raises(InvalidFilterError):
            or_()

    def test_not(self):
        assert not_(ne("a", 1)) == Not(ne("a", 1))

    def test_not_none_rejected(self):
        with pytest.raises(InvalidFilterError):
            not_(None)

    def test_direct_construction_requires_two_operands(self):
        with pytest.raises(InvalidFilterError):
            And((eq("a", 1),))
        with pytest.raises(InvalidFilterError):
            Or((eq("a", 1), "b == 2"))

    def test_structural_equality(self):
        left = and_(in_("author", ["john", "jill"]), lt("year", 2025))
        right = and_(in_("author", ("john", "jill")), lt("year", 2025))
        assert left == right
        assert hash(left) == hash(right)
