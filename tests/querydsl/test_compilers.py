"""Tests for the pgvector and MongoDB where compilers."""

import json

import pytest

from vectorfilter.querydsl import Q
from vectorfilter.querydsl.builder import and_, eq, gt, gte, in_, lt, lte, ne, nin, not_, or_
from vectorfilter.querydsl.compilers import (
    FilterBackend,
    MongoDBWhereCompiler,
    PgVectorWhereCompiler,
    SqlFilter,
    compile_filter,
    get_where_compiler,
    mongodb_where,
    pgvector_where,
)
from vectorfilter.exceptions import InvalidFilterError, ParseError
from vectorfilter.querydsl.expression import evaluate

VALID_EXPRESSIONS = [
    eq("a", "x"),
    ne("a", 1),
    gt("a", 1.5),
    gte("a", -2),
    lt("a", "m"),
    lte("a", True),
    in_("a", [1, "b", False]),
    nin("a", ["x"]),
    and_(eq("a", 1), or_(eq("b", 2), not_(eq("c", 3)))),
    not_(not_(in_("deep.path.key", ["v"]))),
]


class TestPgVectorCompiler:
    """SQL JSON-path predicates with bound parameters."""

    def test_eq(self):
        result = pgvector_where.to_where(eq("author", "john"))
        assert result == SqlFilter('"metadata" -> %s = %s::jsonb', ("author", '"john"'))

    def test_ne(self):
        result = pgvector_where.to_where(ne("year", 2024))
        assert result.sql == '"metadata" -> %s IS DISTINCT FROM %s::jsonb'
        assert result.params == ("year", "2024")

    def test_ordering_has_type_guard(self):
        result = pgvector_where.to_where(gt("year", 2020))
        assert result.sql == '(jsonb_typeof("metadata" -> %s) = %s AND "metadata" -> %s > %s::jsonb)'
        assert result.params == ("year", "number", "year", "2020")

    def test_ordering_on_strings(self):
        result = pgvector_where.to_where(lte("name", "m"))
        assert result.sql == '(jsonb_typeof("metadata" -> %s) = %s AND ("metadata" ->> %s) COLLATE "C" <= %s)'
        assert result.params == ("name", "string", "name", "m")

    def test_string_ordering_on_nested_field(self):
        result = pgvector_where.to_where(gt("info.lang", "B"))
        assert result.sql == '(jsonb_typeof("metadata" #> %s) = %s AND ("metadata" #>> %s) COLLATE "C" > %s)'
        assert result.params == (["info", "lang"], "string", ["info", "lang"], "B")

    def test_string_ordering_is_code_point_order(self):
        # upper case sorts before lower case, as evaluate() and MongoDB compare
        assert evaluate(lt("name", "a"), {"name": "B"}) is True
        assert 'COLLATE "C" <' in pgvector_where.to_where(lt("name", "a")).sql

    def test_in(self):
        result = pgvector_where.to_where(in_("author", ["john", "jill"]))
        assert result.sql == '"metadata" -> %s IN (%s::jsonb, %s::jsonb)'
        assert result.params == ("author", '"john"', '"jill"')

    def test_nin_is_null_safe(self):
        result = pgvector_where.to_where(nin("author", ["john"]))
        assert result.sql == 'NOT COALESCE("metadata" -> %s IN (%s::jsonb), FALSE)'

    def test_not_is_null_safe(self):
        result = pgvector_where.to_where(not_(eq("a", 1)))
        assert result.sql == 'NOT COALESCE("metadata" -> %s = %s::jsonb, FALSE)'
        assert result.params == ("a", "1")

    def test_booleans_are_json_booleans(self):
        assert pgvector_where.to_where(eq("featured", True)).params == ("featured", "true")

    def test_and_or(self):
        result = pgvector_where.to_where(and_(in_("author", ["john", "jill"]), eq("article_type", "blog")))
        assert result.sql == '("metadata" -> %s IN (%s::jsonb, %s::jsonb) AND "metadata" -> %s = %s::jsonb)'
        assert result.params == ("author", '"john"', '"jill"', "article_type", '"blog"')

        result = pgvector_where.to_where(or_(eq("a", 1), eq("b", 2)))
        assert result.sql == '("metadata" -> %s = %s::jsonb OR "metadata" -> %s = %s::jsonb)'

    def test_dotted_field_uses_path_array(self):
        result = pgvector_where.to_where(eq("info.lang", "en"))
        assert result.sql == '"metadata" #> %s = %s::jsonb'
        assert result.params == (["info", "lang"], '"en"')

    def test_custom_metadata_column_is_quoted(self):
        compiler = PgVectorWhereCompiler(metadata_column='meta"data')
        assert compiler.to_where(eq("a", 1)).sql == '"meta""data" -> %s = %s::jsonb'

    def test_empty_is_true(self):
        assert pgvector_where.to_where(None) == SqlFilter("TRUE", ())
        assert pgvector_where.to_where("   ").is_empty
        assert not pgvector_where.to_where(eq("a", 1)).is_empty

    def test_injection_stays_in_parameters(self):
        hostile = "x'; DROP TABLE vector_store; --"
        result = pgvector_where.to_where(eq("title", hostile))
        assert hostile not in result.sql
        assert result.params == ("title", json.dumps(hostile))
        with pytest.raises(InvalidFilterError):
            pgvector_where.to_where(eq(hostile, 1))

    def test_quotes_and_backslashes_from_text(self):
        result = pgvector_where.to_where(r"title == 'it\'s \\ here'")
        assert result.params == ("title", json.dumps("it's \\ here"))

    def test_as_string(self):
        assert pgvector_where.to_expr(eq("author", "it's")) == "\"metadata\" -> 'author' = '\"it''s\"'::jsonb"
        assert str(pgvector_where.to_where(eq("info.lang", "en"))) == "\"metadata\" #> ARRAY['info','lang'] = '\"en\"'::jsonb"

    def test_accepts_q(self):
        assert pgvector_where.to_where(Q(author="john")) == pgvector_where.to_where(eq("author", "john"))

    def test_malformed_text_raises(self):
        with pytest.raises(ParseError):
            pgvector_where.to_where("author ==")

    def test_rejects_unknown_input(self):
        with pytest.raises(TypeError):
            pgvector_where.to_where({"author": "john"})


class TestMongoDBCompiler:
    """MongoDB document filters."""

    def test_round_trip_example(self):
        result = compile_filter("author in ['john','jill'] && article_type == 'blog'", "mongodb")
        assert result == {
            "$and": [
                {"$or": [{"metadata.author": "john"}, {"metadata.author": "jill"}]},
                {"metadata.article_type": "blog"},
            ]
        }

    @pytest.mark.parametrize(
        "expression,expected",
        [
            (eq("a", 1), {"metadata.a": 1}),
            (ne("a", 1), {"metadata.a": {"$ne": 1}}),
            (gt("a", 1), {"metadata.a": {"$gt": 1}}),
            (gte("a", 1), {"metadata.a": {"$gte": 1}}),
            (lt("a", 1), {"metadata.a": {"$lt": 1}}),
            (lte("a", 1), {"metadata.a": {"$lte": 1}}),
            (in_("a", ["x"]), {"metadata.a": "x"}),
            (nin("a", ["x", "y"]), {"$and": [{"metadata.a": {"$ne": "x"}}, {"metadata.a": {"$ne": "y"}}]}),
            (not_(eq("a", 1)), {"$nor": [{"metadata.a": 1}]}),
            (eq("info.lang", "en"), {"metadata.info.lang": "en"}),
        ],
    )
    def test_operators(self, expression, expected):
        assert mongodb_where.to_where(expression) == expected

    def test_in_without_expansion(self):
        compiler = MongoDBWhereCompiler(expand_in=False)
        assert compiler.to_where(in_("a", ["x", "y"])) == {"metadata.a": {"$in": ["x", "y"]}}
        assert compiler.to_where(nin("a", ["x"])) == {"metadata.a": {"$nin": ["x"]}}

    def test_top_level_fields(self):
        compiler = MongoDBWhereCompiler(metadata_field="")
        assert compiler.to_where(eq("a", 1)) == {"a": 1}

    def test_operator_names_cannot_be_fields(self):
        compiler = MongoDBWhereCompiler(metadata_field="")
        with pytest.raises(InvalidFilterError):
            compiler.to_where(eq("$where", "sleep(100)"))
        with pytest.raises(InvalidFilterError):
            compiler.to_where(Q(**{"$where": "sleep(100)"}))
        with pytest.raises(ParseError):
            compiler.to_where("$where == 'sleep(100)'")

    def test_empty_is_empty_document(self):
        assert mongodb_where.to_where(None) == {}
        assert compile_filter("", "mongodb") == {}

    def test_operator_looking_values_stay_values(self):
        hostile = '{"$gt": ""}'
        assert mongodb_where.to_where(eq("a", hostile)) == {"metadata.a": hostile}
        assert mongodb_where.to_where(r"a == '\'$where\''") == {"metadata.a": "'$where'"}

    def test_to_expr(self):
        assert mongodb_where.to_expr(eq("a", 1)) == "{'metadata.a': 1}"


class TestDispatch:
    def test_backend_lookup(self):
        assert get_where_compiler("pgvector") is pgvector_where
        assert get_where_compiler(FilterBackend.MONGODB) is mongodb_where

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown filter backend"):
            compile_filter(eq("a", 1), "sqlite")

    @pytest.mark.parametrize("backend", list(FilterBackend))
    @pytest.mark.parametrize("expression", VALID_EXPRESSIONS)
    def test_valid_expressions_always_compile(self, backend, expression):
        compile_filter(expression, backend)

    def test_placeholders_match_params(self):
        for expression in VALID_EXPRESSIONS:
            result = compile_filter(expression, "pgvector")
            assert result.sql.count("%s") == len(result.params)

    def test_q_compiles_directly(self):
        q = Q(author__in=["john", "jill"]) & Q(article_type="blog")
        assert q.to_where("mongodb") == compile_filter("author in ['john','jill'] && article_type == 'blog'", "mongodb")
