"""PostgreSQL / pgvector where compiler.

Transforms filter expressions into SQL predicates over the JSONB metadata
column, with every key and value passed as a bound parameter.

Emitted predicates (for the default `metadata` column):

- EQ: ``metadata -> %s = %s::jsonb``
- NEQ: ``metadata -> %s IS DISTINCT FROM %s::jsonb``
- GT/GTE/LT/LTE: ``(jsonb_typeof(metadata -> %s) = %s AND metadata -> %s > %s::jsonb)``;
  string literals compare ``(metadata ->> %s) COLLATE "C" > %s`` instead
- IN: ``metadata -> %s IN (%s::jsonb, ...)``
- NOT_IN: ``NOT COALESCE(metadata -> %s IN (...), FALSE)``
- AND / OR: parenthesized ``AND`` / ``OR``; NOT: ``NOT COALESCE((...), FALSE)``

Comparing `jsonb` values keeps the stored type: a string never equals a
number, and the `jsonb_typeof` guard stops ordering comparisons from
matching across types. A missing key yields NULL, which `COALESCE` turns into
FALSE wherever the result is negated. Dotted fields address nested keys
through ``metadata #> %s`` with a text-array parameter.
"""

import re
from dataclasses import dataclass
from typing import Any, List, Tuple

from ..expression import And, Comparison, Expression, Not, Operator, Or, value_type
from .base import BaseWhere
from .utils import format_value_sql, json_param, normalize_where_input, quote_identifier

__all__ = (
    "SqlFilter",
    "PgVectorWhereCompiler",
    "pgvector_where",
)

_PLACEHOLDER_RE = re.compile(r"%s")


@dataclass(frozen=True)
class SqlFilter:
    """A SQL predicate with psycopg2 ``%s`` placeholders and its parameters."""

    sql: str
    params: Tuple[Any, ...] = ()

    @property
    def is_empty(self) -> bool:
        return self.sql == "TRUE" and not self.params

    def as_string(self) -> str:
        """Render the predicate with parameters inlined as escaped literals (display only)."""
        params = iter(self.params)
        return _PLACEHOLDER_RE.sub(lambda _: format_value_sql(next(params)), self.sql)

    def __str__(self) -> str:
        return self.as_string()


class PgVectorWhereCompiler(BaseWhere):
    """Compile filter expressions into PostgreSQL WHERE predicates.

    Args:
        metadata_column: Name of the JSONB column holding document metadata
    """

    backend = "pgvector"

    _ORDERING = {
        Operator.GT: ">",
        Operator.GTE: ">=",
        Operator.LT: "<",
        Operator.LTE: "<=",
    }

    def __init__(self, metadata_column: str = "metadata") -> None:
        self.metadata_column = metadata_column
        self._column = quote_identifier(metadata_column)

    def to_where(self, where: Any) -> SqlFilter:
        """Convert an expression, Q object, DSL text or None into a `SqlFilter`.

        The empty expression compiles to ``TRUE``.
        """
        expression = normalize_where_input(where)
        if expression is None:
            return SqlFilter("TRUE", ())
        params: List[Any] = []
        sql = self._node_to_sql(expression, params)
        return SqlFilter(sql, tuple(params))

    def to_expr(self, where: Any) -> str:
        return self.to_where(where).as_string()

    def _path(self, field: str, params: List[Any], as_text: bool = False) -> str:
        suffix = ">" if as_text else ""
        if "." in field:
            params.append(field.split("."))
            return f"{self._column} #>{suffix} %s"
        params.append(field)
        return f"{self._column} ->{suffix} %s"

    def _node_to_sql(self, node: Expression, params: List[Any]) -> str:
        if isinstance(node, And):
            return "(" + " AND ".join(self._node_to_sql(x, params) for x in node.operands) + ")"
        if isinstance(node, Or):
            return "(" + " OR ".join(self._node_to_sql(x, params) for x in node.operands) + ")"
        if isinstance(node, Not):
            return "NOT COALESCE(" + self._node_to_sql(node.operand, params) + ", FALSE)"
        return self._comparison_to_sql(node, params)

    def _comparison_to_sql(self, node: Comparison, params: List[Any]) -> str:
        op = node.operator
        if op is Operator.EQ:
            path = self._path(node.field, params)
            params.append(json_param(node.value))
            return f"{path} = %s::jsonb"
        if op is Operator.NEQ:
            path = self._path(node.field, params)
            params.append(json_param(node.value))
            return f"{path} IS DISTINCT FROM %s::jsonb"
        if op.is_list:
            path = self._path(node.field, params)
            params.extend(json_param(v) for v in node.value)
            placeholders = ", ".join(["%s::jsonb"] * len(node.value))
            membership = f"{path} IN ({placeholders})"
            if op is Operator.IN:
                return membership
            return f"NOT COALESCE({membership}, FALSE)"

        # Ordering comparisons only hold between values of the same JSON type
        guard_path = self._path(node.field, params)
        params.append(value_type(node.value))
        if isinstance(node.value, str):
            # byte order, matching code point comparison elsewhere
            path = self._path(node.field, params, as_text=True)
            params.append(node.value)
            return f'(jsonb_typeof({guard_path}) = %s AND ({path}) COLLATE "C" {self._ORDERING[op]} %s)'
        path = self._path(node.field, params)
        params.append(json_param(node.value))
        return f"(jsonb_typeof({guard_path}) = %s AND {path} {self._ORDERING[op]} %s::jsonb)"


pgvector_where = PgVectorWhereCompiler()
