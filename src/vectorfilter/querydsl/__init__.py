"""Query DSL module.

Filter expressions can be written as text (`parse_filter`), built with the
builder functions (`eq`, `in_`, `and_`, ...) or composed with `Q` objects;
all three produce the same expression tree. `compile_filter` turns a tree
into a backend-native filter.
"""

from .builder import and_, eq, gt, gte, in_, lt, lte, ne, nin, not_, or_
from .compilers import FilterBackend, SqlFilter, compile_filter, get_where_compiler
from .expression import And, Comparison, Expression, Not, Operator, Or, evaluate, to_text
from .parser import FilterParser, parse_filter
from .q import Q

__all__ = (
    "Q",
    "And",
    "Comparison",
    "Expression",
    "Not",
    "Operator",
    "Or",
    "evaluate",
    "to_text",
    "FilterParser",
    "parse_filter",
    "FilterBackend",
    "SqlFilter",
    "compile_filter",
    "get_where_compiler",
    "eq",
    "ne",
    "gt",
    "gte",
    "lt",
    "lte",
    "in_",
    "nin",
    "and_",
    "or_",
    "not_",
)
