"""Compiler utility functions.

Provides helpers for normalizing filter inputs, quoting SQL identifiers and
formatting SQL values for display.
"""

import json
from typing import Any, List, Optional, Tuple, Union

from ..expression import And, Comparison, Expression, Not, Or
from ..parser import parse_filter

_EXPRESSION_TYPES = (Comparison, And, Or, Not)


def normalize_where_input(where: Any) -> Optional[Expression]:
    """Normalize any accepted filter input to an expression tree.

    Args:
        where: Expression node, Q object (with .to_expression()), DSL text or None

    Returns:
        Expression tree, or None for "no filter"

    Raises:
        ParseError: If `where` is malformed DSL text
        TypeError: If input is none of the accepted types
    """
    if where is None:
        return None
    if isinstance(where, _EXPRESSION_TYPES):
        return where
    if isinstance(where, str):
        return parse_filter(where)
    if hasattr(where, "to_expression") and callable(where.to_expression):
        return where.to_expression()
    raise TypeError(f"where parameter must be an expression, Q object or filter text, got {type(where).__name__}")


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier with double quotes, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def json_param(value: Any) -> str:
    """Serialize a filter literal for binding as a `%s::jsonb` parameter."""
    return json.dumps(value, ensure_ascii=False)


def format_value_sql(v: Union[None, str, int, float, List[Any], Tuple[Any, ...]]) -> str:
    """Format a bound parameter as an escaped SQL literal for display.

    Used only to render readable filters for logs and debugging; queries
    always send values as parameters.
    """
    if v is None:
        return "NULL"
    if isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    if isinstance(v, str):
        return "'" + v.replace("'", "''") + "'"
    if isinstance(v, (list, tuple)):
        inner = ",".join(format_value_sql(x) for x in v)
        return f"ARRAY[{inner}]"
    return str(v)
