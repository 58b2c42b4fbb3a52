"""Query DSL core utilities.

This module defines the `Q` class used to compose structured filter
expressions in a backend-agnostic way. A `Q` node turns into the same
expression tree the text parser and the builder functions produce, and can
be compiled into backend-specific filters via the compilers.

Typical usage:

- Build filters: `Q(year__gte=2020) & Q(year__lte=2024)`
- Negate: `~Q(status="draft")`
- Compile: `q.to_where("pgvector")` or `q.to_expr("mongodb")`
"""

from __future__ import annotations

from copy import copy
from typing import Any, List, Optional, Union

from .builder import _as_tuple, and_, not_, or_
from .compilers import FilterBackend, get_where_compiler
from .expression import Comparison, Expression, Operator, to_text


class Q:
    """Composable boolean query node.

    A `Q` instance holds leaf-level filters (e.g., `field__op=value`) or
    boolean combinations of child `Q` nodes.

    - Use `&` to combine with logical AND.
    - Use `|` to combine with logical OR.
    - Use `~` to negate a node.

    Filter keys follow the `field__lookup` convention where lookup is one
    of: `eq`, `ne`, `gt`, `gte`, `lt`, `lte`, `in`, `nin`. A key without a
    known lookup is an equality, and remaining `__` separators address nested
    metadata (`info__lang="en"` filters on `info.lang`).

    Leaves are validated on construction, so `Q(tags__in=[])` raises
    `InvalidFilterError` immediately.
    """

    _OP_MAP = {
        "eq": Operator.EQ,
        "ne": Operator.NEQ,
        "gt": Operator.GT,
        "gte": Operator.GTE,
        "lt": Operator.LT,
        "lte": Operator.LTE,
        "in": Operator.IN,
        "nin": Operator.NOT_IN,
    }

    def __init__(self, negate: bool = False, **filters: Any):
        self.filters = filters
        self.children: List["Q"] = []
        self.connector = "AND"
        self.negate = negate
        self._leaves = [self._leaf(key, value) for key, value in filters.items()]

    @classmethod
    def _leaf(cls, key: str, value: Any) -> Comparison:
        field, op = key, Operator.EQ
        if "__" in key:
            # Split from the right: "info__lang__eq" -> field="info__lang", lookup="eq"
            head, lookup = key.rsplit("__", 1)
            if lookup in cls._OP_MAP:
                field, op = head, cls._OP_MAP[lookup]
        field = field.replace("__", ".")
        if op.is_list:
            value = _as_tuple(field, value)
        return Comparison(field, op, value)

    def _combine(self, other: "Q", connector: str) -> "Q":
        if not isinstance(other, Q):
            return NotImplemented
        node = Q()
        node.connector = connector
        node.children = [self, other]
        return node

    def __and__(self, other: "Q") -> "Q":
        return self._combine(other, "AND")

    def __or__(self, other: "Q") -> "Q":
        return self._combine(other, "OR")

    def __invert__(self) -> "Q":
        q = copy(self)
        q.negate = not self.negate
        return q

    def __str__(self) -> str:
        return to_text(self.to_expression())

    def __repr__(self) -> str:
        return f"<Q: {self}>"

    def to_expression(self) -> Optional[Expression]:
        """Return the expression tree for this node (None when it has no filters)."""
        if self.children:
            parts = [child.to_expression() for child in self.children]
            node = and_(*parts) if self.connector == "AND" else or_(*parts)
        else:
            node = and_(*self._leaves)
        if self.negate:
            return not_(node)
        return node

    def to_where(self, backend: Union[FilterBackend, str]) -> Any:
        """Compile to a backend-native filter.

        - `pgvector`: `SqlFilter` (SQL with bound parameters)
        - `mongodb`: filter dict
        """
        return get_where_compiler(backend).to_where(self.to_expression())

    def to_expr(self, backend: Union[FilterBackend, str]) -> str:
        """Compile to a readable string for debugging."""
        return get_where_compiler(backend).to_expr(self.to_expression())
