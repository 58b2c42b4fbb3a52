"""MongoDB Atlas where compiler.

Transforms filter expressions into MongoDB query documents usable both as the
`filter` of a `$vectorSearch` stage and with regular `find` / `delete_many`.

Emitted documents (for the default `metadata` prefix):

- EQ: ``{"metadata.f": v}``
- NEQ/GT/GTE/LT/LTE: ``{"metadata.f": {"$ne" | "$gt" | ...: v}}``
- IN: ``{"$or": [{"metadata.f": a}, {"metadata.f": b}]}`` (``{"$in": [...]}``
  when `expand_in` is False); a single value collapses to an equality
- NOT_IN: ``{"$and": [{"metadata.f": {"$ne": a}}, ...]}`` (``{"$nin": [...]}``
  when `expand_in` is False)
- AND / OR: ``{"$and": [...]}`` / ``{"$or": [...]}``
- NOT: ``{"$nor": [...]}``

MongoDB's comparison operators only match values of the same BSON type
bracket, so type mismatches never match, the same way `evaluate` behaves.
"""

from typing import Any, Dict, List

from ..expression import And, Comparison, Expression, Not, Operator, Or
from .base import BaseWhere
from .utils import normalize_where_input

__all__ = (
    "MongoDBWhereCompiler",
    "mongodb_where",
)


class MongoDBWhereCompiler(BaseWhere):
    """Compile filter expressions into MongoDB filter documents.

    Args:
        metadata_field: Document field holding metadata; field names are
            prefixed with it ("" addresses top-level fields)
        expand_in: Emit IN / NOT_IN as `$or` / `$and` of equalities instead
            of `$in` / `$nin`
    """

    backend = "mongodb"

    _OP_MAP = {
        Operator.NEQ: "$ne",
        Operator.GT: "$gt",
        Operator.GTE: "$gte",
        Operator.LT: "$lt",
        Operator.LTE: "$lte",
        Operator.IN: "$in",
        Operator.NOT_IN: "$nin",
    }

    def __init__(self, metadata_field: str = "metadata", expand_in: bool = True) -> None:
        self.metadata_field = metadata_field
        self.expand_in = expand_in

    def to_where(self, where: Any) -> Dict[str, Any]:
        """Convert an expression, Q object, DSL text or None into a filter dict.

        The empty expression compiles to ``{}``.
        """
        expression = normalize_where_input(where)
        if expression is None:
            return {}
        return self._node_to_dict(expression)

    def to_expr(self, where: Any) -> str:
        return str(self.to_where(where))

    def _path(self, field: str) -> str:
        return f"{self.metadata_field}.{field}" if self.metadata_field else field

    def _node_to_dict(self, node: Expression) -> Dict[str, Any]:
        if isinstance(node, And):
            return {"$and": [self._node_to_dict(n) for n in node.operands]}
        if isinstance(node, Or):
            return {"$or": [self._node_to_dict(n) for n in node.operands]}
        if isinstance(node, Not):
            return {"$nor": [self._node_to_dict(node.operand)]}
        return self._comparison_to_dict(node)

    def _comparison_to_dict(self, node: Comparison) -> Dict[str, Any]:
        path = self._path(node.field)
        op = node.operator
        if op is Operator.EQ:
            return {path: node.value}
        if not op.is_list:
            return {path: {self._OP_MAP[op]: node.value}}

        values: List[Any] = list(node.value)
        if not self.expand_in:
            return {path: {self._OP_MAP[op]: values}}
        if op is Operator.IN:
            clauses = [{path: v} for v in values]
            return clauses[0] if len(clauses) == 1 else {"$or": clauses}
        clauses = [{path: {"$ne": v}} for v in values]
        return clauses[0] if len(clauses) == 1 else {"$and": clauses}


mongodb_where = MongoDBWhereCompiler()
