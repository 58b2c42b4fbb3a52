"""Programmatic construction of filter expressions.

The functions here build the same trees the text parser produces:

    >>> and_(in_("author", ["john", "jill"]), eq("article_type", "blog"))

`None` is accepted wherever an operand is expected and means "no filter":
it is dropped from `and_` and absorbs `or_`, so optional conditions can be
composed without special-casing.
"""

from typing import Iterable, Optional

from vectorfilter.exceptions import InvalidFilterError

from .expression import And, Comparison, Expression, Not, Operator, Or, Scalar

__all__ = (
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


def eq(field: str, value: Scalar) -> Comparison:
    return Comparison(field, Operator.EQ, value)


def ne(field: str, value: Scalar) -> Comparison:
    return Comparison(field, Operator.NEQ, value)


def gt(field: str, value: Scalar) -> Comparison:
    return Comparison(field, Operator.GT, value)


def gte(field: str, value: Scalar) -> Comparison:
    return Comparison(field, Operator.GTE, value)


def lt(field: str, value: Scalar) -> Comparison:
    return Comparison(field, Operator.LT, value)


def lte(field: str, value: Scalar) -> Comparison:
    return Comparison(field, Operator.LTE, value)


def in_(field: str, values: Iterable[Scalar]) -> Comparison:
    """Match when the value at `field` equals any of `values` (at least one required)."""
    return Comparison(field, Operator.IN, _as_tuple(field, values))


def nin(field: str, values: Iterable[Scalar]) -> Comparison:
    """Match when the value at `field` equals none of `values` (at least one required)."""
    return Comparison(field, Operator.NOT_IN, _as_tuple(field, values))


def _as_tuple(field: str, values: Iterable[Scalar]) -> tuple:
    if isinstance(values, (str, bytes)):
        raise InvalidFilterError("Expected a list of values, got a string", field=field, value=values)
    try:
        return tuple(values)
    except TypeError as e:
        raise InvalidFilterError("Expected a list of values", field=field, value=values) from e


def _flatten(kind: type, operands: Iterable[Expression]) -> list:
    flat: list = []
    for operand in operands:
        if isinstance(operand, kind):
            flat.extend(operand.operands)
        else:
            flat.append(operand)
    return flat


def and_(*operands: Optional[Expression]) -> Optional[Expression]:
    """Conjunction of `operands`.

    Nested ANDs are flattened, `None` operands are dropped, a single remaining
    operand is returned as-is and no remaining operand yields None.
    """
    flat = _flatten(And, (op for op in operands if op is not None))
    if not flat:
        return None
    if len(flat) == 1:
        return flat[0]
    return And(tuple(flat))


def or_(*operands: Optional[Expression]) -> Optional[Expression]:
    """Disjunction of `operands`.

    Nested ORs are flattened and a single operand is returned as-is. Any
    `None` operand matches everything, so the whole disjunction becomes None.
    """
    if not operands:
        raise InvalidFilterError("OR requires at least one operand")
    if any(op is None for op in operands):
        return None
    flat = _flatten(Or, operands)
    if len(flat) == 1:
        return flat[0]
    return Or(tuple(flat))


def not_(operand: Optional[Expression]) -> Not:
    if operand is None:
        raise InvalidFilterError("Cannot negate an empty filter")
    return Not(operand)
