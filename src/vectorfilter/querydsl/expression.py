"""Filter expression AST.

An expression is a small immutable tree over metadata key/value pairs:

- `Comparison`: `field <operator> value`
- `And` / `Or`: two or more child expressions
- `Not`: negation of one child

`None` stands for the empty expression, which imposes no restriction.

Trees are produced by the text parser (`parser.parse_filter`), the builder
functions (`builder.eq`, `builder.and_`, ...) or `Q.to_expression()`, and are
consumed by the backend compilers. This module also holds the reference
in-memory semantics (`evaluate`) and the text renderer (`to_text`).
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from vectorfilter.exceptions import InvalidFilterError

__all__ = (
    "Operator",
    "Comparison",
    "And",
    "Or",
    "Not",
    "Expression",
    "Scalar",
    "evaluate",
    "to_text",
    "value_type",
)

Scalar = Union[str, int, float, bool]

# Field names are dotted identifiers, spelled exactly as the DSL reads them
FIELD_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*"
_FIELD_RE = re.compile(FIELD_PATTERN)

KEYWORDS = frozenset({"and", "or", "not", "in", "nin", "true", "false"})


class Operator(str, Enum):
    """Comparison operators, valued by their DSL spelling."""

    EQ = "=="
    NEQ = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    IN = "in"
    NOT_IN = "nin"

    @property
    def is_list(self) -> bool:
        return self in (Operator.IN, Operator.NOT_IN)


def value_type(value: Any) -> Optional[str]:
    """Return the JSON type category of a scalar: "boolean", "number" or "string".

    Booleans are checked first since `bool` subclasses `int`. Anything else
    (None, lists, dicts) yields None.
    """
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return None


def is_field_name(field: Any) -> bool:
    """Whether `field` is a name the DSL can spell (and so parse back)."""
    return isinstance(field, str) and bool(_FIELD_RE.fullmatch(field)) and field.lower() not in KEYWORDS


def _check_scalar(field: str, value: Any) -> None:
    if value_type(value) is None:
        raise InvalidFilterError(
            "Filter values must be strings, numbers or booleans",
            field=field,
            value=value,
        )
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidFilterError("Filter values must be finite numbers", field=field, value=value)


@dataclass(frozen=True)
class Comparison:
    """Leaf node: compare the metadata value at `field` against `value`.

    `value` is a scalar for EQ..LTE and a non-empty tuple of scalars for
    IN / NOT_IN. Lists passed for IN / NOT_IN are stored as tuples.
    """

    field: str
    operator: Operator
    value: Union[Scalar, Tuple[Scalar, ...]]

    def __post_init__(self) -> None:
        if not is_field_name(self.field):
            raise InvalidFilterError("Filter field must be a dotted identifier", field=self.field)
        object.__setattr__(self, "operator", Operator(self.operator))
        if self.operator.is_list:
            if isinstance(self.value, (str, bytes)) or not isinstance(self.value, (list, tuple, set, frozenset)):
                raise InvalidFilterError(
                    f"Operator {self.operator.value!r} requires a list of values",
                    field=self.field,
                    value=self.value,
                )
            values = tuple(self.value)
            if not values:
                raise InvalidFilterError(
                    f"Operator {self.operator.value!r} requires at least one value",
                    field=self.field,
                )
            for item in values:
                _check_scalar(self.field, item)
            object.__setattr__(self, "value", values)
        else:
            _check_scalar(self.field, self.value)


@dataclass(frozen=True)
class And:
    operands: Tuple["Expression", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "operands", _check_operands("AND", self.operands))


@dataclass(frozen=True)
class Or:
    operands: Tuple["Expression", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "operands", _check_operands("OR", self.operands))


@dataclass(frozen=True)
class Not:
    operand: "Expression"

    def __post_init__(self) -> None:
        if not isinstance(self.operand, _NODE_TYPES):
            raise InvalidFilterError("NOT requires an expression operand", operand=self.operand)


Expression = Union[Comparison, And, Or, Not]

_NODE_TYPES = (Comparison, And, Or, Not)


def _check_operands(name: str, operands: Any) -> Tuple["Expression", ...]:
    operands = tuple(operands)
    if len(operands) < 2:
        raise InvalidFilterError(f"{name} requires at least two operands", count=len(operands))
    for operand in operands:
        if not isinstance(operand, _NODE_TYPES):
            raise InvalidFilterError(f"{name} operands must be expressions", operand=operand)
    return operands


# ---------------------------------------------------------------------------
# In-memory evaluation
# ---------------------------------------------------------------------------

_MISSING = object()


def _lookup(metadata: Mapping[str, Any], field: str) -> Any:
    # dots always address nested keys, as in both backends
    value: Any = metadata
    for part in field.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        else:
            return _MISSING
    return value


def _equals(stored: Any, literal: Scalar) -> bool:
    kind = value_type(stored)
    return kind is not None and kind == value_type(literal) and stored == literal


def _compare(operator: Operator, stored: Any, literal: Any) -> bool:
    if operator is Operator.EQ:
        return _equals(stored, literal)
    if operator is Operator.NEQ:
        return not _equals(stored, literal)
    if operator is Operator.IN:
        return any(_equals(stored, item) for item in literal)
    if operator is Operator.NOT_IN:
        return not any(_equals(stored, item) for item in literal)

    kind = value_type(stored)
    if kind is None or kind != value_type(literal):
        return False
    if operator is Operator.GT:
        return stored > literal
    if operator is Operator.GTE:
        return stored >= literal
    if operator is Operator.LT:
        return stored < literal
    return stored <= literal


def evaluate(expression: Optional[Expression], metadata: Mapping[str, Any]) -> bool:
    """Evaluate `expression` against one document's metadata mapping.

    This is the semantics every backend compiler reproduces:

    - missing keys make EQ, ordering comparisons and IN false;
    - values of different type categories never match (no coercion);
    - NEQ and NOT_IN are the exact negations of EQ and IN, so they match
      missing keys and type mismatches;
    - `None` matches every document.
    """
    if expression is None:
        return True
    if isinstance(expression, Comparison):
        stored = _lookup(metadata, expression.field)
        if stored is _MISSING:
            stored = None
        return _compare(expression.operator, stored, expression.value)
    if isinstance(expression, And):
        return all(evaluate(operand, metadata) for operand in expression.operands)
    if isinstance(expression, Or):
        return any(evaluate(operand, metadata) for operand in expression.operands)
    if isinstance(expression, Not):
        return not evaluate(expression.operand, metadata)
    raise InvalidFilterError("Unsupported expression node", node=expression)


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------


def _literal(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"
    return repr(value)


def to_text(expression: Optional[Expression]) -> str:
    """Render an expression as filter DSL text.

    Parentheses are only added where precedence requires them, so parsing the
    result of a builder-made tree gives back an equal tree.
    """
    if expression is None:
        return ""
    if isinstance(expression, Comparison):
        if expression.operator.is_list:
            items = ", ".join(_literal(v) for v in expression.value)
            return f"{expression.field} {expression.operator.value} [{items}]"
        return f"{expression.field} {expression.operator.value} {_literal(expression.value)}"
    if isinstance(expression, And):
        parts = []
        for operand in expression.operands:
            text = to_text(operand)
            parts.append(f"({text})" if isinstance(operand, (Or, And)) else text)
        return " && ".join(parts)
    if isinstance(expression, Or):
        parts = []
        for operand in expression.operands:
            text = to_text(operand)
            parts.append(f"({text})" if isinstance(operand, Or) else text)
        return " || ".join(parts)
    if isinstance(expression, Not):
        return f"!({to_text(expression.operand)})"
    raise InvalidFilterError("Unsupported expression node", node=expression)
