from enum import Enum
from typing import Any, Union

from .base import BaseWhere
from .mongodb import MongoDBWhereCompiler, mongodb_where
from .pgvector import PgVectorWhereCompiler, SqlFilter, pgvector_where
from .utils import normalize_where_input

__all__ = (
    "BaseWhere",
    "FilterBackend",
    "MongoDBWhereCompiler",
    "mongodb_where",
    "PgVectorWhereCompiler",
    "pgvector_where",
    "SqlFilter",
    "compile_filter",
    "get_where_compiler",
    "normalize_where_input",
)


class FilterBackend(str, Enum):
    """Target filter syntax, chosen per query by the active store."""

    PGVECTOR = "pgvector"  # SQL JSON-path predicate
    MONGODB = "mongodb"  # document filter

    @classmethod
    def coerce(cls, backend: Union["FilterBackend", str]) -> "FilterBackend":
        try:
            return cls(backend)
        except ValueError as e:
            raise ValueError(
                f"Unknown filter backend {backend!r}; expected one of: {', '.join(b.value for b in cls)}"
            ) from e


_COMPILERS = {
    FilterBackend.PGVECTOR: pgvector_where,
    FilterBackend.MONGODB: mongodb_where,
}


def get_where_compiler(backend: Union[FilterBackend, str]) -> BaseWhere:
    """Return the default where compiler for `backend`."""
    return _COMPILERS[FilterBackend.coerce(backend)]


def compile_filter(expression: Any, backend: Union[FilterBackend, str]) -> Any:
    """Compile a filter into `backend`'s native fragment.

    Args:
        expression: Expression tree, Q object, DSL text or None
        backend: "pgvector" (returns `SqlFilter`) or "mongodb" (returns dict)

    Raises:
        ParseError: If `expression` is malformed DSL text
    """
    return get_where_compiler(backend).to_where(expression)
