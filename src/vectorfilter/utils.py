"""Utility functions for vectorfilter.

Shared helpers used by the engine and the store adapters.
"""

import re
import uuid
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence

from .exceptions import InvalidFieldError

# Unquoted PostgreSQL identifier: letter or underscore first, at most 63 bytes
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def chunk_iter(seq: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield successive chunks from a sequence."""
    if size <= 0:
        yield seq
        return
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


def extract_pk(data: Dict[str, Any]) -> Optional[str]:
    """Extract primary key from a dict supporting _id, id, or pk fields."""
    pk = data.get("_id") or data.get("id") or data.get("pk")
    return str(pk) if pk is not None else None


def generate_pk() -> str:
    return uuid.uuid4().hex


def is_safe_identifier(name: str) -> bool:
    """Whether `name` is a plain SQL identifier (no quoting or escaping needed)."""
    return isinstance(name, str) and bool(_IDENTIFIER_RE.match(name))


def to_pgvector_literal(vector: Sequence[float]) -> str:
    """Format a vector as pgvector's text input, e.g. ``[0.1,0.2,0.3]``."""
    return "[" + ",".join(repr(float(x)) for x in vector) + "]"


def check_metadata(metadata: Mapping[str, Any], doc_id: Optional[str] = None, prefix: str = "") -> None:
    """Reject array values anywhere in a metadata mapping.

    Stored metadata holds scalars and nested mappings only.

    Raises:
        InvalidFieldError: If a value, at any nesting level, is a list, tuple or set
    """
    for key, value in metadata.items():
        path = f"{prefix}{key}"
        if isinstance(value, (list, tuple, set, frozenset)):
            raise InvalidFieldError("Metadata values cannot be arrays", field=f"metadata.{path}", id=doc_id)
        if isinstance(value, Mapping):
            check_metadata(value, doc_id, prefix=f"{path}.")
