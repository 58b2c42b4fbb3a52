"""Type aliases for the vectorfilter package."""

from typing import Any, Dict, Union

from .querydsl.expression import Expression
from .querydsl.q import Q
from .schema import VectorDocument

# Document input types - flexible input for add/upsert operations
Doc = Union[VectorDocument, Dict[str, Any], str]

# Anything accepted where a metadata filter is expected
Where = Union[Expression, Q, str, None]
