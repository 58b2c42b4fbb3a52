"""
Portable metadata filters for vector stores.

Exposes the `VectorEngine`, the adapter base classes and the filter DSL
(`parse_filter`, the builder functions and `Q`).
"""

from .abc import EmbeddingAdapter, VectorDBAdapter
from .engine import VectorEngine
from .querydsl import Q, compile_filter, parse_filter
from .schema import SearchRequest, VectorDocument
from .types import Doc, Where

__version__ = "0.1.0"

__all__ = [
    "VectorEngine",
    "EmbeddingAdapter",
    "VectorDBAdapter",
    "VectorDocument",
    "SearchRequest",
    "Q",
    "compile_filter",
    "parse_filter",
    "Doc",
    "Where",
]
