"""
Index and distance constants shared by the store adapters.
"""

from enum import Enum


class IndexType(str, Enum):
    """Approximate nearest-neighbour index built over the embedding column."""

    NONE = "none"
    IVFFLAT = "ivfflat"
    HNSW = "hnsw"


class DistanceType(str, Enum):
    """Distance metric used for similarity search.

    Each member knows its pgvector operator and operator class, the Atlas
    `similarity` name, and how a pgvector distance maps to a similarity score
    where larger is more similar.
    """

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    NEGATIVE_INNER_PRODUCT = "negative_inner_product"

    @property
    def operator(self) -> str:
        return _PG_OPERATORS[self]

    @property
    def index_ops(self) -> str:
        return _PG_INDEX_OPS[self]

    @property
    def atlas_similarity(self) -> str:
        return _ATLAS_SIMILARITY[self]

    def score(self, distance: float) -> float:
        """Convert a pgvector distance into a similarity score."""
        if self is DistanceType.COSINE:
            return 1.0 - distance
        if self is DistanceType.EUCLIDEAN:
            return 1.0 / (1.0 + distance)
        # `<#>` returns the negated inner product
        return -distance

    def max_distance(self, similarity_threshold: float) -> float:
        """Largest pgvector distance whose score still reaches `similarity_threshold`.

        Only meaningful for a threshold greater than zero.
        """
        if self is DistanceType.COSINE:
            return 1.0 - similarity_threshold
        if self is DistanceType.EUCLIDEAN:
            return 1.0 / similarity_threshold - 1.0
        return -similarity_threshold


_PG_OPERATORS = {
    DistanceType.COSINE: "<=>",
    DistanceType.EUCLIDEAN: "<->",
    DistanceType.NEGATIVE_INNER_PRODUCT: "<#>",
}

_PG_INDEX_OPS = {
    DistanceType.COSINE: "vector_cosine_ops",
    DistanceType.EUCLIDEAN: "vector_l2_ops",
    DistanceType.NEGATIVE_INNER_PRODUCT: "vector_ip_ops",
}

_ATLAS_SIMILARITY = {
    DistanceType.COSINE: "cosine",
    DistanceType.EUCLIDEAN: "euclidean",
    DistanceType.NEGATIVE_INNER_PRODUCT: "dotProduct",
}

# Keeps lookups working for settings values such as "dot_product"
DISTANCE_TYPE_ALIASES = {
    "cosine": DistanceType.COSINE,
    "euclidean": DistanceType.EUCLIDEAN,
    "l2": DistanceType.EUCLIDEAN,
    "negative_inner_product": DistanceType.NEGATIVE_INNER_PRODUCT,
    "inner_product": DistanceType.NEGATIVE_INNER_PRODUCT,
    "dot_product": DistanceType.NEGATIVE_INNER_PRODUCT,
}
