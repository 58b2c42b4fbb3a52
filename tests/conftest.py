"""Pytest configuration and fixtures for vectorfilter tests."""

import math
from typing import Any, Dict, List, Optional, Sequence

import pytest
from dotenv import load_dotenv

from vectorfilter.abc import EmbeddingAdapter, VectorDBAdapter
from vectorfilter.engine import VectorEngine
from vectorfilter.logger import Logger
from vectorfilter.querydsl.compilers.utils import normalize_where_input
from vectorfilter.querydsl.expression import evaluate
from vectorfilter.schema import VectorDocument
from vectorfilter.utils import check_metadata

# Load environment variables
load_dotenv()


# In-memory adapter that filters with `evaluate`
class InMemoryAdapter(VectorDBAdapter):
    """Simple in-memory store to test the engine without external backends."""

    def __init__(self, dimensions: Optional[int] = None, logger: Optional[Logger] = None) -> None:
        super().__init__(logger=logger)
        self.dimensions = dimensions
        self._docs: Dict[str, VectorDocument] = {}
        self.searches: List[Dict[str, Any]] = []

    def initialize(self, dim: Optional[int] = None) -> None:
        self.dim = self._resolve_dimensions(self.dimensions, dim)
        self.collection = self._docs

    def upsert(self, docs: List[VectorDocument], batch_size: Optional[int] = None) -> List[VectorDocument]:
        self._require_collection("upsert")
        for d in docs:
            check_metadata(d.metadata, d.id)
        for d in docs:
            self._docs[d.pk] = d
        return docs

    def delete(self, ids: Sequence[str]) -> int:
        count = 0
        for _id in ids:
            if _id in self._docs:
                del self._docs[_id]
                count += 1
        return count

    def delete_where(self, where: Any) -> int:
        expression = normalize_where_input(where)
        doomed = [pk for pk, d in self._docs.items() if evaluate(expression, d.metadata)]
        return self.delete(doomed)

    def count(self) -> int:
        return len(self._docs)

    def search(
        self,
        vector: List[float],
        top_k: int,
        where: Any = None,
        similarity_threshold: float = 0.0,
    ) -> List[VectorDocument]:
        self._require_collection("search")
        self.searches.append({"vector": vector, "top_k": top_k, "where": where})
        expression = normalize_where_input(where)

        def cosine(a: List[float], b: List[float]) -> float:
            dot = sum(x * y for x, y in zip(a, b))
            na = math.sqrt(sum(x * x for x in a))
            nb = math.sqrt(sum(y * y for y in b))
            if na == 0 or nb == 0:
                return 0.0
            return dot / (na * nb)

        scored = []
        for d in self._docs.values():
            if not evaluate(expression, d.metadata):
                continue
            score = cosine(vector, d.vector)
            if score >= similarity_threshold:
                scored.append(d.model_copy(update={"score": score}))
        scored.sort(key=lambda d: d.score, reverse=True)
        return scored[:top_k]


class FixedEmbedding(EmbeddingAdapter):
    """Deterministic 4-dimensional embedding for testing without external API calls."""

    def __init__(self) -> None:
        super().__init__(model_name="fixed", dim=4)
        self.calls: List[List[str]] = []

    def get_embeddings(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        out: List[List[float]] = []
        for t in texts:
            codes = [ord(c) for c in t] or [0]
            out.append([float(len(t)), float(sum(codes) % 97), float(max(codes)), 1.0])
        return out


@pytest.fixture
def embedding():
    return FixedEmbedding()


@pytest.fixture
def adapter():
    return InMemoryAdapter()


@pytest.fixture
def engine(adapter, embedding):
    """VectorEngine seeded with five documents."""
    engine = VectorEngine(db=adapter, embedding=embedding)
    engine.upsert(
        [
            VectorDocument(
                id="doc1",
                text="AI in 2024",
                vector=[0.1, 0.2, 0.3, 0.4],
                metadata={"author": "john", "article_type": "blog", "year": 2024},
            ),
            VectorDocument(
                id="doc2",
                text="Cooking tips",
                vector=[0.0, 0.1, 0.0, 0.2],
                metadata={"author": "jill", "article_type": "blog", "year": 2023},
            ),
            VectorDocument(
                id="doc3",
                text="Travel guide",
                vector=[0.2, 0.0, 0.1, 0.0],
                metadata={"author": "jack", "article_type": "news", "year": 2022},
            ),
            VectorDocument(
                id="doc4",
                text="Tech gadgets",
                vector=[0.3, 0.2, 0.1, 0.0],
                metadata={"author": "john", "article_type": "news", "year": "2024"},
            ),
            VectorDocument(
                id="doc5",
                text="Healthy recipes",
                vector=[0.05, 0.05, 0.05, 0.05],
                metadata={"article_type": "blog", "featured": True},
            ),
        ]
    )
    return engine
