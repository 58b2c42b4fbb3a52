"""
Main engine for orchestrating vector store operations.

This module provides the `VectorEngine`, a high-level class that pairs an
embedding adapter with a vector store adapter. It embeds documents that come
without vectors, checks vector dimensions, and turns filter input (DSL text,
expression trees or `Q` objects) into expressions before any query is issued.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from .abc import EmbeddingAdapter, VectorDBAdapter
from .exceptions import DimensionMismatchError, InvalidFieldError
from .logger import Logger
from .querydsl.compilers.utils import normalize_where_input
from .schema import SearchRequest, VectorDocument
from .types import Doc, Where
from .utils import check_metadata


class VectorEngine:
    """High-level orchestrator for vector store operations with automatic embedding.

    Key Features:
        - Flexible input: accepts str, dict, or VectorDocument
        - Automatic embedding generation in one batched call per operation
        - Dimension checks against the store before anything is written
        - Metadata filters as DSL text, expressions or Q objects

    Attributes:
        db: Database adapter instance
        embedding: Embedding adapter instance
    """

    def __init__(self, db: VectorDBAdapter, embedding: EmbeddingAdapter, initialize: bool = True) -> None:
        """Initialize VectorEngine with database and embedding adapters.

        Args:
            db: Database adapter implementing VectorDBAdapter interface
            embedding: Embedding adapter implementing EmbeddingAdapter interface
            initialize: Run `db.initialize()` with the embedding dimension

        Raises:
            DimensionMismatchError: If the store is configured for another dimension
            SchemaValidationError: If schema validation is enabled and fails
        """
        self._db = db
        self._embedding = embedding
        self.logger = Logger(self.__class__.__name__)
        if initialize:
            self._db.initialize(dim=self._embedding.dim)
        self.logger.message(
            "VectorEngine initialized: db=%s embedding=%s",
            db.__class__.__name__,
            embedding.__class__.__name__,
        )

    @property
    def db(self) -> VectorDBAdapter:
        """Access the database adapter instance."""
        return self._db

    @property
    def embedding(self) -> EmbeddingAdapter:
        """Access the embedding adapter instance."""
        return self._embedding

    @property
    def dim(self) -> Optional[int]:
        """Vector dimension the store was initialized with."""
        return self._db.dim if self._db.dim is not None else self._embedding.dim

    # ------------------------------------------------------------------
    # Internal normalization helpers
    # ------------------------------------------------------------------
    def _doc_rebuild(
        self,
        doc: Optional[Doc] = None,
        *,
        text: Optional[str] = None,
        vector: Optional[List[float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> VectorDocument:
        """Normalize flexible document inputs into a VectorDocument.

        Does not generate embeddings - that's left to the caller.
        """
        if isinstance(doc, VectorDocument):
            return doc
        base: Dict[str, Any] = {}
        if isinstance(doc, dict):
            base.update(doc)
        elif isinstance(doc, str):
            base["text"] = doc
        if text is not None:
            base["text"] = text
        if vector is not None:
            base["vector"] = vector
        if metadata is not None:
            base["metadata"] = metadata
        return VectorDocument.from_any(base, **kwargs)

    def _check_dimension(self, vector: Sequence[float], doc_id: Optional[str] = None) -> None:
        expected = self.dim
        if expected is not None and len(vector) != expected:
            raise DimensionMismatchError(
                "Embedding dimension mismatch",
                expected=expected,
                actual=len(vector),
                id=doc_id,
            )

    def _doc_prepare_many(self, docs: Sequence[Doc]) -> List[VectorDocument]:
        """Normalize docs, batch-generate missing embeddings and check dimensions.

        Documents without text or vector are logged and skipped; array-valued
        metadata is rejected before anything is embedded.
        """
        normalized: List[VectorDocument] = []
        to_embed_indices: List[int] = []
        texts_to_embed: List[str] = []
        for item in docs:
            doc_obj = self._doc_rebuild(item)
            if (not doc_obj.vector) and (not doc_obj.text):
                self.logger.warning("Skipping doc without text/vector id=%s", doc_obj.id)
                continue
            check_metadata(doc_obj.metadata, doc_obj.id)
            if not doc_obj.vector:
                to_embed_indices.append(len(normalized))
                texts_to_embed.append(doc_obj.text)
            normalized.append(doc_obj)
        if texts_to_embed:
            embeddings = self.embedding.get_embeddings(texts_to_embed)
            for local_idx, emb in zip(to_embed_indices, embeddings):
                normalized[local_idx].vector = emb
        for doc_obj in normalized:
            self._check_dimension(doc_obj.vector, doc_obj.id)
        return normalized

    def _embed_query(self, query: Union[str, Sequence[float]]) -> List[float]:
        if isinstance(query, str):
            vector = self.embedding.embed(query)
        else:
            vector = list(query)
        self._check_dimension(vector)
        return vector

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------
    def add(
        self,
        doc: Optional[Doc] = None,
        *,
        text: Optional[str] = None,
        vector: Optional[List[float]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> VectorDocument:
        """Add (or replace) one document, embedding its text when no vector is given.

        Raises:
            InvalidFieldError: If neither text nor vector is provided
            DimensionMismatchError: If the vector length differs from the store dimension

        Examples:
            >>> engine.add("Hello world", lang="en")
            >>> engine.add(text="Hello", metadata={"author": "john"})
        """
        doc = self._doc_rebuild(doc, text=text, vector=vector, metadata=metadata, **kwargs)
        if not doc.vector and not doc.text:
            raise InvalidFieldError("Document requires vector or text", field="vector", operation="add")
        prepared = self._doc_prepare_many([doc])
        self.logger.message("Add pk=%s", doc.id)
        return self.db.upsert(prepared)[0]

    def upsert(self, docs: Sequence[Doc], batch_size: Optional[int] = None) -> List[VectorDocument]:
        """Insert or update multiple documents, embedding all missing vectors in one call.

        Examples:
            >>> engine.upsert([
            ...     {"id": "doc1", "text": "First", "author": "john"},
            ...     {"id": "doc2", "text": "Second", "author": "jill"},
            ... ])
        """
        prepared = self._doc_prepare_many(docs)
        self.logger.message("Upsert count=%d", len(prepared))
        if not prepared:
            return []
        return self.db.upsert(prepared, batch_size=batch_size)

    def delete(self, *ids: str) -> int:
        """Delete documents by primary key, returning how many were removed."""
        if not ids:
            return 0
        self.logger.message("Delete ids=%s", ids)
        return self.db.delete(list(ids))

    def delete_where(self, where: Where) -> int:
        """Delete documents whose metadata matches `where`.

        Raises:
            ParseError: If `where` is malformed filter text; nothing is deleted
        """
        expression = normalize_where_input(where)
        self.logger.message("Delete where=%s", where)
        return self.db.delete_where(expression)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def search(
        self,
        query: Union[str, List[float]],
        top_k: Optional[int] = None,
        similarity_threshold: float = 0.0,
        where: Where = None,
    ) -> List[VectorDocument]:
        """Search for documents similar to a text or vector query.

        Args:
            query: Text to embed, or a query vector
            top_k: Maximum number of results (default from settings)
            similarity_threshold: Minimum similarity score in [0, 1]
            where: Metadata filter as DSL text, expression tree, Q object or None

        Returns:
            Matching VectorDocuments with scores, most similar first

        Raises:
            InvalidFieldError: If `top_k` or `similarity_threshold` is out of range
            ParseError: If `where` is malformed filter text; no query is issued

        Examples:
            >>> engine.search("machine learning", top_k=5)
            >>> engine.search("AI trends", where="author in ['john', 'jill'] && year >= 2023")
            >>> engine.search("AI trends", where=Q(category="tech") & ~Q(status="draft"))
        """
        values: Dict[str, Any] = {"query": query, "similarity_threshold": similarity_threshold, "filter": where}
        if top_k is not None:
            values["top_k"] = top_k
        try:
            request = SearchRequest(**values)
        except ValidationError as e:
            raise InvalidFieldError("Invalid search request", errors=e.errors(include_url=False)) from e
        return self.similarity_search(request)

    def similarity_search(self, request: SearchRequest) -> List[VectorDocument]:
        """Run a prepared `SearchRequest`.

        The filter is parsed before the query is embedded or sent.
        """
        expression = normalize_where_input(request.filter)
        vector = self._embed_query(request.query)
        return self.db.search(
            vector,
            top_k=request.top_k,
            where=expression,
            similarity_threshold=request.similarity_threshold,
        )

    def count(self) -> int:
        """Count total documents in the store."""
        return self.db.count()

    def get_native_client(self) -> Optional[Any]:
        """Return the store's underlying driver handle, if it exposes one."""
        return self.db.get_native_client()
