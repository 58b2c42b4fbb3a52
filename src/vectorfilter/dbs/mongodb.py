"""Concrete adapter for MongoDB Atlas Vector Search.

Documents are stored as:

    {"_id": id, "text": ..., "metadata": {...}, <path_name>: [floats]}

Key Features:
    - Lazy pymongo `MongoClient` from `MongoDBAtlasConfig`, or an injected one
    - Optional bootstrap of the collection and its `vectorSearch` index
    - Batched upserts through `bulk_write` of `ReplaceOne(upsert=True)`
    - `$vectorSearch` queries with compiled metadata filters
"""

from typing import Any, Dict, List, Optional, Sequence

from pymongo import MongoClient, ReplaceOne
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.operations import SearchIndexModel

from vectorfilter.abc import VectorDBAdapter
from vectorfilter.config import MongoDBAtlasConfig
from vectorfilter.exceptions import InvalidFieldError, MissingConfigError, SchemaValidationError
from vectorfilter.logger import Logger
from vectorfilter.querydsl.compilers.mongodb import MongoDBWhereCompiler, mongodb_where
from vectorfilter.schema import VectorDocument
from vectorfilter.utils import check_metadata, chunk_iter


class MongoDBAtlasAdapter(VectorDBAdapter):
    """Vector store backed by MongoDB Atlas.

    Only metadata keys listed in `metadata_fields_to_filter` are indexed as
    filter fields, so only those may appear in search filters. `delete_where`
    runs a regular query and accepts any key.

    Args:
        config: Store configuration (default: built from settings)
        client: Connected `MongoClient` to use instead of connecting lazily
        logger: Optional logger
    """

    _db: Optional[Database] = None
    where_compiler: MongoDBWhereCompiler = mongodb_where

    def __init__(
        self,
        config: Optional[MongoDBAtlasConfig] = None,
        client: Optional[MongoClient] = None,
        logger: Optional[Logger] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(client=client, logger=logger, **kwargs)
        self.config = config or MongoDBAtlasConfig.from_settings()
        self._schema_ready = False

    @property
    def client(self) -> MongoClient:
        """Lazily create and return the MongoClient.

        Raises:
            MissingConfigError: If no connection URI is configured
        """
        if self._client is None:
            if not self.config.uri:
                raise MissingConfigError(
                    "MONGODB_URI is not set. Please configure it in your .env file.",
                    config_key="MONGODB_URI",
                    env_file=".env",
                )
            self._client = MongoClient(self.config.uri)
            self.logger.message("MongoDB client initialized.")
        return self._client

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = self.client[self.config.database_name]
        return self._db

    @property
    def collection(self) -> Optional[Collection]:
        return self._collection

    @collection.setter
    def collection(self, value: Optional[Collection]) -> None:
        self._collection = value

    def get_native_client(self) -> MongoClient:
        return self.client

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------

    def initialize(self, dim: Optional[int] = None) -> None:
        """Bootstrap and/or validate the collection and search index.

        Raises:
            DimensionMismatchError: If `dim` differs from the configured dimension
            SchemaValidationError: If validation is enabled and the collection
                or the search index is missing
        """
        dim = self._resolve_dimensions(self.config.dimensions, dim)
        if self.config.initialize_schema and not self._schema_ready:
            self._bootstrap(dim)
        if self.config.schema_validation:
            self._validate_schema()
        self.dim = dim
        self.collection = self.db[self.config.collection_name]
        self.logger.message(
            "MongoDB Atlas initialized: collection=%s.%s dimension=%d index=%s",
            self.config.database_name,
            self.config.collection_name,
            dim,
            self.config.vector_index_name,
        )

    def index_definition(self, dim: int) -> Dict[str, Any]:
        """Return the `vectorSearch` index definition for this configuration."""
        fields: List[Dict[str, Any]] = [
            {
                "type": "vector",
                "path": self.config.path_name,
                "numDimensions": dim,
                "similarity": self.config.distance_type.atlas_similarity,
            }
        ]
        fields.extend({"type": "filter", "path": f"metadata.{name}"} for name in self.config.metadata_fields_to_filter)
        return {"fields": fields}

    def _index_names(self, collection: Collection) -> List[str]:
        return [index["name"] for index in collection.list_search_indexes()]

    def _bootstrap(self, dim: int) -> None:
        name = self.config.collection_name
        if name not in self.db.list_collection_names():
            self.db.create_collection(name)
            self.logger.message("MongoDB collection '%s' created.", name)
        collection = self.db[name]
        if self.config.vector_index_name not in self._index_names(collection):
            model = SearchIndexModel(
                definition=self.index_definition(dim),
                name=self.config.vector_index_name,
                type="vectorSearch",
            )
            collection.create_search_index(model=model)
            self.logger.message("Vector search index '%s' created on '%s'.", self.config.vector_index_name, name)
        self._schema_ready = True

    def _validate_schema(self) -> None:
        name = self.config.collection_name
        if name not in self.db.list_collection_names():
            raise SchemaValidationError(
                "Collection not found", database_name=self.config.database_name, collection_name=name
            )
        if self.config.vector_index_name not in self._index_names(self.db[name]):
            raise SchemaValidationError(
                "Vector search index not found", collection_name=name, index_name=self.config.vector_index_name
            )

    # ------------------------------------------------------------------
    # Data operations
    # ------------------------------------------------------------------

    def _to_document(self, doc: VectorDocument) -> Dict[str, Any]:
        return {
            "_id": doc.pk,
            "text": doc.text,
            "metadata": doc.metadata,
            self.config.path_name: doc.vector,
        }

    def upsert(self, docs: List[VectorDocument], batch_size: Optional[int] = None) -> List[VectorDocument]:
        """Replace-or-insert documents by id in unordered bulk writes.

        Raises:
            CollectionNotInitializedError: If `initialize()` has not run
            InvalidFieldError: If a document has no vector
        """
        self._require_collection("upsert")
        if not docs:
            return []
        limit = self.config.max_document_batch_size
        size = min(batch_size, limit) if batch_size and batch_size > 0 else limit

        requests = []
        for doc in docs:
            if not doc.vector:
                raise InvalidFieldError("Vector is required", field="vector", operation="upsert", id=doc.id)
            check_metadata(doc.metadata, doc.id)
            requests.append(ReplaceOne({"_id": doc.pk}, self._to_document(doc), upsert=True))
        for batch in chunk_iter(requests, size):
            self.collection.bulk_write(list(batch), ordered=False)
        self.logger.message("Upserted %d documents.", len(requests))
        return docs

    def delete(self, ids: Sequence[str]) -> int:
        self._require_collection("delete")
        if not ids:
            return 0
        deleted = self.collection.delete_many({"_id": {"$in": list(ids)}}).deleted_count
        self.logger.message("Deleted %d documents.", deleted)
        return deleted

    def delete_where(self, where: Any) -> int:
        """Delete every document matching `where`; an empty filter deletes all documents."""
        self._require_collection("delete_where")
        deleted = self.collection.delete_many(self.where_compiler.to_where(where)).deleted_count
        self.logger.message("Deleted %d documents.", deleted)
        return deleted

    def count(self) -> int:
        self._require_collection("count")
        return self.collection.count_documents({})

    def search(
        self,
        vector: List[float],
        top_k: int,
        where: Any = None,
        similarity_threshold: float = 0.0,
    ) -> List[VectorDocument]:
        """Run a `$vectorSearch` aggregation and return documents with scores.

        Raises:
            CollectionNotInitializedError: If `initialize()` has not run
            ParseError: If `where` is malformed filter text
        """
        self._require_collection("search")
        stage: Dict[str, Any] = {
            "index": self.config.vector_index_name,
            "path": self.config.path_name,
            "queryVector": list(vector),
            "numCandidates": top_k * self.config.num_candidates_multiplier,
            "limit": top_k,
        }
        where_filter = self.where_compiler.to_where(where)
        if where_filter:
            stage["filter"] = where_filter
        self.logger.debug("Search filter: %s", where_filter)

        pipeline: List[Dict[str, Any]] = [
            {"$vectorSearch": stage},
            {"$project": {"_id": 1, "text": 1, "metadata": 1, "score": {"$meta": "vectorSearchScore"}}},
        ]
        if similarity_threshold > 0:
            pipeline.append({"$match": {"score": {"$gte": similarity_threshold}}})

        results = [
            VectorDocument(
                id=str(row["_id"]),
                text=row.get("text"),
                metadata=row.get("metadata") or {},
                score=row.get("score"),
            )
            for row in self.collection.aggregate(pipeline)
        ]
        self.logger.message("Search returned %d results.", len(results))
        return results
