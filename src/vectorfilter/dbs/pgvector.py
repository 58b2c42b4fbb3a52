"""Concrete adapter for PostgreSQL with the pgvector extension.

Documents live in one table:

    id TEXT PRIMARY KEY, content TEXT, metadata JSONB, embedding vector(dim)

Key Features:
    - Lazy psycopg2 connection from `PgVectorConfig`, or an injected one
    - Optional idempotent schema bootstrap (extension, schema, table, index)
    - Optional schema validation (identifiers, extension, table, columns, dimension)
    - Batched upserts with ``INSERT ... ON CONFLICT (id) DO UPDATE``
    - Similarity search with compiled metadata filters as bound parameters
"""

import json
from typing import Any, List, Optional, Sequence

import psycopg2
import psycopg2.extras

from vectorfilter.abc import VectorDBAdapter
from vectorfilter.config import PgVectorConfig
from vectorfilter.constants import IndexType
from vectorfilter.exceptions import InvalidFieldError, SchemaValidationError
from vectorfilter.logger import Logger
from vectorfilter.querydsl.compilers.pgvector import PgVectorWhereCompiler, pgvector_where
from vectorfilter.querydsl.compilers.utils import quote_identifier
from vectorfilter.schema import VectorDocument
from vectorfilter.utils import check_metadata, chunk_iter, is_safe_identifier, to_pgvector_literal

_REQUIRED_COLUMNS = ("id", "content", "metadata", "embedding")


class PgVectorAdapter(VectorDBAdapter):
    """Vector store backed by PostgreSQL and pgvector.

    Args:
        config: Store configuration (default: built from settings)
        client: Open psycopg2 connection to use instead of connecting lazily
        logger: Optional logger

    Attributes:
        config: Frozen store configuration
        dim: Embedding dimension, known after `initialize()`
    """

    _cursor: Any = None
    where_compiler: PgVectorWhereCompiler = pgvector_where

    def __init__(
        self,
        config: Optional[PgVectorConfig] = None,
        client: Any = None,
        logger: Optional[Logger] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(client=client, logger=logger, **kwargs)
        self.config = config or PgVectorConfig.from_settings()
        self._schema_ready = False

    @property
    def client(self) -> Any:
        """Lazily open and return the PostgreSQL connection.

        Raises:
            psycopg2.Error: If connection fails
        """
        if self._client is None:
            self._client = psycopg2.connect(
                dbname=self.config.dbname,
                user=self.config.user,
                password=self.config.password,
                host=self.config.host,
                port=self.config.port,
            )
            self.logger.message(
                "PostgreSQL connection established (host=%s db=%s).", self.config.host, self.config.dbname
            )
        return self._client

    @property
    def cursor(self) -> Any:
        """Lazily create and return a RealDictCursor."""
        if self._cursor is None:
            self._cursor = self.client.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
        return self._cursor

    @property
    def table(self) -> str:
        """Schema-qualified, quoted table name."""
        return f"{quote_identifier(self.config.schema_name)}.{quote_identifier(self.config.table_name)}"

    def get_native_client(self) -> Any:
        return self.client

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------

    def initialize(self, dim: Optional[int] = None) -> None:
        """Bootstrap and/or validate the schema according to the configuration.

        Identifier checks run before any SQL is sent; bootstrap happens at
        most once per adapter instance.

        Raises:
            DimensionMismatchError: If `dim` differs from the configured dimension
            SchemaValidationError: If validation is enabled and a check fails
        """
        dim = self._resolve_dimensions(self.config.dimensions, dim)
        if self.config.schema_validation:
            self._check_identifiers()
        if self.config.initialize_schema and not self._schema_ready:
            self._bootstrap(dim)
        if self.config.schema_validation:
            self._validate_schema(dim)
        self.dim = dim
        self.collection = self.table
        self.logger.message(
            "PGVector initialized: table=%s dimension=%d distance=%s index=%s",
            self.table,
            dim,
            self.config.distance_type.value,
            self.config.index_type.value,
        )

    def _check_identifiers(self) -> None:
        for key in ("schema_name", "table_name"):
            value = getattr(self.config, key)
            if not is_safe_identifier(value):
                raise SchemaValidationError("Unsafe SQL identifier", **{key: value})

    def _bootstrap(self, dim: int) -> None:
        statements = [
            "CREATE EXTENSION IF NOT EXISTS vector",
            f"CREATE SCHEMA IF NOT EXISTS {quote_identifier(self.config.schema_name)}",
        ]
        if self.config.remove_existing_table:
            statements.append(f"DROP TABLE IF EXISTS {self.table}")
        statements.append(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id TEXT PRIMARY KEY,
                content TEXT,
                metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                embedding vector({int(dim)})
            )
            """
        )
        if self.config.index_type is not IndexType.NONE:
            index_name = quote_identifier(f"{self.config.table_name}_embedding_idx")
            statements.append(
                f"CREATE INDEX IF NOT EXISTS {index_name} ON {self.table} "
                f"USING {self.config.index_type.value} (embedding {self.config.distance_type.index_ops})"
            )
        try:
            for sql in statements:
                self.cursor.execute(sql)
            self.client.commit()
        except Exception:
            self.client.rollback()
            raise
        self._schema_ready = True
        self.logger.message("PGVector schema ensured for table %s.", self.table)

    def _validate_schema(self, dim: int) -> None:
        schema_name, table_name = self.config.schema_name, self.config.table_name
        try:
            self.cursor.execute("SELECT 1 AS present FROM pg_extension WHERE extname = 'vector'")
            if self.cursor.fetchone() is None:
                raise SchemaValidationError("pgvector extension is not installed", extension="vector")

            self.cursor.execute(
                """
                SELECT column_name FROM information_schema.columns
                WHERE table_schema = %s AND table_name = %s
                """,
                (schema_name, table_name),
            )
            columns = {row["column_name"] for row in self.cursor.fetchall()}
            if not columns:
                raise SchemaValidationError("Table not found", schema_name=schema_name, table_name=table_name)
            missing = [c for c in _REQUIRED_COLUMNS if c not in columns]
            if missing:
                raise SchemaValidationError("Table is missing required columns", table_name=table_name, missing=missing)

            self.cursor.execute(
                "SELECT atttypmod AS dimensions FROM pg_attribute WHERE attrelid = %s::regclass AND attname = 'embedding'",
                (self.table,),
            )
            row = self.cursor.fetchone()
        finally:
            # read-only checks; leave no transaction open
            self.client.rollback()
        actual = row["dimensions"] if row else None
        if actual is not None and actual > 0 and actual != dim:
            raise SchemaValidationError(
                "Embedding column dimension mismatch", table_name=table_name, expected=dim, actual=actual
            )

    # ------------------------------------------------------------------
    # Data operations
    # ------------------------------------------------------------------

    def upsert(self, docs: List[VectorDocument], batch_size: Optional[int] = None) -> List[VectorDocument]:
        """Insert or update documents by id.

        Rows are sent in pages of at most `max_document_batch_size`; the whole
        call commits once or rolls back.

        Raises:
            CollectionNotInitializedError: If `initialize()` has not run
            InvalidFieldError: If a document has no vector
        """
        self._require_collection("upsert")
        if not docs:
            return []
        limit = self.config.max_document_batch_size
        size = min(batch_size, limit) if batch_size and batch_size > 0 else limit

        rows = []
        for doc in docs:
            if not doc.vector:
                raise InvalidFieldError("Vector is required", field="vector", operation="upsert", id=doc.id)
            check_metadata(doc.metadata, doc.id)
            rows.append((doc.pk, doc.text, json.dumps(doc.metadata), to_pgvector_literal(doc.vector)))

        sql = f"""
        INSERT INTO {self.table} (id, content, metadata, embedding)
        VALUES (%s, %s, %s::jsonb, %s::vector)
        ON CONFLICT (id) DO UPDATE
        SET content = EXCLUDED.content,
            metadata = EXCLUDED.metadata,
            embedding = EXCLUDED.embedding
        """
        try:
            for batch in chunk_iter(rows, size):
                psycopg2.extras.execute_batch(self.cursor, sql, batch, page_size=size)
            self.client.commit()
        except Exception:
            self.client.rollback()
            raise
        self.logger.message("Upserted %d documents into %s.", len(rows), self.table)
        return docs

    def delete(self, ids: Sequence[str]) -> int:
        self._require_collection("delete")
        if not ids:
            return 0
        return self._execute_delete(f"DELETE FROM {self.table} WHERE id = ANY(%s)", (list(ids),))

    def delete_where(self, where: Any) -> int:
        """Delete every document matching `where`; an empty filter deletes all rows."""
        self._require_collection("delete_where")
        sql_filter = self.where_compiler.to_where(where)
        self.logger.debug("Delete filter: %s", sql_filter.as_string())
        return self._execute_delete(f"DELETE FROM {self.table} WHERE {sql_filter.sql}", sql_filter.params)

    def _execute_delete(self, sql: str, params: Sequence[Any]) -> int:
        try:
            self.cursor.execute(sql, tuple(params))
            deleted = self.cursor.rowcount
            self.client.commit()
        except Exception:
            self.client.rollback()
            raise
        self.logger.message("Deleted %d documents from %s.", deleted, self.table)
        return deleted

    def count(self) -> int:
        self._require_collection("count")
        self.cursor.execute(f"SELECT COUNT(*) AS count FROM {self.table}")
        return self.cursor.fetchone()["count"]

    def search(
        self,
        vector: List[float],
        top_k: int,
        where: Any = None,
        similarity_threshold: float = 0.0,
    ) -> List[VectorDocument]:
        """Return the `top_k` nearest documents under the configured distance.

        The filter compiles to a parameterised predicate; a positive
        `similarity_threshold` becomes a distance bound in the same query.

        Raises:
            CollectionNotInitializedError: If `initialize()` has not run
            ParseError: If `where` is malformed filter text
        """
        self._require_collection("search")
        distance_type = self.config.distance_type
        sql_filter = self.where_compiler.to_where(where)
        self.logger.debug("Search filter: %s", sql_filter.as_string())

        query_vector = to_pgvector_literal(vector)
        params: List[Any] = [query_vector, *sql_filter.params]
        conditions = [sql_filter.sql]
        if similarity_threshold > 0:
            conditions.append(f"embedding {distance_type.operator} %s::vector <= %s")
            params.extend([query_vector, distance_type.max_distance(similarity_threshold)])
        params.append(top_k)

        sql = (
            f"SELECT id, content, metadata, embedding {distance_type.operator} %s::vector AS distance "
            f"FROM {self.table} WHERE {' AND '.join(conditions)} "
            f"ORDER BY distance LIMIT %s"
        )
        try:
            self.cursor.execute(sql, tuple(params))
            rows = self.cursor.fetchall()
        except Exception:
            # aborted transaction must not poison later statements
            self.client.rollback()
            raise

        results = [
            VectorDocument(
                id=row["id"],
                text=row["content"],
                metadata=row["metadata"] or {},
                score=distance_type.score(float(row["distance"])),
            )
            for row in rows
        ]
        self.logger.message("Search returned %d results.", len(results))
        return results
