"""Immutable store configuration.

Each store is configured by a frozen, validated model built once when the
store is created, either directly or from the environment through
`from_settings()`:

    >>> config = PgVectorConfig(table_name="articles", dimensions=1536)
    >>> config = MongoDBAtlasConfig.from_settings(collection_name="articles")
"""

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import DISTANCE_TYPE_ALIASES, DistanceType, IndexType
from .exceptions import InvalidConfigError
from .settings import settings as api_settings


def _coerce_distance_type(value: Any) -> Any:
    if isinstance(value, str) and not isinstance(value, DistanceType):
        key = value.strip().lower()
        if key not in DISTANCE_TYPE_ALIASES:
            raise ValueError(f"Unknown distance type {value!r}; expected one of: {', '.join(sorted(DISTANCE_TYPE_ALIASES))}")
        return DISTANCE_TYPE_ALIASES[key]
    return value


def _build(cls, values: Dict[str, Any]):
    try:
        return cls(**values)
    except ValidationError as e:
        raise InvalidConfigError(f"Invalid {cls.__name__}", errors=e.errors(include_url=False)) from e


class PgVectorConfig(BaseModel):
    """Configuration of the PostgreSQL / pgvector store.

    Attributes:
        dimensions: Embedding column dimension; None takes it from the embedding adapter
        index_type: Approximate index built over the embedding column
        distance_type: Metric used for similarity search and the index operator class
        initialize_schema: Create extension, schema, table and index when missing
        schema_validation: Check identifiers and the existing schema at initialisation
        remove_existing_table: Drop the table before bootstrapping (destructive)
        max_document_batch_size: Upper bound on rows sent per upsert batch
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 5432
    dbname: str = "vector_db"
    user: str = "postgres"
    password: str = "postgres"
    schema_name: str = "public"
    table_name: str = "vector_store"
    dimensions: Optional[int] = Field(None, gt=0)
    index_type: IndexType = IndexType.HNSW
    distance_type: DistanceType = DistanceType.COSINE
    initialize_schema: bool = False
    schema_validation: bool = False
    remove_existing_table: bool = False
    max_document_batch_size: int = Field(10_000, gt=0)

    @field_validator("schema_name", "table_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        if "%" in value:
            # would be read as a psycopg2 placeholder in every statement
            raise ValueError("must not contain '%'")
        return value

    @field_validator("index_type", mode="before")
    @classmethod
    def lower_index_type(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("distance_type", mode="before")
    @classmethod
    def resolve_distance_alias(cls, value: Any) -> Any:
        return _coerce_distance_type(value)

    @classmethod
    def from_settings(cls, **overrides: Any) -> "PgVectorConfig":
        """Build the configuration from `PGVECTOR_*` / `VECTOR_*` settings.

        Raises:
            InvalidConfigError: If a setting or override is invalid
        """
        values: Dict[str, Any] = {
            "host": api_settings.PGVECTOR_HOST,
            "port": api_settings.PGVECTOR_PORT,
            "dbname": api_settings.PGVECTOR_DBNAME,
            "user": api_settings.PGVECTOR_USER,
            "password": api_settings.PGVECTOR_PASSWORD,
            "schema_name": api_settings.PGVECTOR_SCHEMA_NAME,
            "table_name": api_settings.PGVECTOR_TABLE_NAME,
            "dimensions": api_settings.VECTOR_DIM,
            "index_type": api_settings.PGVECTOR_INDEX_TYPE,
            "distance_type": api_settings.VECTOR_DISTANCE_TYPE,
            "initialize_schema": api_settings.PGVECTOR_INITIALIZE_SCHEMA,
            "schema_validation": api_settings.PGVECTOR_SCHEMA_VALIDATION,
            "remove_existing_table": api_settings.PGVECTOR_REMOVE_EXISTING_TABLE,
            "max_document_batch_size": api_settings.VECTOR_MAX_BATCH_SIZE,
        }
        values.update(overrides)
        return _build(cls, values)


class MongoDBAtlasConfig(BaseModel):
    """Configuration of the MongoDB Atlas store.

    Attributes:
        path_name: Document field holding the embedding
        metadata_fields_to_filter: Metadata keys declared as `filter` fields of
            the search index; only these can appear in search filters
        num_candidates_multiplier: `numCandidates` is `top_k` times this value
    """

    model_config = ConfigDict(frozen=True)

    uri: Optional[str] = None
    database_name: str = "vector_db"
    collection_name: str = "vector_store"
    vector_index_name: str = "vector_index"
    path_name: str = "embedding"
    metadata_fields_to_filter: Tuple[str, ...] = ()
    distance_type: DistanceType = DistanceType.COSINE
    dimensions: Optional[int] = Field(None, gt=0)
    initialize_schema: bool = False
    schema_validation: bool = False
    num_candidates_multiplier: int = Field(10, gt=0)
    max_document_batch_size: int = Field(10_000, gt=0)

    @field_validator("database_name", "collection_name", "vector_index_name", "path_name")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("distance_type", mode="before")
    @classmethod
    def resolve_distance_alias(cls, value: Any) -> Any:
        return _coerce_distance_type(value)

    @classmethod
    def from_settings(cls, **overrides: Any) -> "MongoDBAtlasConfig":
        """Build the configuration from `MONGODB_*` / `VECTOR_*` settings.

        Raises:
            InvalidConfigError: If a setting or override is invalid
        """
        values: Dict[str, Any] = {
            "uri": api_settings.MONGODB_URI,
            "database_name": api_settings.MONGODB_DATABASE,
            "collection_name": api_settings.MONGODB_COLLECTION_NAME,
            "vector_index_name": api_settings.MONGODB_VECTOR_INDEX_NAME,
            "path_name": api_settings.MONGODB_PATH_NAME,
            "metadata_fields_to_filter": tuple(api_settings.MONGODB_METADATA_FIELDS_TO_FILTER),
            "distance_type": api_settings.VECTOR_DISTANCE_TYPE,
            "dimensions": api_settings.VECTOR_DIM,
            "initialize_schema": api_settings.MONGODB_INITIALIZE_SCHEMA,
            "schema_validation": api_settings.MONGODB_SCHEMA_VALIDATION,
            "num_candidates_multiplier": api_settings.MONGODB_NUM_CANDIDATES_MULTIPLIER,
            "max_document_batch_size": api_settings.VECTOR_MAX_BATCH_SIZE,
        }
        values.update(overrides)
        return _build(cls, values)
