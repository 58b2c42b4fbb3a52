"""Settings for vectorfilter stores, read from the environment and `.env`."""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class VectorFilterSettings(BaseSettings):
    """vectorfilter configuration settings."""

    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"

    # PGVector
    PGVECTOR_HOST: str = "localhost"
    PGVECTOR_PORT: str = "5432"
    PGVECTOR_DBNAME: str = "vector_db"
    PGVECTOR_USER: str = "postgres"
    PGVECTOR_PASSWORD: str = "postgres"
    PGVECTOR_SCHEMA_NAME: str = "public"
    PGVECTOR_TABLE_NAME: str = "vector_store"
    PGVECTOR_INDEX_TYPE: str = "hnsw"  # choices: none, ivfflat, hnsw
    PGVECTOR_INITIALIZE_SCHEMA: bool = False
    PGVECTOR_SCHEMA_VALIDATION: bool = False
    PGVECTOR_REMOVE_EXISTING_TABLE: bool = False

    # MongoDB Atlas
    MONGODB_URI: Optional[str] = None
    MONGODB_DATABASE: str = "vector_db"
    MONGODB_COLLECTION_NAME: str = "vector_store"
    MONGODB_VECTOR_INDEX_NAME: str = "vector_index"
    MONGODB_PATH_NAME: str = "embedding"
    MONGODB_METADATA_FIELDS_TO_FILTER: List[str] = []
    MONGODB_INITIALIZE_SCHEMA: bool = False
    MONGODB_SCHEMA_VALIDATION: bool = False
    MONGODB_NUM_CANDIDATES_MULTIPLIER: int = 10

    # Vector settings
    VECTOR_DISTANCE_TYPE: str = "cosine"  # choices: cosine, euclidean, negative_inner_product
    VECTOR_DIM: Optional[int] = None
    VECTOR_TOP_K: int = 4
    VECTOR_MAX_BATCH_SIZE: int = 10_000
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = VectorFilterSettings()
