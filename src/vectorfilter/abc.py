"""Abstract base classes for embedding providers and vector stores."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from .exceptions import CollectionNotInitializedError, DimensionMismatchError, MissingConfigError
from .logger import Logger, get_logger
from .querydsl.compilers.base import BaseWhere
from .schema import VectorDocument
from .settings import settings


class EmbeddingAdapter(ABC):
    """Abstract base class for embedding providers.

    Args:
        model_name: Provider model identifier
        dim: Length of the produced vectors (default: VECTOR_DIM setting)
        logger: Logger to use; one named after the class is created otherwise
    """

    def __init__(self, model_name: str, dim: Optional[int] = None, logger: Optional[Logger] = None, **kwargs: Any):
        self.model_name = model_name
        self._dim = dim if dim is not None else settings.VECTOR_DIM
        self._logger = logger if isinstance(logger, Logger) else get_logger(self.__class__.__name__)

    @property
    def logger(self) -> Logger:
        return self._logger

    @property
    def dim(self) -> Optional[int]:
        return self._dim

    @abstractmethod
    def get_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Embed `texts` in one call, returning one vector per text in order."""
        raise NotImplementedError

    def embed(self, text: str) -> List[float]:
        return self.get_embeddings([text])[0]


class VectorDBAdapter(ABC):
    """Abstract base class for vector stores.

    A store owns its driver handle, translates filters with its
    `where_compiler` and delegates similarity search to the database.
    Subclasses must call `initialize()` before any data operation.

    Args:
        client: Already-connected driver handle; opened lazily from
            configuration when omitted
        logger: Logger to use; one named after the class is created otherwise
    """

    # Compiler translating filter expressions into this store's native form
    where_compiler: Optional[BaseWhere] = None

    def __init__(self, client: Any = None, logger: Optional[Logger] = None, **kwargs: Any):
        self._client = client
        self._collection: Any = None
        self.dim: Optional[int] = None
        self._logger = logger if isinstance(logger, Logger) else get_logger(self.__class__.__name__)

    @property
    def logger(self) -> Logger:
        return self._logger

    @property
    def collection(self) -> Any:
        """Active table name or collection handle; None before `initialize()`."""
        return self._collection

    @collection.setter
    def collection(self, value: Any) -> None:
        self._collection = value

    def _require_collection(self, operation: str) -> None:
        if self._collection is None:
            raise CollectionNotInitializedError(
                "Store is not initialized; call initialize() first",
                operation=operation,
                adapter=self.__class__.__name__,
            )

    def _resolve_dimensions(self, configured: Optional[int], dim: Optional[int]) -> int:
        """Reconcile the configured dimension with the embedding adapter's one."""
        if configured is not None and dim is not None and configured != dim:
            raise DimensionMismatchError(
                "Configured dimension differs from the embedding dimension",
                expected=configured,
                actual=dim,
            )
        resolved = configured if configured is not None else dim
        if resolved is None:
            raise MissingConfigError("Vector dimension is not set", config_key="VECTOR_DIM")
        return resolved

    @abstractmethod
    def initialize(self, dim: Optional[int] = None) -> None:
        """Prepare the store: bootstrap and/or validate the schema when configured.

        Args:
            dim: Dimension of the embedding adapter's vectors

        Raises:
            DimensionMismatchError: If `dim` differs from the configured dimension
            SchemaValidationError: If validation is enabled and the schema is unsafe or missing
        """
        raise NotImplementedError

    @abstractmethod
    def upsert(self, docs: List[VectorDocument], batch_size: Optional[int] = None) -> List[VectorDocument]:
        """Insert or replace documents by id, in batches."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> int:
        """Delete documents by id, returning the number removed."""
        raise NotImplementedError

    @abstractmethod
    def delete_where(self, where: Any) -> int:
        """Delete documents whose metadata matches `where`, returning the number removed."""
        raise NotImplementedError

    @abstractmethod
    def search(
        self,
        vector: List[float],
        top_k: int,
        where: Any = None,
        similarity_threshold: float = 0.0,
    ) -> List[VectorDocument]:
        """Return up to `top_k` documents most similar to `vector`, best first.

        Args:
            vector: Query embedding
            top_k: Maximum number of results
            where: Metadata filter (expression, Q, DSL text or None)
            similarity_threshold: Minimum score; 0 disables the cut-off

        Returns:
            Documents with `score` set
        """
        raise NotImplementedError

    @abstractmethod
    def count(self) -> int:
        raise NotImplementedError

    def get_native_client(self) -> Optional[Any]:
        """Return the underlying driver handle, or None when the store has none."""
        return None
