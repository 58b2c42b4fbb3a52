"""Concrete adapter for OpenAI embedding models."""

from typing import Any, Dict, List, Optional

from openai import OpenAI

from vectorfilter.abc import EmbeddingAdapter
from vectorfilter.exceptions import EmbeddingError, InvalidConfigError, InvalidFieldError, MissingConfigError
from vectorfilter.logger import Logger
from vectorfilter.settings import settings


class OpenAIEmbeddingAdapter(EmbeddingAdapter):
    """
    Embedding adapter for OpenAI models.

    `text-embedding-3-*` models accept a reduced `dim`, which is sent as the
    `dimensions` request parameter.
    """

    # Known dimensions for OpenAI models
    _DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model_name: Optional[str] = None,
        dim: Optional[int] = None,
        logger: Optional[Logger] = None,
    ):
        model_name = model_name or settings.OPENAI_EMBEDDING_MODEL or "text-embedding-3-small"
        if model_name not in self._DIMENSIONS:
            raise InvalidFieldError(
                "Unknown embedding dimension",
                field="model_name",
                value=model_name,
                expected=list(self._DIMENSIONS.keys()),
            )
        native_dim = self._DIMENSIONS[model_name]
        if dim is not None and dim != native_dim:
            if not model_name.startswith("text-embedding-3") or not 0 < dim < native_dim:
                raise InvalidConfigError(
                    "Model does not support this dimension",
                    config_key="dim",
                    value=dim,
                    model=model_name,
                    expected=f"1..{native_dim}" if model_name.startswith("text-embedding-3") else native_dim,
                )
        super().__init__(model_name=model_name, dim=dim or native_dim, logger=logger)
        self._reduced = self._dim != native_dim
        self._client: OpenAI | None = None
        self.logger.message("OpenAIEmbeddingAdapter initialized with model '%s', dim=%d.", model_name, self._dim)

    @property
    def client(self) -> OpenAI:
        """
        Lazily initializes and returns the OpenAI client.
        Raises MissingConfigError if the API key is not configured.
        """
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise MissingConfigError(
                    "API key not configured",
                    config_key="OPENAI_API_KEY",
                )
            self._client = OpenAI(api_key=settings.OPENAI_API_KEY)
        return self._client

    def get_embeddings(self, texts: List[str]) -> List[List[float]]:
        """
        Generates embeddings for a list of texts using the OpenAI API.
        """
        if not texts:
            return []
        request: Dict[str, Any] = {"model": self.model_name}
        if self._reduced:
            request["dimensions"] = self._dim
        try:
            # OpenAI API recommends replacing newlines
            texts = [text.replace("\n", " ") for text in texts]
            response = self.client.embeddings.create(input=texts, **request)
            return [embedding.embedding for embedding in response.data]
        except MissingConfigError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to get embeddings from OpenAI: {e}", exc_info=True)
            raise EmbeddingError(
                "Embedding generation failed",
                model=self.model_name,
            ) from e
