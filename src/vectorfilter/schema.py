"""Pydantic schemas for vector store operations."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import InvalidFieldError, MissingFieldError
from .settings import settings
from .utils import extract_pk, generate_pk

_RESERVED_KEYS = ("_id", "id", "pk", "text", "vector", "metadata")


class VectorDocument(BaseModel):
    id: Optional[str] = Field(None, description="Unique identifier for the vector document.")
    text: Optional[str] = Field(None, description="Text content the vector was computed from.")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Associated metadata.")
    vector: List[float] = Field(default_factory=list, description="Embedding vector.")
    score: Optional[float] = Field(None, description="Similarity score, set on search results.")

    @property
    def pk(self) -> str:
        if self.id is None:
            raise MissingFieldError("Document ID not set", field="id")
        return self.id

    @model_validator(mode="after")
    def assign_defaults(self) -> "VectorDocument":
        if not self.id:
            self.id = generate_pk()
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **kwargs: Any) -> "VectorDocument":
        """Create VectorDocument from dict, merging with kwargs.

        Keys other than id/_id/pk, text, vector and metadata become metadata.

        Examples:
            doc = VectorDocument.from_dict({"text": "Hello", "source": "api"})
            doc = VectorDocument.from_dict({"text": "Hello"}, user_id="123")
        """
        merged = dict(data)
        merged.update(kwargs)
        pk = extract_pk(merged)
        metadata = dict(merged.get("metadata") or {})
        for k, v in merged.items():
            if k not in _RESERVED_KEYS and k not in metadata:
                metadata[k] = v
        return cls(
            id=pk,
            text=merged.get("text"),
            vector=merged.get("vector") or [],
            metadata=metadata,
        )

    @classmethod
    def from_any(cls, doc: Union["VectorDocument", Dict[str, Any], str, None] = None, **kwargs: Any) -> "VectorDocument":
        """Create VectorDocument from any input type.

        - VectorDocument: returned as-is
        - str: treated as text, kwargs become metadata
        - dict: merged with kwargs
        - None: constructed from kwargs

        Raises:
            InvalidFieldError: If neither doc nor kwargs are given
            TypeError: If doc type is not supported
        """
        if isinstance(doc, cls):
            return doc
        if isinstance(doc, str):
            return cls.from_dict({"text": doc}, **kwargs)
        if isinstance(doc, dict):
            return cls.from_dict(doc, **kwargs)
        if doc is None:
            if not kwargs:
                raise InvalidFieldError("Need doc or kwargs to create VectorDocument", field="doc")
            return cls.from_dict(kwargs)
        raise TypeError(f"Cannot create VectorDocument from type: {type(doc).__name__}")


class SearchRequest(BaseModel):
    """Parameters of a similarity query.

    `filter` accepts filter DSL text, an expression tree, a `Q` object or
    None; it is parsed before the query is issued.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    query: Union[str, List[float]]
    top_k: int = Field(default_factory=lambda: settings.VECTOR_TOP_K, gt=0)
    similarity_threshold: float = Field(0.0, ge=0.0, le=1.0)
    filter: Any = None
