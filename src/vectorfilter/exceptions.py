"""Custom exceptions for the vectorfilter library.

Every error raised by the library derives from `VectorFilterError`, which
carries a human-readable message plus arbitrary key-value context. Errors
raised by the database drivers (psycopg2, pymongo) are not wrapped.
"""

from typing import Any, Dict, Iterable, Optional


class VectorFilterError(Exception):
    """Base exception for all vectorfilter errors.

    Attributes:
        message: Error message
        details: Additional error context as key-value pairs
    """

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        self.message = message
        self.details: Dict[str, Any] = kwargs
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.details:
            return self.message

        details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
        if self.message:
            return f"{self.message} ({details_str})"
        return details_str

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# Validation exceptions
class ValidationError(VectorFilterError):
    """Raised when input validation fails.

    Example:
        >>> raise ValidationError("Invalid document format", field="vector", expected_type="list")
    """


class MissingFieldError(ValidationError):
    """Raised when a required field is missing."""


class InvalidFieldError(ValidationError):
    """Raised when a field has an invalid value or type.

    Example:
        >>> raise InvalidFieldError("Invalid field value", field="top_k", value=0, expected=">0")
    """


class InvalidFilterError(ValidationError):
    """Raised when a filter expression is structurally invalid.

    Example:
        >>> raise InvalidFilterError("IN requires at least one value", field="author")
    """


class ParseError(ValidationError):
    """Raised when filter text cannot be parsed.

    The error reports where parsing stopped and what the parser would have
    accepted there. No partial expression is ever returned alongside it.

    Attributes:
        offset: Byte offset (UTF-8) of the offending token in the input
        position: Character index of the offending token
        found: Text of the offending token ("end of input" at EOF)
        expected: Sorted tuple of token descriptions accepted at that point

    Example:
        >>> raise ParseError("Unexpected token", text="a ==", offset=4, position=4,
        ...                  found="end of input", expected=("value",))
    """

    def __init__(
        self,
        message: str = "",
        *,
        text: str = "",
        offset: int = 0,
        position: int = 0,
        found: str = "",
        expected: Optional[Iterable[str]] = None,
    ) -> None:
        self.text = text
        self.offset = offset
        self.position = position
        self.found = found
        self.expected = tuple(sorted(set(expected or ())))
        super().__init__(message, offset=offset, found=found, expected=list(self.expected))


# Configuration exceptions
class ConfigurationError(VectorFilterError):
    """Raised when configuration is invalid or missing."""


class MissingConfigError(ConfigurationError):
    """Raised when required configuration values are not set.

    Example:
        >>> raise MissingConfigError("Configuration not set", config_key="OPENAI_API_KEY")
    """


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values are invalid.

    Example:
        >>> raise InvalidConfigError("Invalid config value", config_key="dimensions", value=-1, expected=">0")
    """


class DimensionMismatchError(ConfigurationError):
    """Raised when an embedding length disagrees with the configured store dimension.

    Example:
        >>> raise DimensionMismatchError("Embedding dimension mismatch", expected=1536, actual=768)
    """


class SchemaValidationError(ConfigurationError):
    """Raised when schema validation is enabled and the store schema is unsafe or missing.

    Example:
        >>> raise SchemaValidationError("Table not found", schema_name="public", table_name="vector_store")
    """


# Store exceptions
class CollectionNotInitializedError(VectorFilterError):
    """Raised when a store operation runs before `initialize()`."""


class EmbeddingError(VectorFilterError):
    """Raised when the embedding provider fails to produce vectors.

    Example:
        >>> raise EmbeddingError("Embedding generation failed", model="text-embedding-3-small")
    """
