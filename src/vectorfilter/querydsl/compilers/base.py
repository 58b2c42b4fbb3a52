"""Base compiler interface.

Defines the contract all backend-specific where compilers follow.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..expression import Expression

__all__ = ("BaseWhere",)


class BaseWhere(ABC):
    """Abstract base class for where clause compilers.

    Compilers are pure: they hold only immutable options, perform no I/O and
    never raise for a structurally valid expression.
    """

    # Backend tag this compiler emits for
    backend: str = ""

    @abstractmethod
    def to_where(self, where: Any) -> Any:
        """Convert an expression (or Q / DSL text / None) into the backend-native filter.

        - `SqlFilter` for PostgreSQL (SQL with bound parameters)
        - dict for MongoDB (document filter)
        """
        raise NotImplementedError

    @abstractmethod
    def to_expr(self, where: Any) -> str:
        """Render the backend-native filter as a string for logging and debugging."""
        raise NotImplementedError

    def compile(self, expression: Optional[Expression]) -> Any:
        """Alias of `to_where` for already-built expression trees."""
        return self.to_where(expression)
