"""Base classes for tool handlers and the tool call envelope."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator

from core.exceptions import DatabaseConnectionError, MCPDBError, QueryExecutionError

RequestId = Union[str, int]

# (context, arguments) -> JSON-compatible result
ToolFunction = Callable[[Any, Dict[str, Any]], Awaitable[Any]]


class ToolRequest(BaseModel):
    """One tool invocation: tool name plus argument bag."""

    tool: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[RequestId] = None

    @field_validator("arguments", mode="before")
    @classmethod
    def _none_means_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolResponse(BaseModel):
    """Envelope for a tool call: exactly one of result/error is meaningful."""

    result: Any = None
    error: Optional[str] = None
    request_id: Optional[RequestId] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_wire(self) -> Dict[str, Any]:
        """Wire form; the ``error`` key is omitted on success."""
        payload: Dict[str, Any] = {"result": self.result}
        if self.error is not None:
            payload["error"] = self.error
        if self.request_id is not None:
            payload["request_id"] = self.request_id
        return payload


class ToolHandler(ABC):
    """Abstract base class for tool handlers.

    A handler groups related tools; each tool maps to one coroutine taking
    the server context and the argument bag.
    """

    @property
    @abstractmethod
    def operations(self) -> Dict[str, ToolFunction]:
        """Return mapping of tool name to the coroutine implementing it."""
        pass


def with_prefix(error: MCPDBError, prefix: str) -> MCPDBError:
    """Same kind of database error, message prefixed with the failing operation."""
    if isinstance(error, (DatabaseConnectionError, QueryExecutionError)):
        return error.__class__(f"{prefix}: {error.message}", error.details)
    return error
