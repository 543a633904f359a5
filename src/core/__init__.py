"""Core modules for the MySQL MCP server."""

from .exceptions import (
    MCPDBError,
    ProtocolError,
    ValidationError,
    ProfileNotFoundError,
    DatabaseConnectionError,
    QueryExecutionError,
    UnknownToolError,
    ConfigurationError
)

__all__ = [
    "MCPDBError",
    "ProtocolError",
    "ValidationError",
    "ProfileNotFoundError",
    "DatabaseConnectionError",
    "QueryExecutionError",
    "UnknownToolError",
    "ConfigurationError"
]
