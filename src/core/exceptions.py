"""Custom exceptions for the MySQL MCP server."""


class MCPDBError(Exception):
    """Base exception for all MySQL MCP server errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ProtocolError(MCPDBError):
    """Exception raised for a malformed frame or an unrecognized message type."""
    pass


class ValidationError(MCPDBError):
    """Exception raised when a required tool argument is missing or invalid."""
    pass


class ProfileNotFoundError(ValidationError):
    """Exception raised when a named connection profile does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Profile not found: {name}", {"name": name})


class DatabaseConnectionError(MCPDBError):
    """Exception raised when no connection is established or connecting fails."""
    pass


class QueryExecutionError(MCPDBError):
    """Exception raised when query execution fails on an established connection."""
    pass


class UnknownToolError(MCPDBError):
    """Exception raised when dispatching to an unregistered tool name."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}", {"tool": tool_name})


class ConfigurationError(MCPDBError):
    """Exception raised when configuration or tool registration is invalid."""
    pass
