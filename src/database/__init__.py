"""Database access modules for the MySQL MCP server."""

from .async_manager import AsyncConnectionManager, ConnectionState
from .async_connectors import AsyncDatabaseConnector, AsyncMySQLConnector
from .profiles import ConnectionProfile, ProfileStore

__all__ = [
    "AsyncConnectionManager",
    "ConnectionState",
    "AsyncDatabaseConnector",
    "AsyncMySQLConnector",
    "ConnectionProfile",
    "ProfileStore"
]
