"""Tool definitions for the MySQL MCP server.

The catalog is closed: ``ToolName`` enumerates every tool the server
exposes, and each member has exactly one definition below.
"""

from enum import Enum
from typing import Any, Dict, List

from mcp.types import Tool


class ToolName(str, Enum):
    CONNECT_DATABASE = "connect_database"
    CONNECT_BY_PROFILE = "connect_by_profile"
    DISCONNECT_DATABASE = "disconnect_database"
    GET_CONNECTION_STATUS = "get_connection_status"
    LIST_PROFILES = "list_profiles"
    GET_PROFILE = "get_profile"
    ADD_PROFILE = "add_profile"
    REMOVE_PROFILE = "remove_profile"
    EXECUTE_QUERY = "execute_query"
    GET_DATABASES = "get_databases"
    GET_TABLES = "get_tables"
    DESCRIBE_TABLE = "describe_table"


_CONNECTION_PROPERTIES: Dict[str, Any] = {
    "host": {
        "type": "string",
        "description": "MySQL host name (defaults to the last used or configured host)"
    },
    "port": {
        "type": "number",
        "description": "MySQL port (default 3306)"
    },
    "user": {
        "type": "string",
        "description": "MySQL user name"
    },
    "password": {
        "type": "string",
        "description": "MySQL password"
    },
    "database": {
        "type": "string",
        "description": "Default database to select (optional)"
    },
}

_NAME_ARGUMENT: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {
            "type": "string",
            "description": "Profile name"
        }
    },
    "required": ["name"]
}

_NO_ARGUMENTS: Dict[str, Any] = {
    "type": "object",
    "properties": {}
}


def get_all_tools() -> List[Tool]:
    """Build the definition of every tool, in catalog order.

    Returns:
        List of Tool objects, one per ToolName member
    """
    return [
        Tool(
            name=ToolName.CONNECT_DATABASE.value,
            description=(
                "Connect to a MySQL server. Any existing connection is closed first. "
                "Omitted settings fall back to the default connection settings. "
                "On success the settings are saved as a connection profile."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    **_CONNECTION_PROPERTIES,
                    "profile_name": {
                        "type": "string",
                        "description": "Name to save the connection under (derived from host:port if omitted)"
                    },
                    "save_profile": {
                        "type": "boolean",
                        "description": "Save the connection settings as a profile (default true)"
                    }
                }
            }
        ),
        Tool(
            name=ToolName.CONNECT_BY_PROFILE.value,
            description="Connect to MySQL using a saved connection profile.",
            inputSchema=_NAME_ARGUMENT
        ),
        Tool(
            name=ToolName.DISCONNECT_DATABASE.value,
            description="Close the current database connection, if any.",
            inputSchema=_NO_ARGUMENTS
        ),
        Tool(
            name=ToolName.GET_CONNECTION_STATUS.value,
            description="Report whether a database connection is open and to which server.",
            inputSchema={
                "type": "object",
                "properties": {
                    "check": {
                        "type": "boolean",
                        "description": "Ping the server when connected and report 'alive'"
                    }
                }
            }
        ),
        Tool(
            name=ToolName.LIST_PROFILES.value,
            description="List saved connection profiles (passwords are not returned).",
            inputSchema=_NO_ARGUMENTS
        ),
        Tool(
            name=ToolName.GET_PROFILE.value,
            description="Get one saved connection profile by name (password is not returned).",
            inputSchema=_NAME_ARGUMENT
        ),
        Tool(
            name=ToolName.ADD_PROFILE.value,
            description=(
                "Save connection settings as a profile. An existing profile with the same "
                "name is overwritten."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Profile name (derived from host:port if omitted)"
                    },
                    **_CONNECTION_PROPERTIES
                },
                "required": ["host", "user"]
            }
        ),
        Tool(
            name=ToolName.REMOVE_PROFILE.value,
            description="Delete a saved connection profile by name.",
            inputSchema=_NAME_ARGUMENT
        ),
        Tool(
            name=ToolName.EXECUTE_QUERY.value,
            description=(
                "Execute a SQL statement on the connected MySQL server. "
                "Result sets larger than the configured maximum are truncated."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "SQL statement to execute"
                    },
                    "params": {
                        "type": "array",
                        "items": {},
                        "description": "Values for %s placeholders (optional)"
                    }
                },
                "required": ["query"]
            }
        ),
        Tool(
            name=ToolName.GET_DATABASES.value,
            description="List the databases visible to the connected user.",
            inputSchema=_NO_ARGUMENTS
        ),
        Tool(
            name=ToolName.GET_TABLES.value,
            description="List the tables of a database.",
            inputSchema={
                "type": "object",
                "properties": {
                    "database": {
                        "type": "string",
                        "description": "Database name (current database if omitted)"
                    }
                }
            }
        ),
        Tool(
            name=ToolName.DESCRIBE_TABLE.value,
            description="Get the columns, indexes and foreign keys of a table.",
            inputSchema={
                "type": "object",
                "properties": {
                    "table": {
                        "type": "string",
                        "description": "Table name"
                    },
                    "database": {
                        "type": "string",
                        "description": "Database name (current database if omitted)"
                    }
                },
                "required": ["table"]
            }
        ),
    ]


def tool_to_dict(tool: Tool) -> Dict[str, Any]:
    """Wire form of a definition: name, description, inputSchema."""
    return {
        "name": tool.name,
        "description": tool.description,
        "inputSchema": tool.inputSchema,
    }
