"""Schema information handlers."""

import logging
from typing import Any, Dict

from core.context import ServerContext
from core.exceptions import MCPDBError
from tools.base import ToolFunction, ToolHandler, with_prefix
from tools.definitions import ToolName
from tools.validators import InputValidator

logger = logging.getLogger(__name__)


class SchemaHandler(ToolHandler):
    """Handler for schema information queries."""

    @property
    def operations(self) -> Dict[str, ToolFunction]:
        return {
            ToolName.GET_DATABASES.value: self.get_databases,
            ToolName.GET_TABLES.value: self.get_tables,
            ToolName.DESCRIBE_TABLE.value: self.describe_table,
        }

    async def get_databases(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        try:
            databases = await context.inspector.list_databases()
        except MCPDBError as e:
            raise with_prefix(e, "Failed to get databases") from e
        return {"databases": databases}

    async def get_tables(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        database = InputValidator.optional_identifier(arguments, "database")
        try:
            tables = await context.inspector.list_tables(database)
        except MCPDBError as e:
            raise with_prefix(e, "Failed to get tables") from e
        return {"tables": tables}

    async def describe_table(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        table = InputValidator.require_identifier(arguments, "table", kind="Table")
        database = InputValidator.optional_identifier(arguments, "database")

        logger.debug(f"Describing table {table} (database={database or 'current'})")
        try:
            return await context.inspector.describe_table(table, database)
        except MCPDBError as e:
            raise with_prefix(e, "Failed to describe table") from e
