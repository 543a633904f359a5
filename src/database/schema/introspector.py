"""MySQL schema introspection composed from several statements."""

import logging
from typing import Any, Dict, List, Optional

from database.async_manager import AsyncConnectionManager

logger = logging.getLogger(__name__)

FOREIGN_KEY_QUERY = """
    SELECT
        COLUMN_NAME,
        REFERENCED_TABLE_NAME,
        REFERENCED_COLUMN_NAME
    FROM
        INFORMATION_SCHEMA.KEY_COLUMN_USAGE
    WHERE
        TABLE_SCHEMA = %s AND
        TABLE_NAME = %s AND
        REFERENCED_TABLE_NAME IS NOT NULL"""


def quote_identifier(name: str) -> str:
    """Backtick-quote a MySQL identifier, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


def table_reference(table: str, database: Optional[str] = None) -> str:
    if database:
        return f"{quote_identifier(database)}.{quote_identifier(table)}"
    return quote_identifier(table)


class MySQLSchemaInspector:
    """Schema lookups issued through the connection manager.

    Multi-statement lookups run their statements in a fixed order and stop
    at the first failure, which propagates unchanged.
    """

    def __init__(self, connection_manager: AsyncConnectionManager):
        self.connection_manager = connection_manager

    async def list_databases(self) -> List[str]:
        result = await self.connection_manager.query("SHOW DATABASES")
        return [row.get("Database") for row in result.data]

    async def list_tables(self, database: Optional[str] = None) -> List[str]:
        sql = f"SHOW TABLES FROM {quote_identifier(database)}" if database else "SHOW TABLES"
        result = await self.connection_manager.query(sql)
        # Column is named "Tables_in_<db>", so take the first one
        return [next(iter(row.values())) for row in result.data if row]

    async def list_columns(self, table: str, database: Optional[str] = None) -> List[Dict[str, Any]]:
        result = await self.connection_manager.query(f"DESCRIBE {table_reference(table, database)}")
        return result.data

    async def list_indexes(self, table: str, database: Optional[str] = None) -> List[Dict[str, Any]]:
        result = await self.connection_manager.query(f"SHOW INDEX FROM {table_reference(table, database)}")
        return result.data

    async def current_database(self) -> Optional[str]:
        result = await self.connection_manager.query("SELECT DATABASE() AS db")
        return result.data[0].get("db") if result.data else None

    async def list_foreign_keys(self, table: str, database: Optional[str] = None) -> List[Dict[str, Any]]:
        """Foreign keys of ``table``; empty when no database is selected."""
        schema = database or await self.current_database()
        if not schema:
            logger.debug(f"No database selected; skipping foreign keys for {table}")
            return []
        result = await self.connection_manager.query(FOREIGN_KEY_QUERY, [schema, table])
        return result.data

    async def describe_table(self, table: str, database: Optional[str] = None) -> Dict[str, Any]:
        """Columns, then indexes, then foreign keys, merged into one object."""
        columns = await self.list_columns(table, database)
        indexes = await self.list_indexes(table, database)
        foreign_keys = await self.list_foreign_keys(table, database)
        return {
            "columns": columns,
            "indexes": indexes,
            "foreignKeys": foreign_keys,
        }
