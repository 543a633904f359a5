"""Query execution handler."""

import logging
from typing import Any, Dict

from core.context import ServerContext
from core.exceptions import MCPDBError
from tools.base import ToolFunction, ToolHandler, with_prefix
from tools.definitions import ToolName
from tools.validators import InputValidator

logger = logging.getLogger(__name__)


class QueryHandler(ToolHandler):
    """Handler for database query execution."""

    @property
    def operations(self) -> Dict[str, ToolFunction]:
        return {ToolName.EXECUTE_QUERY.value: self.execute_query}

    async def execute_query(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute one SQL statement and shape the result.

        Args:
            context: Server context
            arguments: ``query`` (required) and ``params`` (optional list)

        Returns:
            Wire form of QueryResult; rows beyond ``max_result_size`` are
            dropped after the fetch and the result is flagged truncated
        """
        query = InputValidator.require_string(arguments, "query", message="Empty query")
        params = InputValidator.optional_params(arguments)

        try:
            result = await context.connection_manager.query(query, params)
        except MCPDBError as e:
            raise with_prefix(e, "Query execution failed") from e

        max_rows = context.app_config.max_result_size
        shaped = result.apply_row_limit(max_rows)
        if shaped.truncated:
            logger.info(f"Result truncated to {max_rows} of {shaped.total_rows} rows")

        return shaped.to_wire()
