"""Tool registry for routing tool calls to handlers."""

import logging
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from mcp.types import Tool

from core.error_handling import format_error_response, safe_execute_async
from core.exceptions import ConfigurationError, UnknownToolError
from tools.base import ToolFunction, ToolHandler, ToolRequest, ToolResponse
from tools.definitions import get_all_tools, tool_to_dict
from tools.handlers import HANDLER_CLASSES

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Central registry for tool handlers.

    Pairs every catalog definition with exactly one handler operation.
    The pairing is checked once at construction and is read-only afterwards.
    """

    def __init__(self, handler_classes: Optional[Iterable[Type[ToolHandler]]] = None):
        definitions = get_all_tools()
        handler_classes = list(HANDLER_CLASSES if handler_classes is None else handler_classes)
        catalog = {tool.name for tool in definitions}

        operations: Dict[str, ToolFunction] = {}
        for handler_class in handler_classes:
            handler = handler_class()
            for tool_name, operation in handler.operations.items():
                if tool_name in operations:
                    raise ConfigurationError(
                        f"Tool registered twice: {tool_name}",
                        {"handler": handler_class.__name__}
                    )
                if tool_name not in catalog:
                    raise ConfigurationError(
                        f"Handler registers unknown tool: {tool_name}",
                        {"handler": handler_class.__name__}
                    )
                operations[tool_name] = operation
                logger.debug(f"Registered {tool_name} -> {handler_class.__name__}")

        missing = [tool.name for tool in definitions if tool.name not in operations]
        if missing:
            raise ConfigurationError(
                f"No handler for tools: {', '.join(missing)}",
                {"missing": missing}
            )

        self._definitions = tuple(definitions)
        self._operations: Mapping[str, ToolFunction] = MappingProxyType(operations)

        logger.info(f"✅ Registered {len(operations)} tools across {len(handler_classes)} handlers")

    @property
    def operations(self) -> Mapping[str, ToolFunction]:
        return self._operations

    def definitions(self) -> List[Tool]:
        """Tool definitions in catalog order."""
        return list(self._definitions)

    def tool_to_dicts(self) -> List[Dict[str, Any]]:
        return [tool_to_dict(tool) for tool in self._definitions]

    def get(self, tool_name: str) -> Optional[ToolFunction]:
        return self._operations.get(tool_name)

    def is_tool_registered(self, tool_name: str) -> bool:
        """Check if a tool has a registered handler."""
        return tool_name in self._operations

    async def dispatch(self, request: ToolRequest, context: Any) -> ToolResponse:
        """
        Route a tool call to its handler and wrap the outcome.

        Args:
            request: Tool name, argument bag and optional request id
            context: ServerContext handed to the handler

        Returns:
            ToolResponse; handler failures are reported in ``error``,
            never raised
        """
        operation = self._operations.get(request.tool)

        if operation is None:
            response = format_error_response(UnknownToolError(request.tool))
        else:
            logger.debug(f"Dispatching {request.tool}")
            response = await safe_execute_async(
                lambda: operation(context, request.arguments),
                {"tool": request.tool}
            )

        response.request_id = request.request_id
        return response
