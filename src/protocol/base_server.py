"""Base MCP server - transport-agnostic message handling.

Both the stdio line transport and the HTTP adapter route through
``BaseMCPServer`` so that a tool call yields the same envelope whichever
transport carried it.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from core.context import ServerContext
from core.exceptions import ProtocolError
from protocol import messages
from tools.base import ToolRequest, ToolResponse
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

RESOURCE_NOT_IMPLEMENTED = "Resource access not implemented"


class BaseMCPServer:
    """Base MCP server providing core protocol functionality.

    Holds the server context and the tool registry, and turns one inbound
    message into exactly one outbound frame.
    """

    def __init__(self, context: ServerContext, registry: Optional[ToolRegistry] = None):
        """Initialize base MCP server.

        Args:
            context: Server context shared by every tool call
            registry: Tool registry (built from the default handlers if omitted)
        """
        self.context = context
        self.registry = registry or ToolRegistry()
        logger.info(f"Initialized {context.app_config.server_name} MCP server")

    def server_info(self) -> Dict[str, Any]:
        app_config = self.context.app_config
        return messages.server_info_payload(
            app_config.server_name,
            app_config.server_version,
            self.registry.tool_to_dicts()
        )

    def parse_tool_request(self, payload: Any) -> ToolRequest:
        """Build a ToolRequest from the ``request`` object of a message.

        Raises:
            ProtocolError: If the payload is not an object or ``tool`` is
                missing, blank or not a string
        """
        if not isinstance(payload, dict):
            raise ProtocolError("Unknown message type or invalid request format")

        tool = payload.get("tool")
        if not isinstance(tool, str) or not tool.strip():
            raise ProtocolError("Tool name is required")

        try:
            return ToolRequest.model_validate(payload)
        except PydanticValidationError as e:
            raise ProtocolError(f"Invalid tool request: {e.errors()[0]['msg']}") from e

    async def call_tool(self, request: ToolRequest) -> ToolResponse:
        return await self.registry.dispatch(request, self.context)

    async def handle_message(self, message: Any) -> Dict[str, Any]:
        """Handle one decoded inbound message and return the frame to send."""
        try:
            message = messages.parse_inbound(message)
            message_type = message["type"]

            if message_type == messages.SERVER_INFO_REQUEST:
                return messages.server_info_frame(self.server_info())

            if message_type == messages.RESOURCE_REQUEST:
                return self.read_resource(message.get("request"))

            request = self.parse_tool_request(message.get("request"))
            response = await self.call_tool(request)
            return messages.tool_response_frame(response.to_wire())

        except ProtocolError as e:
            logger.warning(f"Rejected message: {e.message}")
            return messages.error_frame(e.message)

    def read_resource(self, payload: Any) -> Dict[str, Any]:
        """Resources are reserved; every well-formed request gets an error body."""
        uri = payload.get("uri") if isinstance(payload, dict) else None
        if not isinstance(uri, str) or not uri:
            raise ProtocolError("Resource URI is required")
        return messages.resource_response_frame(error=RESOURCE_NOT_IMPLEMENTED)

    async def close(self):
        await self.context.close()
