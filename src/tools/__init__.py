"""Tools package for the MySQL MCP server.

The registry is imported from ``tools.registry`` directly; it depends on
the handlers, which depend on ``core``.
"""

from tools.base import ToolHandler, ToolRequest, ToolResponse
from tools.definitions import ToolName, get_all_tools, tool_to_dict
from tools.validators import InputValidator

__all__ = [
    'ToolHandler',
    'ToolRequest',
    'ToolResponse',
    'ToolName',
    'get_all_tools',
    'tool_to_dict',
    'InputValidator',
]
