"""Unified error handling for tool invocations.

Every tool call, whichever transport carried it, resolves to the same
``{result | error}`` envelope built here.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from core.exceptions import MCPDBError
from tools.base import ToolResponse

logger = logging.getLogger(__name__)


def error_message_for(error: BaseException) -> str:
    """Return the caller-facing message for an exception."""
    if isinstance(error, MCPDBError):
        return error.message
    return str(error) or type(error).__name__


def format_error_response(
    error: BaseException,
    context: Optional[Dict[str, Any]] = None
) -> ToolResponse:
    """Convert an exception into a failure envelope.

    Args:
        error: The exception that occurred
        context: Additional context for the log record (e.g. tool name)

    Returns:
        ToolResponse with ``result`` None and ``error`` populated
    """
    error_message = error_message_for(error)
    error_type = type(error).__name__
    suffix = f" (context: {context})" if context else ""

    if isinstance(error, MCPDBError):
        # Expected failure kinds: no traceback needed
        logger.warning(f"{error_type}: {error_message}{suffix}")
    else:
        logger.error(f"{error_type}: {error_message}{suffix}", exc_info=error)

    return ToolResponse(result=None, error=error_message)


def format_success_response(data: Any) -> ToolResponse:
    """Wrap a handler result in a success envelope."""
    return ToolResponse(result=data)


async def safe_execute_async(
    func: Callable[[], Awaitable[Any]],
    context: Optional[Dict[str, Any]] = None
) -> ToolResponse:
    """Safely execute an async function and return an envelope.

    Args:
        func: Async function to execute
        context: Additional context for error reporting

    Returns:
        Success or failure envelope; never raises for handler failures
    """
    try:
        result = await func()
        return format_success_response(result)
    except Exception as e:
        return format_error_response(e, context)
