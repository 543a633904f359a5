"""Wire messages of the line protocol.

Every outbound frame is one compact JSON object followed by a single
newline. Values the MySQL driver returns that JSON cannot carry natively
are converted by ``json_default``.
"""

import base64
import datetime
import decimal
import json
from typing import Any, Dict, List, Optional

from core.exceptions import ProtocolError

# Inbound message types
TOOL_REQUEST = "tool_request"
RESOURCE_REQUEST = "resource_request"
SERVER_INFO_REQUEST = "server_info_request"

# Outbound message types
TOOL_RESPONSE = "tool_response"
RESOURCE_RESPONSE = "resource_response"
SERVER_INFO = "server_info"
ERROR = "error"

INBOUND_TYPES = (TOOL_REQUEST, RESOURCE_REQUEST, SERVER_INFO_REQUEST)


def json_default(value: Any) -> Any:
    """Convert driver values to JSON-compatible ones."""
    if isinstance(value, decimal.Decimal):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return base64.b64encode(raw).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    """Compact JSON text. Newlines inside strings are escaped by the encoder."""
    return json.dumps(value, default=json_default, separators=(",", ":"), ensure_ascii=False)


def encode_frame(frame: Dict[str, Any]) -> bytes:
    return (dumps(frame) + "\n").encode("utf-8")


def tool_response_frame(response: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": TOOL_RESPONSE, "response": response}


def resource_response_frame(content: Any = None, error: Optional[str] = None) -> Dict[str, Any]:
    response: Dict[str, Any] = {"content": content}
    if error is not None:
        response["error"] = error
    return {"type": RESOURCE_RESPONSE, "response": response}


def server_info_frame(info: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": SERVER_INFO, "info": info}


def error_frame(message: str) -> Dict[str, Any]:
    return {"type": ERROR, "error": message}


def server_info_payload(name: str, version: str, tools: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"name": name, "version": version, "tools": tools, "resources": []}


def parse_inbound(message: Any) -> Dict[str, Any]:
    """
    Check the envelope of an inbound message.

    Returns:
        The message as a dict with a recognized ``type``

    Raises:
        ProtocolError: For non-object messages and unknown types
    """
    if not isinstance(message, dict) or message.get("type") not in INBOUND_TYPES:
        raise ProtocolError("Unknown message type or invalid request format")
    return message
