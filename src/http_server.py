"""HTTP adapter for the MySQL MCP server.

Maps one HTTP request to one tool dispatch. Tool failures are reported
inside a 200 body, the same envelope the line protocol carries.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.middleware import create_limiter, setup_middleware
from core.config import AppConfig, HTTPConfig
from core.context import ServerContext
from core.exceptions import ProtocolError
from protocol import messages
from protocol.base_server import RESOURCE_NOT_IMPLEMENTED, BaseMCPServer
from protocol.framing import DEFAULT_MAX_LINE_BYTES

logger = logging.getLogger(__name__)

# Request body limit, shared with the line protocol
MAX_BODY_BYTES = DEFAULT_MAX_LINE_BYTES


class MCPJSONResponse(JSONResponse):
    """JSON response using the same value conversions as the line protocol."""

    def render(self, content: Any) -> bytes:
        return messages.dumps(content).encode("utf-8")


class MCPHTTPServer:
    """HTTP server wrapper around a BaseMCPServer."""

    def __init__(self, base_server: BaseMCPServer, http_config: Optional[HTTPConfig] = None):
        self.base_server = base_server
        self.http_config = http_config or base_server.context.app_config.http
        self.limiter = create_limiter()

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            context = self.base_server.context
            if context.app_config.auto_connect:
                await context.auto_connect()
            logger.info("🚀 HTTP adapter started")
            yield
            await self.base_server.close()
            logger.info("🛑 HTTP adapter stopped")

        app_config = base_server.context.app_config
        self.app = FastAPI(
            title="MySQL MCP Server",
            description="HTTP mapping of the MySQL MCP tool protocol",
            version=app_config.server_version,
            default_response_class=MCPJSONResponse,
            lifespan=lifespan
        )

        setup_middleware(self.app, self.http_config, self.limiter)
        self._register_routes()

    def _register_routes(self):
        """Register all API routes."""

        @self.app.get("/")
        async def server_info():
            return self.base_server.server_info()

        @self.app.post("/tools")
        @self.limiter.limit(self.http_config.rate_limit_tools)
        async def call_tool(request: Request):
            body = await request.body()
            if len(body) > MAX_BODY_BYTES:
                return MCPJSONResponse(
                    {"result": None, "error": f"Request body exceeds {MAX_BODY_BYTES} bytes"},
                    status_code=413
                )

            try:
                payload = json.loads(body)
                tool_request = self.base_server.parse_tool_request(payload)
            except (ValueError, ProtocolError) as e:
                message = e.message if isinstance(e, ProtocolError) else f"Invalid tool request: {e}"
                logger.warning(f"Rejected tool request: {message}")
                return MCPJSONResponse({"result": None, "error": message}, status_code=400)

            try:
                response = await self.base_server.call_tool(tool_request)
            except Exception as e:
                logger.error(f"Tool execution error: {e}", exc_info=e)
                return MCPJSONResponse(
                    {"result": None, "error": f"Internal server error: {e}"},
                    status_code=500
                )
            return MCPJSONResponse(response.to_wire())

        @self.app.get("/resources/")
        async def missing_resource_uri():
            return MCPJSONResponse({"content": None, "error": "Resource URI is required"}, status_code=400)

        @self.app.get("/resources/{uri:path}")
        async def read_resource(uri: str):
            if not uri.strip():
                return MCPJSONResponse({"content": None, "error": "Resource URI is required"}, status_code=400)
            return {"content": None, "error": RESOURCE_NOT_IMPLEMENTED}


def create_app(app_config: Optional[AppConfig] = None, context: Optional[ServerContext] = None) -> FastAPI:
    """Build the FastAPI application around a fresh or given server context."""
    app_config = app_config or AppConfig.from_env()
    context = context or ServerContext.create(app_config)
    return MCPHTTPServer(BaseMCPServer(context)).app


async def run_http_server(app_config: Optional[AppConfig] = None):
    """Serve the HTTP adapter until interrupted."""
    app_config = app_config or AppConfig.from_env()
    app = create_app(app_config)
    host, port = app_config.server.host, app_config.server.port

    logger.info(f"🌐 Starting MySQL MCP HTTP server on http://{host}:{port}")

    config_uvicorn = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="debug" if app_config.debug else "info",
        log_config=None
    )
    server_uvicorn = uvicorn.Server(config_uvicorn)
    await server_uvicorn.serve()
