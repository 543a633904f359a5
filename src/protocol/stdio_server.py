"""STDIO transport MCP server."""

import asyncio
import logging
import signal
import sys
from typing import Any, Dict, Optional, Protocol, Set

from core.config import AppConfig
from core.context import ServerContext
from core.exceptions import ProtocolError
from protocol import messages
from protocol.base_server import BaseMCPServer
from protocol.framing import DEFAULT_MAX_LINE_BYTES, LineDecoder
from tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024

_END_OF_INPUT = object()


class FrameStream(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class StreamFrameWriter:
    """Writes whole frames to an asyncio stream writer, one frame at a time.

    ``stream`` needs ``write(bytes)`` and an awaitable ``drain()``; the lock
    keeps frames from interleaving while a slow reader applies backpressure.
    """

    def __init__(self, stream: FrameStream):
        self.stream = stream
        self._lock = asyncio.Lock()

    async def write(self, frame: Dict[str, Any]):
        data = messages.encode_frame(frame)
        async with self._lock:
            self.stream.write(data)
            await self.stream.drain()


class StdioMCPServer(BaseMCPServer):
    """MCP server speaking newline-delimited JSON over stdin/stdout.

    A reader task decodes input into a queue. The dispatch loop answers
    non-tool messages in order and spawns one task per tool request, so
    responses are written in completion order.
    """

    def __init__(
        self,
        context: ServerContext,
        registry: Optional[ToolRegistry] = None,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    ):
        super().__init__(context, registry)
        self.max_line_bytes = max_line_bytes
        self._reader_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    async def serve(self, reader: asyncio.StreamReader, output: FrameStream):
        """Serve one stream until end of input or a stop request.

        In-flight tool calls are awaited before returning.
        """
        writer = StreamFrameWriter(output)
        queue: asyncio.Queue = asyncio.Queue()

        await writer.write(messages.server_info_frame(self.server_info()))

        self._reader_task = asyncio.create_task(self._read_input(reader, queue))
        try:
            while True:
                item = await queue.get()
                if item is _END_OF_INPUT:
                    break

                if isinstance(item, ProtocolError):
                    logger.warning(f"Malformed input line: {item.message}")
                    await writer.write(messages.error_frame(item.message))
                elif isinstance(item, dict) and item.get("type") == messages.TOOL_REQUEST:
                    task = asyncio.create_task(self._respond(item, writer))
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)
                else:
                    await self._respond(item, writer)
        finally:
            if self._reader_task is not None and not self._reader_task.done():
                self._reader_task.cancel()
            if self._tasks:
                logger.info(f"Waiting for {len(self._tasks)} in-flight requests")
                await asyncio.gather(*self._tasks, return_exceptions=True)

    def request_stop(self):
        """Stop reading input; in-flight requests still complete."""
        logger.info("Stop requested, no further input will be read")
        if self._reader_task is not None:
            self._reader_task.cancel()

    async def run(self):
        """Run the server on the process's stdin and stdout."""
        logger.info("Starting STDIO MCP server")
        loop = asyncio.get_running_loop()

        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)

        writer_transport, writer_protocol = await loop.connect_write_pipe(
            lambda: asyncio.StreamReaderProtocol(asyncio.StreamReader()), sys.stdout
        )
        writer = asyncio.StreamWriter(writer_transport, writer_protocol, reader, loop)

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except NotImplementedError:
                # Windows event loops have no signal handlers
                pass

        try:
            await self.serve(reader, writer)
        finally:
            writer.close()
            await self.close()
            logger.info("STDIO MCP server stopped")

    async def _read_input(self, reader: asyncio.StreamReader, queue: asyncio.Queue):
        decoder = LineDecoder(self.max_line_bytes)
        try:
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    decoder.finish()
                    break
                for item in decoder.feed(chunk):
                    await queue.put(item)
        finally:
            queue.put_nowait(_END_OF_INPUT)

    async def _respond(self, message: Any, writer: StreamFrameWriter):
        frame = await self.handle_message(message)
        try:
            await writer.write(frame)
        except OSError as e:
            logger.error(f"Failed to write response: {e}")


async def run_stdio_server(app_config: Optional[AppConfig] = None):
    """Run STDIO MCP server with given configuration.

    Args:
        app_config: App configuration (optional, defaults to env)
    """
    app_config = app_config or AppConfig.from_env()
    context = ServerContext.create(app_config)

    if app_config.auto_connect:
        await context.auto_connect()

    server = StdioMCPServer(context)
    await server.run()
