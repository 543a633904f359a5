"""
STDIO 伺服器整合測試

以記憶體串流模擬 stdin/stdout，測試完整的行協定流程。
"""

import asyncio
import io
import json
from typing import Any, Dict, List

import pytest

from protocol.stdio_server import StdioMCPServer
from tools.definitions import ToolName

TIMEOUT = 2.0


class MemoryStream:
    """記憶體輸出串流，drain 可模擬緩慢的 stdout"""

    def __init__(self, drain_delay: float = 0.0):
        self.buffer = io.BytesIO()
        self.drain_delay = drain_delay
        self.drains = 0

    def write(self, data: bytes):
        self.buffer.write(data)

    async def drain(self):
        self.drains += 1
        if self.drain_delay:
            await asyncio.sleep(self.drain_delay)

    def getvalue(self) -> bytes:
        return self.buffer.getvalue()


class StdioHarness:
    """驅動 StdioMCPServer 的測試工具"""

    def __init__(self, server: StdioMCPServer, output: MemoryStream = None):
        self.server = server
        self.reader = asyncio.StreamReader()
        self.output = output or MemoryStream()
        self.task = asyncio.create_task(server.serve(self.reader, self.output))

    def frames(self) -> List[Dict[str, Any]]:
        return [json.loads(line) for line in self.output.getvalue().splitlines()]

    async def wait_for_frames(self, count: int) -> List[Dict[str, Any]]:
        async def poll():
            while len(self.frames()) < count:
                await asyncio.sleep(0.005)
        await asyncio.wait_for(poll(), TIMEOUT)
        return self.frames()

    async def send(self, message: Any) -> Dict[str, Any]:
        """送出一則訊息並等待下一個 frame"""
        expected = len(self.frames()) + 1
        self.send_raw((json.dumps(message) + "\n").encode("utf-8"))
        return (await self.wait_for_frames(expected))[-1]

    def send_raw(self, data: bytes):
        self.reader.feed_data(data)

    async def close(self):
        self.reader.feed_eof()
        await asyncio.wait_for(self.task, TIMEOUT)


def tool_request(tool: str, arguments: Dict[str, Any] = None, **extra) -> Dict[str, Any]:
    request = {"tool": tool, "arguments": arguments or {}}
    request.update(extra)
    return {"type": "tool_request", "request": request}


class TestStdioServer:
    """行協定整合測試"""

    @pytest.fixture
    def server(self, server_context):
        return StdioMCPServer(server_context)

    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, server, fake_mysql):
        """✅ server_info → 連線 → 查詢 → 中斷 → 查詢失敗"""
        harness = StdioHarness(server)

        greeting = (await harness.wait_for_frames(1))[0]
        assert greeting["type"] == "server_info"

        info = await harness.send({"type": "server_info_request"})
        assert info["type"] == "server_info"
        assert info["info"]["name"] == "mysql-mcp-server"
        assert [tool["name"] for tool in info["info"]["tools"]] == [member.value for member in ToolName]

        connected = await harness.send(tool_request(
            "connect_database",
            {"host": "db.test", "user": "app", "password": "pw"}
        ))
        assert connected["type"] == "tool_response"
        assert connected["response"]["result"]["success"] is True
        assert "error" not in connected["response"]

        queried = await harness.send(tool_request("execute_query", {"query": "SELECT 1 AS x"}))
        assert queried["response"]["result"]["data"] == [{"x": 1}]

        await harness.send(tool_request("disconnect_database"))

        failed = await harness.send(tool_request("execute_query", {"query": "SELECT 1 AS x"}))
        assert failed["response"]["result"] is None
        assert "Database not connected" in failed["response"]["error"]

        await harness.close()
        await server.close()
        assert fake_mysql.live_pools == 0

    @pytest.mark.asyncio
    async def test_malformed_line_keeps_stream_open(self, server):
        """❌ 無效 JSON 行回傳 error frame，後續訊息仍處理"""
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        harness.send_raw(b'{"type": oops}\n')
        frames = await harness.wait_for_frames(2)
        assert frames[-1] == {"type": "error", "error": 'Invalid JSON: {"type": oops}'}

        status = await harness.send(tool_request("get_connection_status"))
        assert status["response"]["result"]["connected"] is False

        await harness.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message, error", [
        ({"type": "bogus"}, "Unknown message type or invalid request format"),
        ([1, 2], "Unknown message type or invalid request format"),
        ({"type": "tool_request"}, "Unknown message type or invalid request format"),
        ({"type": "tool_request", "request": {"arguments": {}}}, "Tool name is required"),
        ({"type": "tool_request", "request": {"tool": "  "}}, "Tool name is required"),
        ({"type": "resource_request", "request": {}}, "Resource URI is required"),
    ])
    async def test_invalid_messages(self, server, message, error):
        """❌ 無效訊息回傳 error frame"""
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        frame = await harness.send(message)
        assert frame == {"type": "error", "error": error}

        await harness.close()

    @pytest.mark.asyncio
    async def test_resource_request(self, server):
        """✅ 資源存取尚未實作"""
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        frame = await harness.send({"type": "resource_request", "request": {"uri": "mysql://tables"}})
        assert frame == {
            "type": "resource_response",
            "response": {"content": None, "error": "Resource access not implemented"},
        }

        await harness.close()

    @pytest.mark.asyncio
    async def test_responses_in_completion_order(self, server, server_context, fake_mysql, sample_profile):
        """✅ 慢查詢不阻塞快查詢，回應依完成順序輸出並帶 request_id"""
        fake_mysql.respond("SELECT SLEEP(1)", [{"s": 0}], delay=0.1)
        await server_context.connection_manager.connect(sample_profile)
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        batch = (
            json.dumps(tool_request("execute_query", {"query": "SELECT SLEEP(1)"}, request_id="slow")) + "\n"
            + json.dumps(tool_request("execute_query", {"query": "SELECT 1 AS x"}, request_id="fast")) + "\n"
        )
        harness.send_raw(batch.encode("utf-8"))
        frames = await harness.wait_for_frames(3)

        assert [frame["response"]["request_id"] for frame in frames[1:]] == ["fast", "slow"]

        await harness.close()

    @pytest.mark.asyncio
    async def test_eof_drains_in_flight_requests(self, server, server_context, fake_mysql, sample_profile):
        """✅ EOF 後等待進行中的請求完成"""
        fake_mysql.respond("SELECT SLEEP(1)", [{"s": 0}], delay=0.05)
        await server_context.connection_manager.connect(sample_profile)
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        harness.send_raw((json.dumps(tool_request("execute_query", {"query": "SELECT SLEEP(1)"})) + "\n").encode())
        await harness.close()

        frames = harness.frames()
        assert len(frames) == 2
        assert frames[-1]["response"]["result"]["data"] == [{"s": 0}]

    @pytest.mark.asyncio
    async def test_unterminated_input_at_eof(self, server):
        """✅ 結尾沒有換行的輸入被丟棄"""
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        harness.send_raw(json.dumps({"type": "server_info_request"}).encode())
        await harness.close()

        assert len(harness.frames()) == 1

    @pytest.mark.asyncio
    async def test_request_stop(self, server):
        """✅ 停止請求結束服務迴圈"""
        harness = StdioHarness(server)
        await harness.wait_for_frames(1)

        server.request_stop()
        await asyncio.wait_for(harness.task, TIMEOUT)

        assert harness.task.done()

    @pytest.mark.asyncio
    async def test_slow_output_does_not_block_event_loop(self, server):
        """✅ 輸出緩慢時事件迴圈仍可執行其他任務"""
        gaps = []

        async def ticker():
            loop = asyncio.get_running_loop()
            last = loop.time()
            while True:
                await asyncio.sleep(0.01)
                now = loop.time()
                gaps.append(now - last)
                last = now

        ticking = asyncio.create_task(ticker())
        output = MemoryStream(drain_delay=0.3)
        harness = StdioHarness(server, output)

        await harness.wait_for_frames(1)
        harness.send_raw((json.dumps({"type": "server_info_request"}) + "\n").encode())
        await harness.wait_for_frames(2)
        await harness.close()

        ticking.cancel()
        assert output.drains == 2
        assert max(gaps) < 0.1

    @pytest.mark.asyncio
    async def test_frames_do_not_interleave(self, server, server_context, fake_mysql, sample_profile):
        """✅ 並行回應逐一寫出，每行都是完整的 frame"""
        await server_context.connection_manager.connect(sample_profile)
        harness = StdioHarness(server, MemoryStream(drain_delay=0.01))
        await harness.wait_for_frames(1)

        batch = "".join(
            json.dumps(tool_request("execute_query", {"query": "SELECT 1 AS x"}, request_id=str(i))) + "\n"
            for i in range(5)
        )
        harness.send_raw(batch.encode("utf-8"))
        frames = await harness.wait_for_frames(6)

        assert sorted(frame["response"]["request_id"] for frame in frames[1:]) == ["0", "1", "2", "3", "4"]

        await harness.close()
