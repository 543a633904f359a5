"""
HTTP API 端點整合測試

測試 HTTP 狀態碼對應與回應信封格式。
"""

import decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from http_server import MCPHTTPServer
from protocol.base_server import BaseMCPServer


@pytest.fixture
def http_server(server_context):
    return MCPHTTPServer(BaseMCPServer(server_context))


@pytest.fixture
def client(http_server):
    """創建測試客戶端"""
    with TestClient(http_server.app) as test_client:
        yield test_client


class TestServerInfo:
    """伺服器資訊端點測試"""

    def test_root(self, client):
        """✅ GET / 回傳伺服器資訊"""
        response = client.get("/")

        assert response.status_code == 200
        info = response.json()
        assert info["name"] == "mysql-mcp-server"
        assert len(info["tools"]) == 12
        assert info["resources"] == []


class TestToolsEndpoint:
    """工具呼叫端點測試"""

    def test_invalid_json(self, client):
        """❌ 無效的 JSON 內容"""
        response = client.post("/tools", content=b"{broken", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["result"] is None

    def test_missing_tool_name(self, client):
        """❌ 缺少工具名稱"""
        response = client.post("/tools", json={"arguments": {}})

        assert response.status_code == 400
        assert response.json()["error"] == "Tool name is required"

    def test_unknown_tool_is_200(self, client):
        """❌ 未知工具以 200 回傳錯誤信封"""
        response = client.post("/tools", json={"tool": "nope"})

        assert response.status_code == 200
        assert response.json() == {"result": None, "error": "Unknown tool: nope"}

    def test_success_has_no_error_key(self, client):
        """✅ 成功回應不含 error 鍵"""
        response = client.post("/tools", json={"tool": "get_connection_status"})

        assert response.status_code == 200
        body = response.json()
        assert "error" not in body
        assert body["result"]["connected"] is False

    def test_connect_and_query(self, client, fake_mysql):
        """✅ 連線後查詢，Decimal 以字串回傳"""
        fake_mysql.respond("SELECT price FROM items", [{"price": decimal.Decimal("9.90")}])

        connect = client.post("/tools", json={
            "tool": "connect_database",
            "arguments": {"host": "db.test", "user": "app", "password": "pw"}
        })
        assert connect.json()["result"]["success"] is True

        query = client.post("/tools", json={
            "tool": "execute_query",
            "arguments": {"query": "SELECT price FROM items"}
        })
        assert query.json()["result"]["data"] == [{"price": "9.90"}]

    def test_uncaught_failure_is_500(self, client, http_server, monkeypatch):
        """❌ 未捕捉的例外回傳 500"""
        monkeypatch.setattr(http_server.base_server, "call_tool", AsyncMock(side_effect=RuntimeError("boom")))

        response = client.post("/tools", json={"tool": "list_profiles"})

        assert response.status_code == 500
        assert response.json() == {"result": None, "error": "Internal server error: boom"}

    def test_shutdown_closes_pool(self, http_server, fake_mysql):
        """✅ 關閉時釋放連接池"""
        with TestClient(http_server.app) as test_client:
            test_client.post("/tools", json={
                "tool": "connect_database",
                "arguments": {"host": "db.test", "user": "app"}
            })
            assert fake_mysql.live_pools == 1

        assert fake_mysql.live_pools == 0


class TestResourcesEndpoint:
    """資源端點測試"""

    def test_resource_not_implemented(self, client):
        """✅ 資源存取尚未實作"""
        response = client.get("/resources/mysql/tables")

        assert response.status_code == 200
        assert response.json() == {"content": None, "error": "Resource access not implemented"}

    def test_missing_uri(self, client):
        """❌ 缺少 URI"""
        response = client.get("/resources/")

        assert response.status_code == 400
        assert response.json()["error"] == "Resource URI is required"
