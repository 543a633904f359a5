"""
pytest 配置文件

提供測試環境設定、fixtures 和不需要 MySQL 伺服器的假連接器
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pytest
from dotenv import load_dotenv

# 添加 src 目錄到 Python 路徑
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# 載入環境變數
load_dotenv()

from core.config import AppConfig  # noqa: E402
from core.context import ServerContext  # noqa: E402
from database.async_connectors import AsyncDatabaseConnector  # noqa: E402
from database.models import QueryResult  # noqa: E402
from database.profiles import ConnectionProfile  # noqa: E402


def normalize_sql(sql: str) -> str:
    return " ".join(sql.split())


class FakeMySQL:
    """
    假 MySQL 伺服器：記錄連接池開關次數，依 SQL 回傳預先設定的結果

    events 依序記錄 open / execute / close，用於驗證狀態轉換順序
    """

    def __init__(self):
        self.opened = 0
        self.closed = 0
        self.events: List[str] = []
        self.executed: List[tuple] = []
        self.profiles: List[ConnectionProfile] = []
        self.connect_error: Optional[Exception] = None
        self._responses: Dict[str, Any] = {}
        self._delays: Dict[str, float] = {}

    @property
    def live_pools(self) -> int:
        return self.opened - self.closed

    def respond(self, sql: str, result: Any, delay: float = 0.0):
        """設定 SQL 的回應：QueryResult、row 列表或 Exception"""
        key = normalize_sql(sql)
        self._responses[key] = result
        if delay:
            self._delays[key] = delay

    def factory(self, profile: ConnectionProfile, app_config: AppConfig) -> "FakeConnector":
        self.profiles.append(profile)
        return FakeConnector(self, profile)

    async def run(self, sql: str, params: Optional[Sequence[Any]]) -> QueryResult:
        key = normalize_sql(sql)
        self.executed.append((key, list(params) if params else None))
        self.events.append("execute")

        delay = self._delays.get(key)
        if delay:
            await asyncio.sleep(delay)

        response = self._responses.get(key)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, QueryResult):
            return response
        if response is None:
            return QueryResult(data=[])
        return QueryResult(data=list(response))


class FakeConnector(AsyncDatabaseConnector):
    """不連線的連接器，所有操作委派給 FakeMySQL"""

    def __init__(self, server: FakeMySQL, profile: ConnectionProfile):
        super().__init__(profile)
        self.server = server

    async def initialize_pool(self):
        if self.server.connect_error is not None:
            raise self.server.connect_error
        self._pool = object()
        self.server.opened += 1
        self.server.events.append("open")

    async def ping(self) -> bool:
        return self._pool is not None

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        assert self._pool is not None, "query ran against a closed pool"
        return await self.server.run(sql, params)

    async def close(self):
        if self._pool is not None:
            self._pool = None
            self.server.closed += 1
            self.server.events.append("close")


@pytest.fixture
def fake_mysql():
    """假 MySQL 伺服器 fixture"""
    server = FakeMySQL()
    server.respond("SELECT 1 AS x", [{"x": 1}])
    return server


@pytest.fixture
def profiles_path(tmp_path):
    return str(tmp_path / "profiles.json")


@pytest.fixture
def app_config(profiles_path):
    """測試用應用配置（不讀取設定檔與環境變數）"""
    return AppConfig(profiles_path=profiles_path, max_result_size=1000)


@pytest.fixture
def server_context(app_config, fake_mysql):
    """使用假連接器的 ServerContext"""
    return ServerContext.create(app_config, connector_factory=fake_mysql.factory)


@pytest.fixture
def sample_profile():
    return ConnectionProfile(name="", host="db.test", port=3306, user="app", password="secret", database="shop")
