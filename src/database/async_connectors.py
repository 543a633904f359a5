"""Async MySQL connector with connection pooling."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence
import logging

import aiomysql
from pymysql.constants import FIELD_TYPE

from core.config import AppConfig
from core.exceptions import DatabaseConnectionError
from database.models import QueryMetadata, QueryResult
from database.profiles import ConnectionProfile

logger = logging.getLogger(__name__)

# First definition wins: CHAR and INTERVAL are aliases of TINY and ENUM
_FIELD_TYPE_NAMES: Dict[int, str] = {}
for _name, _value in vars(FIELD_TYPE).items():
    if _name.isupper():
        _FIELD_TYPE_NAMES.setdefault(_value, _name)


def describe_fields(description: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Convert a DB-API cursor description into field dicts."""
    fields = []
    for column in description:
        type_code = column[1]
        fields.append({
            "name": column[0],
            "type": _FIELD_TYPE_NAMES.get(type_code, type_code),
            "nullable": bool(column[6]) if len(column) > 6 else None,
        })
    return fields


class AsyncDatabaseConnector(ABC):
    """Abstract base class for async database connectors.

    A connector owns exactly one pool for exactly one profile.
    """

    def __init__(self, profile: ConnectionProfile):
        self.profile = profile
        self._pool = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    @abstractmethod
    async def initialize_pool(self):
        """Open the connection pool."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check liveness with one pooled connection."""
        pass

    @abstractmethod
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Execute one statement and shape its result."""
        pass

    @abstractmethod
    async def close(self):
        """Close the connection pool."""
        pass


class AsyncMySQLConnector(AsyncDatabaseConnector):
    """Async MySQL connector using aiomysql with connection pooling."""

    def __init__(
        self,
        profile: ConnectionProfile,
        pool_size: int = 10,
        charset: str = "utf8mb4",
        statement_timeout_ms: int = 30000,
        connect_timeout: int = 10
    ):
        super().__init__(profile)
        self.pool_size = pool_size
        self.charset = charset
        self.statement_timeout_ms = statement_timeout_ms
        self.connect_timeout = connect_timeout

    async def initialize_pool(self):
        """Initialize aiomysql connection pool."""
        try:
            self._pool = await aiomysql.create_pool(
                host=self.profile.host,
                port=self.profile.port,
                user=self.profile.user,
                password=self.profile.password,
                db=self.profile.database,
                minsize=1,
                maxsize=self.pool_size,
                autocommit=True,
                charset=self.charset,
                connect_timeout=self.connect_timeout
            )
            logger.info(
                f"MySQL connection pool initialized for "
                f"{self.profile.host}:{self.profile.port} (size: {self.pool_size})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize MySQL pool: {e}")
            raise

    @asynccontextmanager
    async def get_connection(self):
        """Borrow a connection from the pool; it is returned on exit."""
        if self._pool is None:
            raise DatabaseConnectionError("Connection pool not initialized")

        async with self._pool.acquire() as conn:
            yield conn

    async def ping(self) -> bool:
        async with self.get_connection() as conn:
            await conn.ping(reconnect=False)
        return True

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Execute with the session statement timeout applied first."""
        async with self.get_connection() as conn:
            async with conn.cursor(aiomysql.DictCursor) as cursor:
                await cursor.execute(f"SET SESSION MAX_EXECUTION_TIME={self.statement_timeout_ms}")
                # None, not an empty tuple: pymysql only %-formats when args are given
                await cursor.execute(sql, list(params) if params else None)

                if cursor.description:
                    rows = await cursor.fetchall()
                    return QueryResult(
                        data=[dict(row) for row in rows],
                        fields=describe_fields(cursor.description)
                    )

                return QueryResult(
                    data=[],
                    metadata=QueryMetadata(
                        affected_rows=cursor.rowcount,
                        insert_id=cursor.lastrowid
                    )
                )

    async def close(self):
        """Close connection pool."""
        if self._pool is not None:
            pool, self._pool = self._pool, None
            pool.close()
            await pool.wait_closed()
            logger.info("MySQL connection pool closed")


def create_async_connector(profile: ConnectionProfile, app_config: AppConfig) -> AsyncDatabaseConnector:
    """Factory for the connector used by the connection manager."""
    return AsyncMySQLConnector(
        profile,
        pool_size=app_config.mysql.connection_limit,
        charset=app_config.mysql.charset,
        statement_timeout_ms=app_config.statement_timeout_ms
    )
