"""Async connection manager: one pooled MySQL connection at a time."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from core.config import AppConfig
from core.exceptions import DatabaseConnectionError, QueryExecutionError
from database.async_connectors import AsyncDatabaseConnector, create_async_connector
from database.models import QueryResult
from database.profiles import ConnectionProfile

logger = logging.getLogger(__name__)

NOT_CONNECTED_MESSAGE = "Database not connected. Please use connect_database tool first"

ConnectorFactory = Callable[[ConnectionProfile, AppConfig], AsyncDatabaseConnector]


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of the connection state machine."""

    connected: bool
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    database: Optional[str] = None
    profile_name: Optional[str] = None

    @classmethod
    def disconnected(cls) -> "ConnectionState":
        return cls(connected=False)

    @classmethod
    def for_profile(cls, profile: ConnectionProfile) -> "ConnectionState":
        return cls(
            connected=True,
            host=profile.host,
            port=profile.port,
            user=profile.user,
            database=profile.database,
            profile_name=profile.name or None
        )

    def to_dict(self) -> Dict[str, Any]:
        if not self.connected:
            return {"connected": False}
        return {
            "connected": True,
            "connection": {
                "host": self.host,
                "port": self.port,
                "user": self.user,
                "database": self.database,
            },
            "profile": self.profile_name,
        }


class AsyncConnectionManager:
    """
    Owns at most one connection pool and the Disconnected/Connected state.

    Transitions (connect, disconnect) are serialized by a lock. They block
    new queries and wait for in-flight queries to return their connections
    before the pool is torn down, so a query never runs against a pool that
    is being closed.
    """

    def __init__(
        self,
        app_config: AppConfig,
        connector_factory: Optional[ConnectorFactory] = None
    ):
        self.app_config = app_config
        self._connector_factory = connector_factory or create_async_connector
        self._connector: Optional[AsyncDatabaseConnector] = None
        self._state = ConnectionState.disconnected()

        self._transition_lock = asyncio.Lock()
        self._condition = asyncio.Condition()
        self._in_flight = 0
        self._transitioning = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state.connected

    def status(self) -> ConnectionState:
        """Snapshot of the current connection state."""
        return self._state

    async def connect(self, profile: ConnectionProfile) -> ConnectionState:
        """Close any existing pool, then open and ping a pool for ``profile``.

        Raises:
            DatabaseConnectionError: If the new pool cannot be opened or pinged.
                The manager is left Disconnected with no pool open.
        """
        async with self._transition_lock:
            try:
                await self._begin_transition()
                await self._close_connector()

                connector = self._connector_factory(profile, self.app_config)
                try:
                    await connector.initialize_pool()
                    await connector.ping()
                except Exception as e:
                    await self._discard(connector)
                    logger.error(f"Failed to connect to {profile.host}:{profile.port}: {e}")
                    raise DatabaseConnectionError(
                        f"MySQL connection failed: {e}",
                        {"host": profile.host, "port": profile.port}
                    ) from e

                self._connector = connector
                self._state = ConnectionState.for_profile(profile)
                logger.info(f"MySQL connection established to {profile.host}:{profile.port}")
                return self._state
            finally:
                await self._end_transition()

    async def disconnect(self) -> bool:
        """Close the pool if one is open. Returns True when a pool was closed."""
        async with self._transition_lock:
            try:
                await self._begin_transition()
                return await self._close_connector()
            finally:
                await self._end_transition()

    async def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Run one statement on a borrowed pooled connection.

        Raises:
            DatabaseConnectionError: If Disconnected (no network call is made)
            QueryExecutionError: If the driver reports a failure
        """
        connector = await self._borrow()
        try:
            if self.app_config.debug:
                logger.debug(f"Executing query: {sql}")
                if params:
                    logger.debug(f"With params: {list(params)}")
            return await connector.execute(sql, params)
        except Exception as e:
            logger.error(f"Query execution failed: {e}")
            raise QueryExecutionError(f"Query failed: {e}") from e
        finally:
            await self._give_back()

    async def ping(self) -> bool:
        """Liveness probe against the current pool."""
        connector = await self._borrow()
        try:
            return await connector.ping()
        except Exception as e:
            raise DatabaseConnectionError(f"Ping failed: {e}") from e
        finally:
            await self._give_back()

    async def close(self):
        """Drain and close on shutdown."""
        if await self.disconnect():
            logger.info("Connection manager closed")

    async def _borrow(self) -> AsyncDatabaseConnector:
        async with self._condition:
            await self._condition.wait_for(lambda: not self._transitioning)
            if self._connector is None:
                raise DatabaseConnectionError(NOT_CONNECTED_MESSAGE)
            self._in_flight += 1
            return self._connector

    async def _give_back(self):
        async with self._condition:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._condition.notify_all()

    async def _begin_transition(self):
        async with self._condition:
            self._transitioning = True
            await self._condition.wait_for(lambda: self._in_flight == 0)

    async def _end_transition(self):
        async with self._condition:
            self._transitioning = False
            self._condition.notify_all()

    async def _close_connector(self) -> bool:
        connector, self._connector = self._connector, None
        self._state = ConnectionState.disconnected()
        if connector is None:
            return False
        await self._discard(connector)
        logger.info("MySQL connection closed")
        return True

    async def _discard(self, connector: AsyncDatabaseConnector):
        try:
            await connector.close()
        except Exception as e:
            logger.warning(f"Error while closing connection pool: {e}")
