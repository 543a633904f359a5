"""Server context passed to every tool handler invocation."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from core.config import AppConfig
from core.exceptions import DatabaseConnectionError
from database.async_manager import AsyncConnectionManager, ConnectorFactory
from database.profiles import ConnectionProfile, ProfileStore
from database.schema.introspector import MySQLSchemaInspector

logger = logging.getLogger(__name__)


CONNECTION_FIELDS = ("host", "port", "user", "password", "database")


def resolve_defaults(app_config: AppConfig, latest: Optional[ConnectionProfile]) -> ConnectionProfile:
    """Latest stored profile, overlaid with settings given explicitly by env or CLI."""
    if latest is None:
        return profile_from_config(app_config)

    explicit = {
        name: getattr(app_config.mysql, name)
        for name in CONNECTION_FIELDS
        if name in app_config.explicit_mysql_fields
    }
    if not explicit:
        return latest
    logger.info(f"Explicit settings override profile '{latest.name}': {', '.join(sorted(explicit))}")
    return latest.model_copy(update=explicit)


def profile_from_config(app_config: AppConfig) -> ConnectionProfile:
    """Unnamed profile built from the configured MySQL settings."""
    mysql = app_config.mysql
    return ConnectionProfile(
        name="",
        host=mysql.host,
        port=mysql.port,
        user=mysql.user,
        password=mysql.password,
        database=mysql.database
    )


@dataclass
class ServerContext:
    """Owned state shared by all handlers of one server process.

    ``defaults`` is resolved once at startup: the most recently stored
    profile when there is one, otherwise the configured MySQL settings.
    Fields set through environment variables or the command line always
    replace the stored profile's values.
    It only seeds arguments; it never opens a connection by itself.
    """

    app_config: AppConfig
    connection_manager: AsyncConnectionManager
    profile_store: ProfileStore
    defaults: ConnectionProfile
    inspector: MySQLSchemaInspector = field(init=False)

    def __post_init__(self):
        self.inspector = MySQLSchemaInspector(self.connection_manager)

    @classmethod
    def create(
        cls,
        app_config: AppConfig,
        connector_factory: Optional[ConnectorFactory] = None,
        profile_store: Optional[ProfileStore] = None
    ) -> "ServerContext":
        store = profile_store or ProfileStore(app_config.profiles_path)
        latest = store.latest()
        if latest is not None:
            logger.info(f"Default connection settings taken from profile '{latest.name}'")
        return cls(
            app_config=app_config,
            connection_manager=AsyncConnectionManager(app_config, connector_factory),
            profile_store=store,
            defaults=resolve_defaults(app_config, latest)
        )

    async def auto_connect(self) -> bool:
        """Connect with the default settings. Failure is logged, not raised."""
        try:
            await self.connection_manager.connect(self.defaults)
            return True
        except DatabaseConnectionError as e:
            logger.warning(f"Auto-connect failed, starting disconnected: {e.message}")
            return False

    async def close(self):
        await self.connection_manager.close()
