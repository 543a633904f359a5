"""Configuration management for the MySQL MCP server.

Settings are merged in this order, later sources winning:
defaults, JSON config file, environment variables, command line overrides.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Load .env, preferring an explicit ENV_FILE_PATH
env_file = os.getenv('ENV_FILE_PATH')
if env_file and Path(env_file).exists():
    load_dotenv(env_file, override=False)
else:
    load_dotenv()


CONFIG_FILE_NAME = "mysql-mcp-config.json"
HOME_CONFIG_FILE_NAME = ".mysql-mcp-config.json"
PROFILES_FILE_NAME = ".mysql-mcp-connections.json"

DEFAULT_QUERY_TIMEOUT_MS = 30000
DEFAULT_MAX_RESULT_SIZE = 1000
DEFAULT_SERVER_PORT = 3000

SERVER_NAME = "mysql-mcp-server"
SERVER_VERSION = "1.0.0"

# camelCase keys accepted in the JSON config file
_FILE_KEY_ALIASES = {
    "queryTimeout": "query_timeout",
    "maxResultSize": "max_result_size",
    "connectionLimit": "connection_limit",
    "profilesPath": "profiles_path",
    "autoConnect": "auto_connect",
    "rateLimitTools": "rate_limit_tools",
    "corsAllowedOrigins": "cors_allowed_origins",
}


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _default_profiles_path() -> str:
    return str(Path.home() / PROFILES_FILE_NAME)


class MySQLConfig(BaseModel):
    """Default MySQL connection settings."""

    host: str = Field(default="localhost", description="MySQL server hostname or IP")
    port: int = Field(default=3306, description="MySQL server port")
    user: str = Field(default="root", description="MySQL user")
    password: str = Field(default="", description="MySQL password")
    database: Optional[str] = Field(default=None, description="Default database")
    connection_limit: int = Field(default=10, gt=0, description="Maximum pooled connections")
    charset: str = Field(default="utf8mb4", description="Connection character set")


class ServerConfig(BaseModel):
    """HTTP listener settings."""

    host: str = "localhost"
    port: int = DEFAULT_SERVER_PORT


class HTTPConfig(BaseModel):
    """HTTP adapter configuration including rate limiting and CORS."""

    rate_limit_tools: str = Field(
        default="120/minute",
        description="Rate limit for the tool invocation endpoint"
    )
    cors_allowed_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by CORS"
    )

    @classmethod
    def from_env(cls) -> "HTTPConfig":
        """Create HTTP configuration from environment variables."""
        data = _http_env_overrides()
        return cls(**data)


class AppConfig(BaseModel):
    """Application configuration combining all configs."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    mysql: MySQLConfig = Field(default_factory=MySQLConfig)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    debug: bool = False
    query_timeout: int = Field(default=DEFAULT_QUERY_TIMEOUT_MS, gt=0, description="Statement timeout in milliseconds")
    max_result_size: int = Field(default=DEFAULT_MAX_RESULT_SIZE, gt=0, description="Maximum rows returned by execute_query")
    profiles_path: str = Field(default_factory=_default_profiles_path)
    auto_connect: bool = Field(default=False, description="Connect with the default profile at startup")
    server_name: str = SERVER_NAME
    server_version: str = SERVER_VERSION
    explicit_mysql_fields: List[str] = Field(
        default_factory=list,
        exclude=True,
        description="MySQL fields set by environment variables or the command line"
    )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from defaults and environment variables only."""
        return cls.load(use_config_file=False)

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_config_file: bool = True
    ) -> "AppConfig":
        """Build the effective configuration.

        Args:
            config_path: Explicit JSON config file; searched for when omitted
            overrides: Nested dict of command line values (field names)
            use_config_file: Skip config file discovery entirely when False

        Raises:
            ConfigurationError: If the merged values fail validation
        """
        data: Dict[str, Any] = {}
        if use_config_file:
            _deep_merge(data, load_config_file(config_path))
        environment = _environment_overrides()
        cli = _drop_none(overrides) if overrides else {}
        _deep_merge(data, environment)
        _deep_merge(data, cli)
        data["explicit_mysql_fields"] = sorted(
            set(environment.get("mysql", {})) | set(cli.get("mysql", {}))
        )

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @property
    def statement_timeout_ms(self) -> int:
        """Per-session statement timeout, floored to whole seconds."""
        return (self.query_timeout // 1000) * 1000


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """Locate the JSON config file: explicit path, then cwd, then home."""
    if config_path:
        path = Path(config_path).expanduser()
        return path if path.exists() else None

    candidates = [Path.cwd() / CONFIG_FILE_NAME, Path.home() / HOME_CONFIG_FILE_NAME]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the JSON config file, returning {} when absent or unreadable."""
    path = find_config_file(config_path)
    if path is None:
        if config_path:
            logger.warning(f"Config file not found: {config_path}")
        return {}

    try:
        with open(path, encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading config file {path}: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.error(f"Config file {path} must contain a JSON object")
        return {}

    logger.info(f"Loaded config from: {path}")
    return _normalize_keys(raw)


def _normalize_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            _FILE_KEY_ALIASES.get(key, key): _normalize_keys(item)
            for key, item in value.items()
        }
    return value


def _http_env_overrides() -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if os.getenv("RATE_LIMIT_TOOLS"):
        data["rate_limit_tools"] = os.environ["RATE_LIMIT_TOOLS"]
    if os.getenv("CORS_ALLOWED_ORIGINS"):
        data["cors_allowed_origins"] = [
            origin.strip() for origin in os.environ["CORS_ALLOWED_ORIGINS"].split(",") if origin.strip()
        ]
    return data


def _environment_overrides() -> Dict[str, Any]:
    """Collect settings from environment variables that are actually set."""
    server: Dict[str, Any] = {}
    mysql: Dict[str, Any] = {}
    data: Dict[str, Any] = {}

    if os.getenv("MCP_SERVER_PORT"):
        server["port"] = os.environ["MCP_SERVER_PORT"]
    if os.getenv("MCP_SERVER_HOST"):
        server["host"] = os.environ["MCP_SERVER_HOST"]

    if os.getenv("DB_HOST"):
        mysql["host"] = os.environ["DB_HOST"]
    if os.getenv("DB_PORT"):
        mysql["port"] = os.environ["DB_PORT"]
    if os.getenv("DB_USER"):
        mysql["user"] = os.environ["DB_USER"]
    if os.getenv("DB_PASSWORD"):
        mysql["password"] = os.environ["DB_PASSWORD"]
    if os.getenv("DB_DATABASE"):
        mysql["database"] = os.environ["DB_DATABASE"]
    if os.getenv("DB_POOL_SIZE"):
        mysql["connection_limit"] = os.environ["DB_POOL_SIZE"]

    if os.getenv("DEBUG"):
        data["debug"] = _env_flag(os.environ["DEBUG"])
    if os.getenv("QUERY_TIMEOUT"):
        data["query_timeout"] = os.environ["QUERY_TIMEOUT"]
    if os.getenv("MAX_RESULT_SIZE"):
        data["max_result_size"] = os.environ["MAX_RESULT_SIZE"]
    if os.getenv("MCP_PROFILES_PATH"):
        data["profiles_path"] = os.environ["MCP_PROFILES_PATH"]
    if os.getenv("AUTO_CONNECT"):
        data["auto_connect"] = _env_flag(os.environ["AUTO_CONNECT"])
    if os.getenv("MCP_SERVER_NAME"):
        data["server_name"] = os.environ["MCP_SERVER_NAME"]

    http = _http_env_overrides()
    if server:
        data["server"] = server
    if mysql:
        data["mysql"] = mysql
    if http:
        data["http"] = http
    return data


def _drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, dict):
            nested = _drop_none(value)
            if nested:
                cleaned[key] = nested
        elif value is not None:
            cleaned[key] = value
    return cleaned


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
    return target
