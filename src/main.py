"""Unified entry point for the MySQL MCP Server.

This module provides a single entry point that can run in either:
- STDIO mode: newline-delimited JSON over stdin/stdout
- HTTP mode: one tool call per HTTP request

Usage:
    # STDIO mode (default)
    python main.py --host db.local --user app --password secret

    # HTTP mode with custom bind address
    python main.py --http --server-host 0.0.0.0 --server-port 3000
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from core.config import AppConfig
from core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(debug: bool):
    """Log to stderr; stdout carries protocol frames in STDIO mode."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mysql-mcp-server",
        description="MySQL MCP Server - database tools over stdio or HTTP"
    )
    parser.add_argument("--http", action="store_true", help="Run in HTTP mode (default: STDIO mode)")
    parser.add_argument("--server-host", type=str, default=None, help="Bind address for HTTP mode")
    parser.add_argument("--server-port", type=int, default=None, help="Listen port for HTTP mode")

    mysql = parser.add_argument_group("MySQL connection defaults")
    mysql.add_argument("--host", type=str, default=None, help="MySQL host")
    mysql.add_argument("--port", type=int, default=None, help="MySQL port")
    mysql.add_argument("--user", type=str, default=None, help="MySQL user")
    mysql.add_argument("--password", type=str, default=None, help="MySQL password")
    mysql.add_argument("--database", type=str, default=None, help="Default database")

    parser.add_argument("--config", type=str, default=None, help="Path to a JSON config file")
    parser.add_argument("--query-timeout", type=int, default=None, help="Statement timeout in milliseconds")
    parser.add_argument("--max-results", type=int, default=None, help="Maximum rows returned per query")
    parser.add_argument("--profiles-path", type=str, default=None, help="Connection profile file")
    parser.add_argument(
        "--auto-connect",
        action="store_true",
        default=None,
        help="Connect with the default connection settings at startup"
    )
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Nested configuration overrides; unset flags stay None and are dropped."""
    return {
        "server": {"host": args.server_host, "port": args.server_port},
        "mysql": {
            "host": args.host,
            "port": args.port,
            "user": args.user,
            "password": args.password,
            "database": args.database,
        },
        "query_timeout": args.query_timeout,
        "max_result_size": args.max_results,
        "profiles_path": args.profiles_path,
        "auto_connect": args.auto_connect,
        "debug": args.debug,
    }


async def run_stdio_mode(app_config: AppConfig):
    """Run MCP server in STDIO mode."""
    logger.info("Starting MySQL MCP Server in STDIO mode")

    from protocol.stdio_server import run_stdio_server
    await run_stdio_server(app_config)


async def run_http_mode(app_config: AppConfig):
    """Run MCP server in HTTP mode."""
    server = app_config.server
    logger.info(f"Starting MySQL MCP Server in HTTP mode on {server.host}:{server.port}")

    from http_server import run_http_server
    await run_http_server(app_config)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point with argument parsing."""
    args = build_parser().parse_args(argv)
    configure_logging(bool(args.debug))

    try:
        app_config = AppConfig.load(config_path=args.config, overrides=overrides_from_args(args))
    except ConfigurationError as e:
        logger.error(f"Failed to load configuration: {e.message}")
        return 1

    configure_logging(app_config.debug)
    logger.info(
        f"Configuration loaded: MySQL defaults {app_config.mysql.user}@"
        f"{app_config.mysql.host}:{app_config.mysql.port}"
    )

    try:
        if args.http:
            asyncio.run(run_http_mode(app_config))
        else:
            asyncio.run(run_stdio_mode(app_config))
    except OSError as e:
        logger.error(f"Server error: {e}", exc_info=True)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
