"""Connection lifecycle handler."""

import logging
from typing import Any, Dict

from core.context import ServerContext
from core.exceptions import DatabaseConnectionError, ProfileNotFoundError, ValidationError
from database.profiles import ConnectionProfile, derive_profile_name
from tools.base import ToolFunction, ToolHandler
from tools.definitions import ToolName
from tools.validators import InputValidator

logger = logging.getLogger(__name__)


class ConnectionHandler(ToolHandler):
    """Handler for connecting, disconnecting and connection status."""

    @property
    def operations(self) -> Dict[str, ToolFunction]:
        return {
            ToolName.CONNECT_DATABASE.value: self.connect_database,
            ToolName.CONNECT_BY_PROFILE.value: self.connect_by_profile,
            ToolName.DISCONNECT_DATABASE.value: self.disconnect_database,
            ToolName.GET_CONNECTION_STATUS.value: self.get_connection_status,
        }

    async def connect_database(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Connect with explicit settings, falling back to the defaults.

        The stored password and database of the defaults are only reused
        when host, port and user all match them.
        """
        defaults = context.defaults
        host = InputValidator.optional_string(arguments, "host") or defaults.host
        port = InputValidator.optional_port(arguments) or defaults.port
        user = InputValidator.optional_string(arguments, "user") or defaults.user
        same_server = (host, port, user) == (defaults.host, defaults.port, defaults.user)

        password = arguments.get("password")
        if password is None:
            password = defaults.password if same_server else ""
        elif not isinstance(password, str):
            raise ValidationError("Parameter 'password' must be a string", {"parameter": "password"})

        if "database" in arguments:
            database = InputValidator.optional_identifier(arguments, "database")
        else:
            database = defaults.database if same_server else None

        save_profile = InputValidator.optional_bool(arguments, "save_profile", default=True)
        profile_name = InputValidator.optional_string(arguments, "profile_name")
        resolved_name = (profile_name or derive_profile_name(host, port)) if save_profile else ""

        profile = ConnectionProfile(
            name=resolved_name,
            host=host,
            port=port,
            user=user,
            password=password,
            database=database
        )
        state = await context.connection_manager.connect(profile)

        response: Dict[str, Any] = {
            "success": True,
            "message": f"Connected to {host}:{port}",
            "connection": state.to_dict()["connection"],
        }

        if save_profile:
            try:
                saved = context.profile_store.save(profile, name=profile_name)
            except OSError as e:
                logger.warning(f"Connected, but the profile could not be saved: {e}")
                response["warning"] = f"Profile not saved: {e}"
            else:
                response["profile"] = saved.name
                if saved.warning:
                    response["warning"] = saved.warning

        return response

    async def connect_by_profile(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        name = InputValidator.require_string(arguments, "name")
        profile = context.profile_store.get(name)
        if profile is None:
            raise ProfileNotFoundError(name)

        state = await context.connection_manager.connect(profile)
        return {
            "success": True,
            "message": f"Connected to {profile.host}:{profile.port} using profile '{name}'",
            "connection": state.to_dict()["connection"],
            "profile": name,
        }

    async def disconnect_database(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        closed = await context.connection_manager.disconnect()
        return {
            "success": True,
            "message": "Disconnected from database" if closed else "Not connected",
        }

    async def get_connection_status(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        manager = context.connection_manager
        status = manager.status().to_dict()

        if arguments.get("check") and manager.is_connected:
            try:
                status["alive"] = await manager.ping()
            except DatabaseConnectionError as e:
                status["alive"] = False
                status["error"] = e.message

        status["defaults"] = context.defaults.connection_info()
        return status
