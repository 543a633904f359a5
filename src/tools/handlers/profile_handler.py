"""Connection profile handler."""

from typing import Any, Dict

from core.context import ServerContext
from core.exceptions import ProfileNotFoundError, ValidationError
from database.profiles import ConnectionProfile
from tools.base import ToolFunction, ToolHandler
from tools.definitions import ToolName
from tools.validators import InputValidator


class ProfileHandler(ToolHandler):
    """Handler for saved connection profiles."""

    @property
    def operations(self) -> Dict[str, ToolFunction]:
        return {
            ToolName.LIST_PROFILES.value: self.list_profiles,
            ToolName.GET_PROFILE.value: self.get_profile,
            ToolName.ADD_PROFILE.value: self.add_profile,
            ToolName.REMOVE_PROFILE.value: self.remove_profile,
        }

    async def list_profiles(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        profiles = context.profile_store.list()
        return {"profiles": [profile.public_view() for profile in profiles]}

    async def get_profile(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        name = InputValidator.require_string(arguments, "name")
        profile = context.profile_store.get(name)
        if profile is None:
            raise ProfileNotFoundError(name)
        return profile.public_view()

    async def add_profile(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        name = InputValidator.optional_string(arguments, "name")
        password = arguments.get("password") or ""
        if not isinstance(password, str):
            raise ValidationError("Parameter 'password' must be a string", {"parameter": "password"})

        profile = ConnectionProfile(
            name=name or "",
            host=InputValidator.require_string(arguments, "host"),
            port=InputValidator.optional_port(arguments) or 3306,
            user=InputValidator.require_string(arguments, "user"),
            password=password,
            database=InputValidator.optional_identifier(arguments, "database")
        )
        saved = context.profile_store.save(profile, name=name)

        response: Dict[str, Any] = {
            "success": True,
            "name": saved.name,
            "overwritten": saved.overwritten,
        }
        if saved.warning:
            response["warning"] = saved.warning
        return response

    async def remove_profile(self, context: ServerContext, arguments: Dict[str, Any]) -> Dict[str, Any]:
        name = InputValidator.require_string(arguments, "name")
        removed = context.profile_store.remove(name)
        return {"success": removed, "removed": removed, "name": name}
