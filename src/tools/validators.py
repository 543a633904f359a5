"""Input validators for tool arguments."""

from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import ValidationError

# MySQL identifier length limit
MAX_IDENTIFIER_LENGTH = 64


class InputValidator:
    """General input validation utilities."""

    @staticmethod
    def require_string(arguments: Dict[str, Any], key: str, message: Optional[str] = None) -> str:
        """Return a non-blank string argument or raise ValidationError."""
        value = arguments.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(message or f"Missing required parameter: {key}", {"parameter": key})
        return value

    @staticmethod
    def optional_string(arguments: Dict[str, Any], key: str) -> Optional[str]:
        """Return a string argument, treating blank or missing as None."""
        value = arguments.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError(f"Parameter '{key}' must be a string", {"parameter": key})
        return value if value.strip() else None

    @staticmethod
    def optional_bool(arguments: Dict[str, Any], key: str, default: bool) -> bool:
        """Return a JSON boolean argument, or ``default`` when it is absent."""
        if key not in arguments:
            return default
        value = arguments[key]
        if not isinstance(value, bool):
            raise ValidationError(f"Parameter '{key}' must be a boolean", {"parameter": key})
        return value

    @staticmethod
    def validate_identifier(name: str, kind: str = "Table") -> Tuple[bool, str]:
        """
        Validate a database or table name before it is quoted into SQL.

        Args:
            name: Identifier to validate
            kind: Label used in error messages

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name or not name.strip():
            return False, f"{kind} name cannot be empty"

        if len(name) > MAX_IDENTIFIER_LENGTH:
            return False, f"{kind} name too long (max {MAX_IDENTIFIER_LENGTH} characters)"

        if "\x00" in name:
            return False, f"Invalid characters in {kind.lower()} name"

        return True, ""

    @staticmethod
    def validate_port(port: Any) -> Tuple[bool, str]:
        """
        Validate a TCP port number.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if isinstance(port, bool):
            return False, "Port must be an integer"
        if isinstance(port, float) and not port.is_integer():
            return False, "Port must be an integer"
        try:
            value = int(port)
        except (TypeError, ValueError):
            return False, "Port must be an integer"

        if not 1 <= value <= 65535:
            return False, "Port must be between 1 and 65535"

        return True, ""

    @staticmethod
    def validate_params(params: Any) -> Tuple[bool, str]:
        """Query parameters must be a JSON array when given."""
        if params is None or isinstance(params, list):
            return True, ""
        return False, "Parameter 'params' must be an array"

    @classmethod
    def require_identifier(cls, arguments: Dict[str, Any], key: str, kind: str = "Table") -> str:
        value = cls.require_string(arguments, key)
        is_valid, error_msg = cls.validate_identifier(value, kind)
        if not is_valid:
            raise ValidationError(error_msg, {"parameter": key})
        return value

    @classmethod
    def optional_identifier(cls, arguments: Dict[str, Any], key: str, kind: str = "Database") -> Optional[str]:
        value = cls.optional_string(arguments, key)
        if value is None:
            return None
        is_valid, error_msg = cls.validate_identifier(value, kind)
        if not is_valid:
            raise ValidationError(error_msg, {"parameter": key})
        return value

    @classmethod
    def optional_port(cls, arguments: Dict[str, Any], key: str = "port") -> Optional[int]:
        value = arguments.get(key)
        if value is None or value == "":
            return None
        is_valid, error_msg = cls.validate_port(value)
        if not is_valid:
            raise ValidationError(error_msg, {"parameter": key})
        return int(value)

    @classmethod
    def optional_params(cls, arguments: Dict[str, Any], key: str = "params") -> List[Any]:
        value = arguments.get(key)
        is_valid, error_msg = cls.validate_params(value)
        if not is_valid:
            raise ValidationError(error_msg, {"parameter": key})
        return value or []
