"""Persistent store for named MySQL connection profiles."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

# Auto-generated (unnamed) profiles kept before the oldest is evicted
MAX_AUTO_PROFILES = 10


class ConnectionProfile(BaseModel):
    """Connection credentials stored under a unique name."""

    name: str
    host: str
    port: int = 3306
    user: str
    password: str = ""
    database: Optional[str] = None
    auto_generated: bool = Field(default=False, description="Name was derived from host and port")

    def identity(self) -> Tuple[str, int, str, str, Optional[str]]:
        """Connection-relevant fields, used to detect equivalent profiles."""
        return (self.host, self.port, self.user, self.password, self.database)

    def connection_info(self) -> Dict[str, Any]:
        """Host/port/user/database without credentials."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
        }

    def public_view(self) -> Dict[str, Any]:
        """Profile as returned to callers: the password is never echoed."""
        info = {"name": self.name, **self.connection_info()}
        info["has_password"] = bool(self.password)
        return info


@dataclass(frozen=True)
class SaveResult:
    """Outcome of ProfileStore.save()."""

    name: str
    overwritten: bool
    warning: Optional[str] = None


def derive_profile_name(host: str, port: int) -> str:
    """Deterministic name for a profile saved without one."""
    return f"{host}:{port}"


class ProfileStore:
    """JSON-file backed list of connection profiles.

    Storage order is insertion order, with overwritten entries moved to the
    end, so the last entry is always the most recently saved profile.
    """

    def __init__(self, path: str, max_auto_profiles: int = MAX_AUTO_PROFILES):
        self.path = Path(path).expanduser()
        self.max_auto_profiles = max_auto_profiles

    def list(self) -> List[ConnectionProfile]:
        """All profiles in storage order."""
        return self._read()

    def get(self, name: str) -> Optional[ConnectionProfile]:
        """Exact-match lookup by name."""
        for profile in self._read():
            if profile.name == name:
                return profile
        return None

    def latest(self) -> Optional[ConnectionProfile]:
        """The most recently stored profile, if any."""
        profiles = self._read()
        return profiles[-1] if profiles else None

    def save(self, profile: ConnectionProfile, name: Optional[str] = None) -> SaveResult:
        """Insert or overwrite a profile.

        Args:
            profile: Profile data; its own ``name`` is replaced by the resolved one
            name: Explicit profile name. When omitted a name is derived from
                host and port and the profile is marked auto-generated.

        Returns:
            SaveResult describing whether an entry was overwritten and any
            equivalent-profile warning
        """
        auto_generated = not name
        resolved = name or derive_profile_name(profile.host, profile.port)
        entry = profile.model_copy(update={"name": resolved, "auto_generated": auto_generated})

        profiles = self._read()
        overwritten = any(p.name == resolved for p in profiles)
        profiles = [p for p in profiles if p.name != resolved]

        warning = None
        duplicates = [p.name for p in profiles if p.identity() == entry.identity()]
        if duplicates:
            # Both entries are kept; the caller gets the warning
            warning = (
                f"Profile '{resolved}' has the same connection settings as "
                f"existing profile(s): {', '.join(duplicates)}"
            )
            logger.warning(warning)

        profiles.append(entry)
        profiles = self._evict_auto_profiles(profiles)
        self._write(profiles)

        action = "Updated" if overwritten else "Saved"
        logger.info(f"{action} connection profile '{resolved}'")
        return SaveResult(name=resolved, overwritten=overwritten, warning=warning)

    def remove(self, name: str) -> bool:
        """Remove a profile by name. Returns True when something was removed."""
        profiles = self._read()
        remaining = [p for p in profiles if p.name != name]
        if len(remaining) == len(profiles):
            return False
        self._write(remaining)
        logger.info(f"Removed connection profile '{name}'")
        return True

    def _evict_auto_profiles(self, profiles: List[ConnectionProfile]) -> List[ConnectionProfile]:
        auto_names = [p.name for p in profiles if p.auto_generated]
        excess = len(auto_names) - self.max_auto_profiles
        if excess <= 0:
            return profiles
        evicted = set(auto_names[:excess])
        logger.info(f"Evicting oldest auto-generated profiles: {', '.join(auto_names[:excess])}")
        return [p for p in profiles if p.name not in evicted]

    def _read(self) -> List[ConnectionProfile]:
        if not self.path.exists():
            return []

        try:
            with open(self.path, encoding='utf-8') as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Could not read profiles from {self.path}: {e}")
            return []

        if not isinstance(raw, list):
            logger.error(f"Profiles file {self.path} must contain a JSON array")
            return []

        profiles = []
        for item in raw:
            try:
                profiles.append(ConnectionProfile.model_validate(item))
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid profile entry in {self.path}: {e}")
        return profiles

    def _write(self, profiles: List[ConnectionProfile]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [p.model_dump(exclude_none=True) for p in profiles]

        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".profiles-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {self.path}")
