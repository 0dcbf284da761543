"""Process-wide registry of named profiles."""

from typing import Any, Dict, Optional

import structlog

from .exceptions import DuplicateProfileError, ProfileNotFoundError
from .profile import Profile

logger = structlog.get_logger()

DEFAULT_PROFILE = "default"


class ProfileRegistry:
    """Holds every registered profile, keyed by name."""

    _profiles: Dict[str, Profile] = {}

    @classmethod
    def register(cls, name: Any, config: Dict[str, Any]) -> Profile:
        """Create and register a profile.

        Raises:
            DuplicateProfileError: If a profile with this name already exists.
        """
        key = str(name)
        if key in cls._profiles:
            raise DuplicateProfileError(f"Profile {key!r} is already registered")

        profile = Profile(key=key, **config)
        cls._profiles[key] = profile
        logger.debug("Registered Slack profile", profile=key, channels=len(profile.channels))
        return profile

    @classmethod
    def find(cls, name: Optional[Any]) -> Profile:
        """Look up a registered profile by name.

        Raises:
            ProfileNotFoundError: If the name is None, empty or unknown.
        """
        if name is None:
            raise ProfileNotFoundError("Profile name cannot be None")
        key = str(name)
        if not key.strip():
            raise ProfileNotFoundError("Profile name cannot be empty")
        try:
            return cls._profiles[key]
        except KeyError:
            raise ProfileNotFoundError(f"Profile {key!r} not found") from None

    @classmethod
    def all(cls) -> Dict[str, Profile]:
        return dict(cls._profiles)

    @classmethod
    def clear(cls) -> None:
        cls._profiles.clear()
