"""Configuration provider abstraction for dependency injection.

Provides a clean interface for accessing configuration that can be
injected, mocked in tests, and implemented differently (file, env, etc).
The typed accessors shared by every provider live on the base class.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .progress import DEFAULT_EPISODE_COUNT
from .tmdb_client import TMDBClient

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "local"


class ConfigProvider(ABC):
    """Abstract base for configuration providers.

    Allows configuration to be injected as a dependency,
    making code testable without file system dependencies.
    """

    @abstractmethod
    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            section: Config section (e.g., 'tmdb', 'tracker')
            key: Key within section
            default: Default value if not found

        Returns:
            Configuration value or default
        """

    @abstractmethod
    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section.

        Args:
            section: Section name

        Returns:
            Section dict or empty dict
        """

    def get_tmdb_api_key(self) -> Optional[str]:
        return self.get("tmdb", "api_key") or os.getenv("TMDB_API_KEY")

    def get_user_id(self) -> str:
        return str(self.get("tracker", "user_id") or os.getenv("EPISODE_TRACKER_USER") or DEFAULT_USER_ID)

    def get_default_episode_count(self) -> int:
        """Fallback episode count for seasons the provider cannot describe.

        Raises:
            ValueError: If the configured value is not a non-negative integer
        """
        value = int(self.get("tracker", "default_episode_count", DEFAULT_EPISODE_COUNT))
        if value < 0:
            raise ValueError("[tracker] default_episode_count must not be negative")
        return value

    def get_database_path(self) -> Optional[Path]:
        """Database file from [tracker] database, or None for the default location."""
        raw = self.get("tracker", "database")
        return Path(raw).expanduser() if raw else None

    def validate(self) -> Tuple[bool, List[str]]:
        """Validate required config values.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if not self.get_tmdb_api_key():
            errors.append("Missing [tmdb] api_key (or TMDB_API_KEY environment variable)")

        try:
            self.get_default_episode_count()
        except (TypeError, ValueError) as e:
            errors.append(f"Invalid [tracker] default_episode_count: {e}")

        if not self.get("tracker", "user_id"):
            logger.warning(f"Missing [tracker] user_id, using '{self.get_user_id()}'")

        return len(errors) == 0, errors

    def get_tmdb_client(self) -> TMDBClient:
        """Create and return an authenticated TMDBClient with an HTTP cache.

        Raises:
            ValueError: If the TMDB key is missing
        """
        api_key = self.get_tmdb_api_key()
        if not api_key:
            raise ValueError(
                "Missing [tmdb] api_key in config. Add your TMDB read-access token to "
                "~/.config/episode-tracker/settings.toml or set TMDB_API_KEY."
            )

        from .http_cache import get_tmdb_session

        cache_hours = self.get("tmdb", "cache_hours")
        session = get_tmdb_session(api_key, cache_hours=float(cache_hours) if cache_hours is not None else None)
        return TMDBClient(api_key=api_key, session=session, base_url=self.get("tmdb", "base_url"))


class TomlConfigProvider(ConfigProvider):
    """Configuration provider that loads from settings.toml file.

    Searches standard locations:
    1. /config/settings.toml (Docker)
    2. ~/.config/episode-tracker/settings.toml (user home)
    3. $XDG_CONFIG_HOME/episode-tracker/settings.toml (XDG)
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize from TOML file.

        Args:
            config_path: Optional explicit path to settings.toml
        """
        from .config import Config

        self.config = Config(config_path=config_path)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get configuration value from TOML."""
        return self.config.get(section, key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire section from TOML."""
        return self.config.get_section(section)


class MockConfigProvider(ConfigProvider):
    """Mock configuration provider for testing.

    Allows tests to provide configuration without file system dependencies.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        """Initialize with test data.

        Args:
            data: Dictionary of {section: {key: value}}
        """
        self.data = data or {}

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get value from mock data."""
        return self.data.get(section, {}).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get section from mock data."""
        return self.data.get(section, {})


def get_default_config_provider(config_path: Optional[Path] = None) -> ConfigProvider:
    """Get default configuration provider (loads from settings.toml).

    Returns:
        TomlConfigProvider instance with settings.toml
    """
    return TomlConfigProvider(config_path=config_path)
