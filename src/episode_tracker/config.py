"""Configuration file loading for episode-tracker.

Loads configuration from TOML file in standard locations:
1. /config/settings.toml (Docker/container)
2. ~/.config/episode-tracker/settings.toml (user home)
3. $XDG_CONFIG_HOME/episode-tracker/settings.toml (XDG standard)

Example:

    [tmdb]
    api_key = "eyJhbGciOi..."   # v4 read-access token
    cache_hours = 24

    [tracker]
    user_id = "me"
    default_episode_count = 10
    database = "~/.config/episode-tracker/tracker.db"
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

logger = logging.getLogger(__name__)


class Config:
    """Configuration file loader."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize config from file.

        A missing file is not fatal when no explicit path was given:
        every value has a default except the TMDB key, which can also
        come from the TMDB_API_KEY environment variable.

        Args:
            config_path: Optional explicit path to settings.toml

        Raises:
            FileNotFoundError: If an explicit config_path does not exist
        """
        self.config_path = config_path or self._find_config_file()
        self.data: Dict[str, Any] = {}

        if self.config_path and self.config_path.exists():
            self._load_from_file(self.config_path)
        elif config_path is not None:
            logger.error(f"Config file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")
        else:
            logger.debug("No settings.toml found, using defaults and environment")

    @staticmethod
    def _find_config_file() -> Optional[Path]:
        """Find config file in standard locations.

        Returns:
            Path to config file, or None if not found
        """
        docker_path = Path("/config/settings.toml")
        if docker_path.exists():
            logger.info(f"Using Docker config: {docker_path}")
            return docker_path

        home_path = Path.home() / ".config" / "episode-tracker" / "settings.toml"
        if home_path.exists():
            logger.info(f"Using user config: {home_path}")
            return home_path

        xdg_config = os.getenv("XDG_CONFIG_HOME")
        if xdg_config:
            xdg_path = Path(xdg_config) / "episode-tracker" / "settings.toml"
            if xdg_path.exists():
                logger.info(f"Using XDG config: {xdg_path}")
                return xdg_path

        return None

    def _load_from_file(self, path: Path) -> None:
        """Load config from TOML file.

        Args:
            path: Path to settings.toml
        """
        try:
            with open(path, "rb") as f:
                self.data = tomllib.load(f)
            logger.info(f"Loaded config from {path}")
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Failed to load config from {path}: {e}")
            raise

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get config value.

        Args:
            section: Section name (e.g., 'tmdb', 'tracker')
            key: Key name
            default: Default value if not found

        Returns:
            Config value or default
        """
        return self.data.get(section, {}).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire config section.

        Args:
            section: Section name

        Returns:
            Section dict or empty dict
        """
        return self.data.get(section, {})
