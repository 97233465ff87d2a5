"""HTTP caching layer for TMDB requests.

Uses requests-cache to cache GET requests with configurable TTL so
repeated season lookups during initialization and refresh stay cheap.
"""

import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional

import requests_cache

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "episode-tracker"


class CachedSession:
    """HTTP session with automatic caching for GET requests.

    Uses SQLite backend: ~/.config/episode-tracker/<cache_name>.sqlite
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        cache_name: str = "http_cache",
        expire_after: Optional[timedelta] = None,
        headers: Optional[Dict[str, str]] = None,
        backend: str = "sqlite",
    ):
        """Initialize cached session.

        Args:
            cache_dir: Directory for cache database (default: ~/.config/episode-tracker)
            cache_name: Name of cache database file (without extension)
            expire_after: How long to cache responses (default: 24 hours)
            headers: Headers sent with every request
            backend: requests-cache backend ("sqlite", or "memory" for tests)
        """
        if cache_dir is None:
            cache_dir = CONFIG_DIR

        if backend == "sqlite":
            cache_dir.mkdir(parents=True, exist_ok=True)
        self.cache_path = cache_dir / cache_name

        if expire_after is None:
            expire_after = timedelta(hours=24)

        self.expire_after = expire_after

        self.session = requests_cache.CachedSession(
            str(self.cache_path),
            backend=backend,
            expire_after=expire_after,
            allowable_methods=("GET", "HEAD"),
            allowable_codes=(200,),
            stale_if_error=True,
        )
        if headers:
            self.session.headers.update(headers)

        logger.debug(
            f"Initialized HTTP cache at {self.cache_path} "
            f"(backend={backend}, expire_after={expire_after.total_seconds()}s)"
        )

    def get(self, url: str, **kwargs) -> requests_cache.models.Response:
        """GET request with caching.

        Args:
            url: URL to request
            **kwargs: Passed to requests.get()

        Returns:
            Response object (from cache if available, fresh otherwise)
        """
        response = self.session.get(url, **kwargs)

        if hasattr(response, "from_cache"):
            source = "cache" if response.from_cache else "network"
            logger.debug(f"GET {url}: {source}")

        return response

    def clear(self) -> None:
        """Clear all cached responses."""
        self.session.cache.clear()
        logger.info("Cleared HTTP cache")

    def close(self) -> None:
        """Close session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def get_tmdb_session(api_key: str, cache_hours: Optional[float] = None) -> CachedSession:
    """Create a TMDB cached session authenticated with a v4 read-access token.

    TTL comes from cache_hours, then TMDB_CACHE_HOURS, then 24 hours.
    """
    if cache_hours is None:
        cache_hours = float(os.getenv("TMDB_CACHE_HOURS", "24"))
    return CachedSession(
        cache_name="http_cache_tmdb",
        expire_after=timedelta(hours=cache_hours),
        headers={
            "accept": "application/json",
            "Authorization": f"Bearer {api_key}",
        },
    )
